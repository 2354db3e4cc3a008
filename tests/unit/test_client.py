"""Unit tests for the history service HTTP client."""

from __future__ import annotations

import json

import pytest
import requests
import responses

from travel_companion.lib.errors import ApiError
from travel_companion.services.client import LocationApiClient
from travel_companion.services.providers import MOCK_SUGGESTIONS, MockWeatherProvider

BASE = "http://api.test"


@pytest.fixture
def client() -> LocationApiClient:
    return LocationApiClient(BASE)


@pytest.mark.ai_generated
class TestLocationApiClient:
    """Tests for LocationApiClient."""

    @responses.activate
    def test_health(self, client: LocationApiClient) -> None:
        responses.add(
            responses.GET,
            f"{BASE}/api/health",
            json={"status": "OK", "timestamp": "2024-01-01T00:00:00.000Z"},
        )

        assert client.health()["status"] == "OK"

    @responses.activate
    def test_list_locations(self, client: LocationApiClient) -> None:
        responses.add(
            responses.GET,
            f"{BASE}/api/locations",
            json=[
                {"id": "1", "latitude": 1, "longitude": 2, "timestamp": 3, "address": None},
                {"id": "2", "latitude": 4, "longitude": 5, "timestamp": 6, "address": "X"},
            ],
        )

        records = client.list_locations()

        assert [r.id for r in records] == ["1", "2"]
        assert records[1].address == "X"

    @responses.activate
    def test_add_location_sends_json(self, client: LocationApiClient) -> None:
        responses.add(
            responses.POST,
            f"{BASE}/api/locations",
            json={"id": "99", "latitude": 1.5, "longitude": 2.5, "timestamp": 10, "address": None},
            status=201,
        )

        record = client.add_location(1.5, 2.5, 10)

        assert record.id == "99"
        sent = responses.calls[0].request
        assert sent.headers["Content-Type"] == "application/json"
        assert json.loads(sent.body) == {"latitude": 1.5, "longitude": 2.5, "timestamp": 10}

    @responses.activate
    def test_add_location_with_address(self, client: LocationApiClient) -> None:
        responses.add(
            responses.POST,
            f"{BASE}/api/locations",
            json={"id": "1", "latitude": 1, "longitude": 2, "timestamp": 3, "address": "Home"},
            status=201,
        )

        client.add_location(1, 2, 3, address="Home")

        assert json.loads(responses.calls[0].request.body)["address"] == "Home"

    @responses.activate
    def test_clear_locations(self, client: LocationApiClient) -> None:
        responses.add(
            responses.DELETE,
            f"{BASE}/api/locations",
            json={"message": "All locations deleted"},
        )

        assert client.clear_locations() == "All locations deleted"

    @responses.activate
    def test_get_location_not_found(self, client: LocationApiClient) -> None:
        responses.add(
            responses.GET,
            f"{BASE}/api/locations/missing",
            json={"error": "Location not found"},
            status=404,
        )

        with pytest.raises(ApiError) as exc_info:
            client.get_location("missing")

        assert exc_info.value.status == 404
        assert "404" in str(exc_info.value)

    @responses.activate
    def test_transport_failure(self, client: LocationApiClient) -> None:
        responses.add(
            responses.GET,
            f"{BASE}/api/health",
            body=requests.ConnectionError("refused"),
        )

        with pytest.raises(ApiError) as exc_info:
            client.health()

        assert exc_info.value.status is None

    @responses.activate
    def test_invalid_json(self, client: LocationApiClient) -> None:
        responses.add(responses.GET, f"{BASE}/api/health", body="not json")

        with pytest.raises(ApiError, match="Invalid JSON"):
            client.health()

    @responses.activate
    def test_weather_and_suggestions_pass_coordinates(self, client: LocationApiClient) -> None:
        weather = MockWeatherProvider().fetch_weather(1.5, 2.5)
        responses.add(responses.GET, f"{BASE}/api/weather", json=weather.to_dict())
        responses.add(
            responses.GET,
            f"{BASE}/api/suggestions",
            json=[s.to_dict() for s in MOCK_SUGGESTIONS[:2]],
        )

        assert client.weather(1.5, 2.5) == weather
        assert client.suggestions(1.5, 2.5) == list(MOCK_SUGGESTIONS[:2])
        assert "lat=1.5" in responses.calls[0].request.url
        assert "lon=2.5" in responses.calls[1].request.url

    @responses.activate
    def test_incomplete_record_raises_api_error(self, client: LocationApiClient) -> None:
        responses.add(
            responses.GET,
            f"{BASE}/api/locations",
            json=[{"id": "1", "latitude": 1.0}],
        )
        responses.add(responses.GET, f"{BASE}/api/locations/1", json=["not", "a", "record"])

        with pytest.raises(ApiError, match="Unexpected payload"):
            client.list_locations()
        with pytest.raises(ApiError, match="Unexpected payload"):
            client.get_location("1")

    @responses.activate
    def test_incomplete_weather_raises_api_error(self, client: LocationApiClient) -> None:
        responses.add(responses.GET, f"{BASE}/api/weather", json={"temperature": 21})

        with pytest.raises(ApiError, match="Unexpected payload"):
            client.weather(1.5, 2.5)

    def test_custom_base_path(self) -> None:
        client = LocationApiClient("http://api.test/", base_path="/v2/")

        assert client._url("/health") == "http://api.test/v2/health"
