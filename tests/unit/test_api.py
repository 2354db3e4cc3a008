"""Tests for the location history HTTP service.

Each test runs a real server on a free port in a background thread.
"""

from __future__ import annotations

import json
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest
import requests

from travel_companion.config import Config
from travel_companion.lib.errors import StorageError
from travel_companion.models.store import JsonFileLocationStore
from travel_companion.services.api import create_server, utc_timestamp
from travel_companion.services.providers import MockWeatherProvider

POINT = {"latitude": 40.7128, "longitude": -74.0060, "timestamp": 1700000000000}


def _post(base: str, body: object) -> requests.Response:
    return requests.post(f"{base}/api/locations", json=body, timeout=5)


@pytest.mark.ai_generated
class TestHealth:
    """Tests for the liveness check."""

    def test_health(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/health", timeout=5)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", data["timestamp"])

    def test_utc_timestamp_format(self) -> None:
        assert utc_timestamp().endswith("Z")


@pytest.mark.ai_generated
class TestLocations:
    """Tests for the location endpoints."""

    def test_empty_history(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/locations", timeout=5)

        assert response.status_code == 200
        assert response.json() == []

    def test_append_then_list(self, live_server: str, server_config: Config) -> None:
        response = _post(live_server, {**POINT, "address": "City Hall"})

        assert response.status_code == 201
        created = response.json()
        assert created["latitude"] == POINT["latitude"]
        assert created["address"] == "City Hall"
        assert created["id"].isdigit()

        listed = requests.get(f"{live_server}/api/locations", timeout=5).json()
        assert listed == [created]

        on_disk = json.loads(server_config.data.locations_file.read_text())
        assert on_disk == [created]

    def test_list_preserves_append_order(self, live_server: str) -> None:
        ids = [_post(live_server, {**POINT, "latitude": float(i)}).json()["id"] for i in range(3)]

        listed = requests.get(f"{live_server}/api/locations", timeout=5).json()

        assert [item["id"] for item in listed] == ids

    def test_missing_field(self, live_server: str) -> None:
        response = _post(live_server, {"latitude": 1.0, "longitude": 2.0})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_missing_latitude_leaves_history_unchanged(self, live_server: str) -> None:
        first = _post(live_server, POINT).json()

        response = _post(live_server, {"longitude": -74.0, "timestamp": 1700000060000})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
        listed = requests.get(f"{live_server}/api/locations", timeout=5).json()
        assert listed == [first]

    def test_overflowing_timestamp_rejected(self, live_server: str) -> None:
        response = requests.post(
            f"{live_server}/api/locations",
            data='{"latitude": 1, "longitude": 1, "timestamp": 1e400}',
            headers={"Content-Type": "application/json"},
            timeout=5,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid value for: timestamp"}
        assert requests.get(f"{live_server}/api/locations", timeout=5).json() == []

    def test_zero_coordinates_accepted(self, live_server: str) -> None:
        response = _post(live_server, {"latitude": 0, "longitude": 0, "timestamp": 1})

        assert response.status_code == 201

    def test_non_json_body(self, live_server: str) -> None:
        response = requests.post(
            f"{live_server}/api/locations",
            data="latitude=1&longitude=2&timestamp=3",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=5,
        )

        assert response.status_code == 400

    def test_malformed_json(self, live_server: str) -> None:
        response = requests.post(
            f"{live_server}/api/locations",
            data="{oops",
            headers={"Content-Type": "application/json"},
            timeout=5,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_get_by_id(self, live_server: str) -> None:
        created = _post(live_server, POINT).json()

        response = requests.get(f"{live_server}/api/locations/{created['id']}", timeout=5)

        assert response.status_code == 200
        assert response.json() == created

    def test_get_by_id_not_found(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/locations/12345", timeout=5)

        assert response.status_code == 404
        assert response.json() == {"error": "Location not found"}

    def test_clear(self, live_server: str) -> None:
        _post(live_server, POINT)

        response = requests.delete(f"{live_server}/api/locations", timeout=5)

        assert response.status_code == 200
        assert response.json() == {"message": "All locations deleted"}
        assert requests.get(f"{live_server}/api/locations", timeout=5).json() == []

    def test_clear_empty_history(self, live_server: str) -> None:
        response = requests.delete(f"{live_server}/api/locations", timeout=5)

        assert response.status_code == 200


@pytest.mark.ai_generated
class TestRouting:
    """Tests for unknown routes, CORS and pages."""

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/api/nothing"),
            ("PUT", "/api/locations"),
            ("DELETE", "/api/locations/1"),
            ("POST", "/api/health"),
        ],
    )
    def test_route_not_found(self, live_server: str, method: str, path: str) -> None:
        response = requests.request(method, f"{live_server}{path}", timeout=5)

        assert response.status_code == 404
        assert response.json() == {"error": "Route not found"}

    def test_cors_allowed_origin(self, live_server: str) -> None:
        response = requests.get(
            f"{live_server}/api/health",
            headers={"Origin": "http://localhost:3000"},
            timeout=5,
        )

        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    def test_cors_other_origin(self, live_server: str) -> None:
        response = requests.get(
            f"{live_server}/api/health",
            headers={"Origin": "http://evil.test"},
            timeout=5,
        )

        assert response.status_code == 200
        assert "Access-Control-Allow-Origin" not in response.headers

    def test_preflight(self, live_server: str) -> None:
        response = requests.options(
            f"{live_server}/api/locations",
            headers={"Origin": "http://localhost:3000"},
            timeout=5,
        )

        assert response.status_code == 204
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    def test_dashboard_page(self, live_server: str) -> None:
        _post(live_server, POINT)

        response = requests.get(f"{live_server}/", timeout=5)

        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/html")
        assert "Smart Travel Companion" in response.text
        assert "<svg" in response.text

    def test_map_page(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/map", timeout=5)

        assert response.status_code == 200
        assert "leaflet" in response.text
        assert "No locations recorded yet" in response.text

    def test_weather(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/weather?lat=1.5&lon=2.5", timeout=5)

        assert response.status_code == 200
        assert set(response.json()) == {
            "temperature", "condition", "humidity", "windSpeed", "visibility", "description",
        }

    def test_weather_requires_coordinates(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/weather", timeout=5)

        assert response.status_code == 400

    def test_suggestions(self, live_server: str) -> None:
        response = requests.get(f"{live_server}/api/suggestions?lat=1&lon=2", timeout=5)

        assert response.status_code == 200
        assert len(response.json()) == 6


class BrokenStore(JsonFileLocationStore):
    """Store whose backing file can never be read."""

    def _read(self) -> list:
        raise StorageError("Failed to read locations")


class ExplodingWeather(MockWeatherProvider):
    """Weather provider failing with an unexpected error."""

    def fetch_weather(self, latitude: float, longitude: float):
        raise RuntimeError("boom")


@contextmanager
def running(httpd) -> Iterator[str]:
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    host, port = httpd.server_address[:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join()


@pytest.mark.ai_generated
class TestFailures:
    """Tests for failures surfacing as 500 responses."""

    @pytest.fixture
    def broken_server(self, server_config: Config, tmp_path: Path) -> Iterator[str]:
        with running(create_server(server_config, store=BrokenStore(tmp_path / "x.json"))) as url:
            yield url

    def test_list_failure(self, broken_server: str) -> None:
        response = requests.get(f"{broken_server}/api/locations", timeout=5)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch locations"}

    def test_append_failure(self, broken_server: str) -> None:
        response = _post(broken_server, POINT)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save location"}

    def test_get_failure(self, broken_server: str) -> None:
        response = requests.get(f"{broken_server}/api/locations/1", timeout=5)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch location"}

    def test_unexpected_error(self, server_config: Config) -> None:
        httpd = create_server(server_config, weather_provider=ExplodingWeather())
        with running(httpd) as url:
            response = requests.get(f"{url}/api/weather?lat=1&lon=2", timeout=5)

        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong!"}

    def test_malformed_record_on_disk(self, server_config: Config) -> None:
        path = server_config.data.locations_file
        path.parent.mkdir(parents=True)
        path.write_text('[{"id": "1", "latitude": 1.0}]')

        with running(create_server(server_config)) as url:
            listed = requests.get(f"{url}/api/locations", timeout=5)
            single = requests.get(f"{url}/api/locations/1", timeout=5)
            added = _post(url, POINT)

        assert listed.status_code == 500
        assert listed.json() == {"error": "Failed to fetch locations"}
        assert single.json() == {"error": "Failed to fetch location"}
        assert added.json() == {"error": "Failed to save location"}
        assert path.read_text() == '[{"id": "1", "latitude": 1.0}]'
