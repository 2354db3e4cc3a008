"""HTTP client for the location history service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import requests

from travel_companion.lib.errors import ApiError
from travel_companion.models.location import LocationRecord
from travel_companion.services.providers import Suggestion, WeatherData

logger = logging.getLogger("travel_companion.client")

DEFAULT_TIMEOUT = 10

T = TypeVar("T")


class LocationApiClient:
    """Thin wrapper over the history service REST endpoints."""

    def __init__(
        self,
        base_url: str,
        base_path: str = "/api",
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Service root, e.g. ``http://localhost:5000``.
            base_path: API prefix on the service.
            timeout: Per-request timeout in seconds.
            session: Optional requests session to reuse.
        """
        self.base_url = base_url.rstrip("/")
        self.base_path = base_path.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{self.base_path}{endpoint}"

    def _call(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API call and decode the JSON response.

        Raises:
            ApiError: On transport failure or a non-2xx status.
        """
        url = self._url(endpoint)
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ApiError(f"API call failed: {e}") from e

        if not response.ok:
            raise ApiError(
                f"API call failed: {response.status_code} {response.reason}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {url}", status=response.status_code) from e

    def _convert(self, endpoint: str, convert: Callable[[Any], T], data: Any) -> T:
        """Build a model from a decoded payload.

        Raises:
            ApiError: If the payload does not have the expected shape.
        """
        try:
            return convert(data)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise ApiError(f"Unexpected payload from {self._url(endpoint)}: {e!r}") from e

    def health(self) -> dict[str, Any]:
        """Liveness check.

        Returns:
            The health payload, ``{"status": "OK", "timestamp": ...}``.
        """
        return self._call("GET", "/health")

    def list_locations(self) -> list[LocationRecord]:
        """Fetch the full location history."""
        data = self._call("GET", "/locations")
        return self._convert(
            "/locations", lambda items: [LocationRecord.from_dict(item) for item in items], data
        )

    def add_location(
        self,
        latitude: float,
        longitude: float,
        timestamp: int,
        address: str | None = None,
    ) -> LocationRecord:
        """Store a location and return the record the service assigned."""
        payload: dict[str, Any] = {
            "latitude": latitude,
            "longitude": longitude,
            "timestamp": timestamp,
        }
        if address:
            payload["address"] = address
        data = self._call("POST", "/locations", json=payload)
        return self._convert("/locations", LocationRecord.from_dict, data)

    def clear_locations(self) -> str:
        """Delete the whole history.

        Returns:
            The confirmation message.
        """
        return self._call("DELETE", "/locations").get("message", "")

    def get_location(self, record_id: str) -> LocationRecord:
        """Fetch a single record by id."""
        endpoint = f"/locations/{record_id}"
        return self._convert(endpoint, LocationRecord.from_dict, self._call("GET", endpoint))

    def weather(self, latitude: float, longitude: float) -> WeatherData:
        """Fetch weather for a location."""
        data = self._call("GET", "/weather", params={"lat": latitude, "lon": longitude})
        return self._convert("/weather", WeatherData.from_dict, data)

    def suggestions(self, latitude: float, longitude: float) -> list[Suggestion]:
        """Fetch nearby suggestions for a location."""
        data = self._call("GET", "/suggestions", params={"lat": latitude, "lon": longitude})
        return self._convert(
            "/suggestions", lambda items: [Suggestion.from_dict(item) for item in items], data
        )
