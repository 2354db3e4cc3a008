"""Location history HTTP service for travel-companion.

Translates REST calls into location store operations. Requests are handled
one at a time on a single-threaded server; every mutation is a full
read-modify-write of the backing file.
"""

from __future__ import annotations

import http.server
import json
import logging
import socketserver
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from travel_companion.config import Config, ServerConfig
from travel_companion.lib.errors import (
    NotFoundError,
    StorageError,
    TravelCompanionError,
    ValidationError,
)
from travel_companion.models.store import JsonFileLocationStore, LocationStore
from travel_companion.services.providers import (
    MockNearbyProvider,
    MockWeatherProvider,
    NearbyProvider,
    WeatherProvider,
)
from travel_companion.views.dashboard import generate_dashboard
from travel_companion.views.map import generate_map
from travel_companion.views.stats import calculate_travel_stats

logger = logging.getLogger("travel_companion.api")

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_HEADERS = "Content-Type, Authorization"


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class LocationApiHandler(http.server.BaseHTTPRequestHandler):
    """HTTP request handler for the location history service."""

    # Set by create_server()
    store: LocationStore
    server_config: ServerConfig
    app_config: Config
    weather_provider: WeatherProvider
    nearby_provider: NearbyProvider

    def do_OPTIONS(self) -> None:
        """Answer CORS preflight requests."""
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:
        """Handle GET requests."""
        self._dispatch("GET")

    def do_POST(self) -> None:
        """Handle POST requests."""
        self._dispatch("POST")

    def do_DELETE(self) -> None:
        """Handle DELETE requests."""
        self._dispatch("DELETE")

    def do_PUT(self) -> None:
        """Handle PUT requests (no PUT routes exist)."""
        self._dispatch("PUT")

    def _dispatch(self, method: str) -> None:
        parsed = urlparse(self.path)
        path = unquote(parsed.path).rstrip("/") or "/"
        query = parse_qs(parsed.query)
        base = self.server_config.base_path

        try:
            if method == "GET" and path in ("/", "/index.html"):
                self._serve_dashboard()
            elif method == "GET" and path == "/map":
                self._send_html(generate_map(self.store.list_all(), self.app_config.client.app_name))
            elif path == f"{base}/health" and method == "GET":
                self._send_json(200, {"status": "OK", "timestamp": utc_timestamp()})
            elif path == f"{base}/locations":
                if method == "GET":
                    self._list_locations()
                elif method == "POST":
                    self._add_location()
                elif method == "DELETE":
                    self._clear_locations()
                else:
                    self._route_not_found()
            elif path.startswith(f"{base}/locations/") and method == "GET":
                self._get_location(path[len(f"{base}/locations/"):])
            elif path == f"{base}/weather" and method == "GET":
                lat, lon = self._coordinates(query)
                self._send_json(200, self.weather_provider.fetch_weather(lat, lon).to_dict())
            elif path == f"{base}/suggestions" and method == "GET":
                lat, lon = self._coordinates(query)
                suggestions = self.nearby_provider.fetch_nearby(lat, lon)
                self._send_json(200, [s.to_dict() for s in suggestions])
            else:
                self._route_not_found()
        except ValidationError as e:
            self._send_json(400, {"error": str(e)})
        except TravelCompanionError as e:
            self._send_json(e.status_code, {"error": str(e)})
        except Exception:
            logger.exception("Unhandled error for %s %s", method, self.path)
            self._send_json(500, {"error": "Something went wrong!"})

    def _list_locations(self) -> None:
        try:
            locations = self.store.list_all()
        except StorageError:
            self._send_json(500, {"error": "Failed to fetch locations"})
            return
        self._send_json(200, [loc.to_dict() for loc in locations])

    def _add_location(self) -> None:
        body = self._read_json_body()
        try:
            record = self.store.append(body)
        except StorageError:
            self._send_json(500, {"error": "Failed to save location"})
            return
        logger.info("Added location %s", record.id)
        self._send_json(201, record.to_dict())

    def _clear_locations(self) -> None:
        try:
            self.store.clear()
        except StorageError:
            self._send_json(500, {"error": "Failed to delete locations"})
            return
        self._send_json(200, {"message": "All locations deleted"})

    def _get_location(self, record_id: str) -> None:
        try:
            record = self.store.get_by_id(record_id)
        except NotFoundError:
            self._send_json(404, {"error": "Location not found"})
            return
        except StorageError:
            self._send_json(500, {"error": "Failed to fetch location"})
            return
        self._send_json(200, record.to_dict())

    def _serve_dashboard(self) -> None:
        locations = self.store.list_all()
        stats = calculate_travel_stats(locations)
        weather = None
        suggestions = []
        if locations:
            latest = locations[-1]
            weather = self.weather_provider.fetch_weather(latest.latitude, latest.longitude)
            suggestions = self.nearby_provider.fetch_nearby(latest.latitude, latest.longitude)

        client = self.app_config.client
        content = generate_dashboard(
            locations,
            stats,
            weather=weather,
            suggestions=suggestions,
            app_name=client.app_name,
            app_version=client.app_version,
            server_status="connected",
            map_url="/map",
        )
        self._send_html(content)

    def _route_not_found(self) -> None:
        self._send_json(404, {"error": "Route not found"})

    def _coordinates(self, query: dict[str, list[str]]) -> tuple[float, float]:
        try:
            return float(query["lat"][0]), float(query["lon"][0])
        except (KeyError, IndexError, ValueError) as e:
            raise ValidationError("lat and lon query parameters are required") from e

    def _read_json_body(self) -> Any:
        """Decode a JSON request body; anything that is not JSON yields an empty body."""
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length > 0 else b""

        content_type = (self.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        if content_type != "application/json" or not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {}

    def _send_cors_headers(self) -> None:
        origin = self.headers.get("Origin")
        if origin and origin in self.server_config.allowed_origins:
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Access-Control-Allow-Credentials", "true")
            self.send_header("Access-Control-Allow-Methods", CORS_METHODS)
            self.send_header("Access-Control-Allow-Headers", CORS_HEADERS)
            self.send_header("Vary", "Origin")

    def _send_json(self, status: int, data: Any) -> None:
        """Send JSON response."""
        encoded = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self._send_cors_headers()
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _send_html(self, content: str) -> None:
        """Send HTML response."""
        encoded = content.encode("utf-8")
        self.send_response(200)
        self._send_cors_headers()
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args: object) -> None:
        """Route access logs through the package logger."""
        logger.info("%s - %s", self.address_string(), format % args)


def create_server(
    config: Config,
    store: LocationStore | None = None,
    host: str | None = None,
    port: int | None = None,
    weather_provider: WeatherProvider | None = None,
    nearby_provider: NearbyProvider | None = None,
) -> socketserver.TCPServer:
    """Create (but do not start) the history service.

    Args:
        config: Application configuration.
        store: Location store; defaults to the configured JSON file.
        host: Bind host; defaults to the configured host.
        port: Bind port; defaults to the configured port. 0 picks a free port.
        weather_provider: Weather source; defaults to mock data.
        nearby_provider: Nearby-place source; defaults to mock data.

    Returns:
        A bound single-threaded TCP server.
    """
    handler = type(
        "BoundLocationApiHandler",
        (LocationApiHandler,),
        {
            "store": store or JsonFileLocationStore(config.data.locations_file),
            "server_config": config.server,
            "app_config": config,
            "weather_provider": weather_provider or MockWeatherProvider(),
            "nearby_provider": nearby_provider or MockNearbyProvider(),
        },
    )

    socketserver.TCPServer.allow_reuse_address = True
    bind_host = host if host is not None else config.server.host
    bind_port = port if port is not None else config.server.port
    return socketserver.TCPServer((bind_host, bind_port), handler)


def start_server(
    config: Config,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the history service until interrupted.

    Args:
        config: Application configuration.
        host: Bind host override.
        port: Bind port override.
    """
    with create_server(config, host=host, port=port) as httpd:
        bound_host, bound_port = httpd.server_address[:2]
        base = config.server.base_path
        logger.info("Server running on http://%s:%s", bound_host, bound_port)
        logger.info("Health check: http://%s:%s%s/health", bound_host, bound_port, base)
        logger.info("Allowed origins: %s", ", ".join(config.server.allowed_origins))
        logger.info("Data storage: %s", config.data.locations_file)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped")
