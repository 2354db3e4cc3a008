"""Command-line interface for travel-companion.

Provides CLI commands to run the location history service, manage the
history through its API, replay tracks through the sampler and sync task,
and view statistics, paths and maps.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from travel_companion import __version__
from travel_companion.config import DEFAULT_CONFIG_PATH, load_config
from travel_companion.lib.errors import ApiError, NotFoundError, StorageError

if TYPE_CHECKING:
    from travel_companion.config import Config
    from travel_companion.models.location import LocationRecord
    from travel_companion.services.client import LocationApiClient
    from travel_companion.services.geolocation import Position
    from travel_companion.services.providers import Suggestion, WeatherData


class JSONOutput:
    """Helper for JSON output formatting."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value in the output."""
        self._data[key] = value

    def update(self, data: dict[str, Any]) -> None:
        """Update with multiple values."""
        self._data.update(data)

    def output(self) -> None:
        """Print JSON output if enabled."""
        if self.enabled:
            click.echo(json.dumps(self._data, indent=2, default=str))


class Context:
    """CLI context holding shared configuration and state."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False
        self.output: JSONOutput = JSONOutput()

    def log(self, message: str, level: int = 0) -> None:
        """Log a message if verbosity allows.

        Args:
            message: Message to log.
            level: Required verbosity level (0=normal, 1=-v, 2=-vv).
        """
        if self.json_output:
            return
        if self.quiet and level == 0:
            return
        if level <= self.verbose or level == 0:
            click.echo(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        if self.json_output:
            self.output.set("error", message)
            self.output.set("status", "error")
        else:
            click.echo(f"Error: {message}", err=True)

    def fail(self, message: str, code: int = 1) -> None:
        """Report an error and exit."""
        self.error(message)
        if self.json_output:
            self.output.output()
        sys.exit(code)

    def client(self) -> LocationApiClient:
        """API client for the configured service."""
        from travel_companion.services.client import LocationApiClient

        if self.config is None:
            raise RuntimeError("Configuration not loaded")
        return LocationApiClient(self.config.client.api_url, self.config.server.base_path)


pass_context = click.make_pass_decorator(Context, ensure=True)


def _record_line(record: LocationRecord) -> str:
    address = f"  {record.address}" if record.address else ""
    return f"{record.id}  {record.latitude:.6f}, {record.longitude:.6f}  t={record.timestamp}{address}"


def _load_locations(ctx: Context, local: bool) -> list[LocationRecord]:
    """Load the history from the data file or from the service."""
    from travel_companion.models.store import JsonFileLocationStore

    if ctx.config is None:
        raise RuntimeError("Configuration not loaded")
    if local:
        return JsonFileLocationStore(ctx.config.data.locations_file).list_all()
    return ctx.client().list_locations()


local_option = click.option(
    "--local",
    is_flag=True,
    help="Read the data file directly instead of calling the API",
)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
)
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Data directory path (default: ./data)",
)
@click.option(
    "--api-url",
    default=None,
    help="History service URL (default: http://localhost:5000)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv, -vvv)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-error output",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format",
)
@click.version_option(version=__version__, prog_name="travel-companion")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    data_dir: Path | None,
    api_url: str | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Smart Travel Companion CLI.

    Run the location history service, track positions, and view travel
    statistics, paths and maps.
    """
    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output
    ctx.output = JSONOutput(json_output)

    ctx.config = load_config(config_path)

    if data_dir is not None:
        ctx.config.data.directory = data_dir
    if api_url is not None:
        ctx.config.client.api_url = api_url


@main.command()
@click.option(
    "--host",
    default=None,
    help="Server host (default: from config, 127.0.0.1)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Server port (default: from config, 5000)",
)
@pass_context
def serve(ctx: Context, host: str | None, port: int | None) -> None:
    """Run the location history service."""
    import logging

    from travel_companion.config import ensure_data_dir
    from travel_companion.lib.logging import setup_logging
    from travel_companion.services.api import start_server

    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")
        return

    try:
        ensure_data_dir(config)
        setup_logging(
            config,
            console_level=logging.DEBUG if ctx.verbose else logging.INFO,
            quiet=ctx.quiet,
        )
        start_server(config, host=host, port=port)
    except OSError as e:
        ctx.fail(f"Server failed: {e}")


@main.command()
@pass_context
def health(ctx: Context) -> None:
    """Check that the history service is reachable."""
    try:
        result = ctx.client().health()
    except ApiError as e:
        ctx.fail(f"Server unreachable: {e}")
        return

    if ctx.json_output:
        ctx.output.update({"status": "success", "server": result})
        ctx.output.output()
    else:
        ctx.log(f"Server status: {result.get('status')} ({result.get('timestamp')})")


@main.group()
def history() -> None:
    """Manage the stored location history."""
    pass


@history.command(name="list")
@local_option
@pass_context
def history_list(ctx: Context, local: bool) -> None:
    """List every stored location."""
    try:
        locations = _load_locations(ctx, local)
    except (ApiError, StorageError) as e:
        ctx.fail(f"Failed to fetch locations: {e}")
        return

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "count": len(locations),
            "locations": [loc.to_dict() for loc in locations],
        })
        ctx.output.output()
        return

    ctx.log(f"{len(locations)} locations")
    for record in locations:
        ctx.log(_record_line(record))


@history.command(name="show")
@click.argument("record_id")
@pass_context
def history_show(ctx: Context, record_id: str) -> None:
    """Show a single location by id."""
    try:
        record = ctx.client().get_location(record_id)
    except ApiError as e:
        if e.status == 404:
            ctx.fail(f"Location not found: {record_id}")
        ctx.fail(f"Failed to fetch location: {e}")
        return

    if ctx.json_output:
        ctx.output.update({"status": "success", "location": record.to_dict()})
        ctx.output.output()
    else:
        ctx.log(_record_line(record))


@history.command(name="add")
@click.argument("latitude", type=float)
@click.argument("longitude", type=float)
@click.option(
    "--timestamp",
    type=int,
    default=None,
    help="Epoch milliseconds (default: now)",
)
@click.option(
    "--address",
    default=None,
    help="Optional address label",
)
@pass_context
def history_add(
    ctx: Context,
    latitude: float,
    longitude: float,
    timestamp: int | None,
    address: str | None,
) -> None:
    """Store a location through the API."""
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    try:
        record = ctx.client().add_location(latitude, longitude, timestamp, address)
    except ApiError as e:
        ctx.fail(f"Failed to save location: {e}", code=2 if e.status == 400 else 1)
        return

    if ctx.json_output:
        ctx.output.update({"status": "success", "location": record.to_dict()})
        ctx.output.output()
    else:
        ctx.log(f"Stored location {record.id}")


@history.command(name="clear")
@click.option(
    "--yes",
    is_flag=True,
    help="Do not ask for confirmation",
)
@pass_context
def history_clear(ctx: Context, yes: bool) -> None:
    """Delete the whole location history."""
    if not yes and not ctx.json_output:
        click.confirm("Delete all stored locations?", abort=True)

    try:
        message = ctx.client().clear_locations()
    except ApiError as e:
        ctx.fail(f"Failed to delete locations: {e}")
        return

    if ctx.json_output:
        ctx.output.update({"status": "success", "message": message})
        ctx.output.output()
    else:
        ctx.log(message)


@main.command()
@click.argument("track_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Sync interval in seconds (default: from config, 10)",
)
@click.option(
    "--replay-interval",
    type=float,
    default=1.0,
    help="Seconds between replayed fixes (default: 1)",
)
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: when the track ends)",
)
@click.option(
    "--dashboard",
    "dashboard_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Write the dashboard page for the final state to this file",
)
@pass_context
def track(
    ctx: Context,
    track_file: Path,
    interval: float | None,
    replay_interval: float,
    duration: float | None,
    dashboard_path: Path | None,
) -> None:
    """Replay a recorded track through the sampler and periodic sync.

    TRACK_FILE is a CSV or JSON file of fixes (latitude, longitude and
    optionally accuracy, speed in m/s, heading, timestamp).
    """
    import logging

    from travel_companion.lib.logging import setup_logging
    from travel_companion.services.geolocation import (
        GeolocationSampler,
        ReplayPositionSource,
        load_track_file,
    )
    from travel_companion.services.sync import TrackingSession
    from travel_companion.views.speedometer import accuracy_level
    from travel_companion.views.stats import calculate_travel_stats, format_stats

    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")
        return

    fixes = load_track_file(track_file)
    if not fixes:
        ctx.fail(f"No usable fixes in {track_file}", code=2)
        return

    try:
        setup_logging(
            config,
            console_level=logging.DEBUG if ctx.verbose else logging.INFO,
            quiet=ctx.quiet or ctx.json_output,
        )
    except OSError as e:
        ctx.fail(f"Cannot set up logging: {e}")
        return

    sync_interval = interval or config.client.sync_interval
    if duration is None:
        duration = len(fixes) * replay_interval + sync_interval

    sampler = GeolocationSampler(ReplayPositionSource(fixes, interval=replay_interval))
    session = TrackingSession(ctx.client(), sampler, interval=sync_interval)

    ctx.log(f"Replaying {len(fixes)} fixes, syncing every {sync_interval:g}s")
    try:
        with session:
            session.start_tracking()
            time.sleep(duration)
    except KeyboardInterrupt:
        ctx.log("\nTracking stopped")

    snap = session.state.snapshot()
    position = snap.position
    stats = calculate_travel_stats(list(snap.locations), position.speed if position else 0.0)

    if dashboard_path:
        try:
            html = _build_dashboard(
                ctx, config, list(snap.locations), False, snap.server_status, position
            )
        except ApiError as e:
            ctx.fail(f"Dashboard generation failed: {e}")
            return
        dashboard_path.write_text(html)

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "server_status": snap.server_status,
            "geo_error": snap.geo_error,
            "stats": stats.to_dict(),
        })
        if position:
            ctx.output.set("position", {
                "latitude": position.latitude,
                "longitude": position.longitude,
                "accuracy": position.accuracy,
                "accuracy_level": accuracy_level(position.accuracy),
            })
        ctx.output.output()
    else:
        if snap.geo_error:
            ctx.log(f"Geolocation error: {snap.geo_error}")
        if position:
            ctx.log(
                f"Last fix: {position.latitude:.6f}, {position.longitude:.6f} "
                f"(accuracy {position.accuracy:.0f} m, {accuracy_level(position.accuracy)})"
            )
        ctx.log(f"Server: {snap.server_status}")
        ctx.log(format_stats(stats))
        if dashboard_path:
            ctx.log(f"Dashboard saved to {dashboard_path}")


@main.group()
def view() -> None:
    """View travel statistics, paths and maps."""
    pass


@view.command(name="stats")
@click.option(
    "--current-speed",
    type=float,
    default=0.0,
    help="Instantaneous speed in km/h (floor for max speed)",
)
@local_option
@pass_context
def stats(ctx: Context, current_speed: float, local: bool) -> None:
    """Display travel statistics."""
    from travel_companion.views.stats import calculate_travel_stats, format_stats

    try:
        locations = _load_locations(ctx, local)
    except (ApiError, StorageError) as e:
        ctx.fail(f"Stats calculation failed: {e}")
        return

    result = calculate_travel_stats(locations, current_speed)

    if ctx.json_output:
        ctx.output.update({"status": "success", "stats": result.to_dict()})
        ctx.output.output()
    else:
        ctx.log(format_stats(result))


@view.command(name="path")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output SVG file (default: stdout)",
)
@click.option("--width", type=int, default=300, help="Canvas width (default: 300)")
@click.option("--height", type=int, default=200, help="Canvas height (default: 200)")
@local_option
@pass_context
def path_cmd(
    ctx: Context,
    output: Path | None,
    width: int,
    height: int,
    local: bool,
) -> None:
    """Render the travelled path as SVG."""
    from travel_companion.views.path import render_path_svg

    try:
        locations = _load_locations(ctx, local)
    except (ApiError, StorageError) as e:
        ctx.fail(f"Path rendering failed: {e}")
        return

    svg = render_path_svg([loc.coords for loc in locations], width, height)
    if output:
        output.write_text(svg)
        ctx.log(f"Path saved to {output}")
    else:
        click.echo(svg)


@view.command(name="map")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output HTML file (default: stdout or ./map.html)",
)
@click.option(
    "--serve",
    "serve_output",
    is_flag=True,
    help="Start local HTTP server to view map",
)
@click.option(
    "--port",
    default=8080,
    help="Server port (default: 8080)",
)
@local_option
@pass_context
def map_cmd(
    ctx: Context,
    output: Path | None,
    serve_output: bool,
    port: int,
    local: bool,
) -> None:
    """Generate interactive map visualization."""
    from travel_companion.views.map import generate_map, serve_map

    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")
        return

    try:
        locations = _load_locations(ctx, local)
    except (ApiError, StorageError) as e:
        ctx.fail(f"Map generation failed: {e}")
        return

    html = generate_map(locations, title=config.client.app_name)

    if serve_output:
        output_path = output or Path("./map.html")
        output_path.write_text(html)
        ctx.log(f"Map saved to {output_path}")
        ctx.log(f"Starting server at http://127.0.0.1:{port}")
        serve_map(output_path, port=port)
    elif output:
        output.write_text(html)
        ctx.log(f"Map saved to {output}")
    else:
        click.echo(html)


def _resolve_point(
    ctx: Context,
    lat: float | None,
    lon: float | None,
    local: bool,
) -> tuple[float, float]:
    """Explicit coordinates, else the latest stored location."""
    if lat is not None and lon is not None:
        return lat, lon
    locations = _load_locations(ctx, local)
    if not locations:
        raise NotFoundError("No locations recorded yet; pass --lat and --lon")
    return locations[-1].coords


point_options = [
    click.option("--lat", type=float, default=None, help="Latitude (default: latest location)"),
    click.option("--lon", type=float, default=None, help="Longitude (default: latest location)"),
    local_option,
]


def _with_point_options(func: Any) -> Any:
    for option in reversed(point_options):
        func = option(func)
    return func


def _fetch_weather(ctx: Context, latitude: float, longitude: float, local: bool) -> WeatherData:
    """Weather from the service, or from the built-in provider with --local."""
    if local:
        from travel_companion.services.providers import MockWeatherProvider

        return MockWeatherProvider().fetch_weather(latitude, longitude)
    return ctx.client().weather(latitude, longitude)


def _fetch_suggestions(
    ctx: Context, latitude: float, longitude: float, local: bool
) -> list[Suggestion]:
    """Nearby places from the service, or from the built-in provider with --local."""
    if local:
        from travel_companion.services.providers import MockNearbyProvider

        return MockNearbyProvider().fetch_nearby(latitude, longitude)
    return ctx.client().suggestions(latitude, longitude)


@view.command(name="weather")
@_with_point_options
@pass_context
def weather(ctx: Context, lat: float | None, lon: float | None, local: bool) -> None:
    """Show weather at a location."""
    try:
        latitude, longitude = _resolve_point(ctx, lat, lon, local)
    except NotFoundError as e:
        ctx.fail(str(e), code=2)
        return
    except (ApiError, StorageError) as e:
        ctx.fail(f"Failed to fetch locations: {e}")
        return

    try:
        data = _fetch_weather(ctx, latitude, longitude, local)
    except ApiError as e:
        ctx.fail(f"Failed to fetch weather: {e}")
        return

    if ctx.json_output:
        ctx.output.update({"status": "success", "weather": data.to_dict()})
        ctx.output.output()
    else:
        ctx.log(f"Weather at {latitude:.4f}, {longitude:.4f}")
        ctx.log(f"  {data.temperature}°C, {data.condition} - {data.description}")
        ctx.log(f"  Humidity {data.humidity}%, wind {data.wind_speed} km/h, "
                f"visibility {data.visibility} km")


@view.command(name="nearby")
@_with_point_options
@pass_context
def nearby(ctx: Context, lat: float | None, lon: float | None, local: bool) -> None:
    """Show suggested places near a location."""
    try:
        latitude, longitude = _resolve_point(ctx, lat, lon, local)
    except NotFoundError as e:
        ctx.fail(str(e), code=2)
        return
    except (ApiError, StorageError) as e:
        ctx.fail(f"Failed to fetch locations: {e}")
        return

    try:
        suggestions = _fetch_suggestions(ctx, latitude, longitude, local)
    except ApiError as e:
        ctx.fail(f"Failed to fetch suggestions: {e}")
        return

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "suggestions": [s.to_dict() for s in suggestions],
        })
        ctx.output.output()
    else:
        for s in suggestions:
            ctx.log(f"{s.name} ({s.type}, {s.distance}, {s.rating:.1f}) - {s.description}")


def _build_dashboard(
    ctx: Context,
    config: Config,
    locations: list[LocationRecord],
    local: bool,
    server_status: str,
    position: Position | None = None,
) -> str:
    """Dashboard page for a history, with weather and places at its latest point."""
    from travel_companion.views.dashboard import generate_dashboard
    from travel_companion.views.stats import calculate_travel_stats

    weather_data = None
    suggestions: list[Suggestion] = []
    if locations:
        latitude, longitude = locations[-1].coords
        weather_data = _fetch_weather(ctx, latitude, longitude, local)
        suggestions = _fetch_suggestions(ctx, latitude, longitude, local)

    current_speed = position.speed if position else 0.0
    return generate_dashboard(
        locations,
        calculate_travel_stats(locations, current_speed),
        weather=weather_data,
        suggestions=suggestions,
        app_name=config.client.app_name,
        app_version=config.client.app_version,
        server_status=server_status,
        current_speed=current_speed,
        heading=position.heading if position else 0.0,
        accuracy=position.accuracy if position else None,
    )


@view.command(name="dashboard")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output HTML file (default: stdout)",
)
@local_option
@pass_context
def dashboard(ctx: Context, output: Path | None, local: bool) -> None:
    """Generate the dashboard page."""
    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")
        return

    try:
        locations = _load_locations(ctx, local)
        html = _build_dashboard(
            ctx, config, locations, local, server_status="checking" if local else "connected"
        )
    except (ApiError, StorageError) as e:
        ctx.fail(f"Dashboard generation failed: {e}")
        return

    if output:
        output.write_text(html)
        ctx.log(f"Dashboard saved to {output}")
    else:
        click.echo(html)


if __name__ == "__main__":
    main()
