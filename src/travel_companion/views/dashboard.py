"""Dashboard page for travel-companion.

Renders a single HTML page combining travel statistics, the projected path,
the speed gauge, weather, nearby suggestions and the recent history.
"""

from __future__ import annotations

import html
from collections.abc import Sequence
from datetime import datetime, timezone

from travel_companion.models.location import LocationRecord
from travel_companion.services.providers import Suggestion, WeatherData
from travel_companion.views.path import render_path_svg
from travel_companion.views.speedometer import accuracy_level, render_speedometer_svg
from travel_companion.views.stats import TravelStats, format_distance, format_duration

STATUS_COLORS = {
    "connected": "#10B981",
    "disconnected": "#EF4444",
    "checking": "#F59E0B",
}

ACCURACY_COLORS = {
    "good": "#10B981",
    "fair": "#F59E0B",
    "poor": "#EF4444",
}

# Number of history rows shown, most recent first
HISTORY_ROWS = 10


def _get_common_css() -> str:
    """Get common CSS styles."""
    return """
        * { box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               margin: 0; padding: 20px; background: #EFF6FF; }
        .container { max-width: 1200px; margin: 0 auto; }
        h1 { color: #1F2937; }
        h2 { color: #374151; font-size: 18px; }
        .card { background: white; border-radius: 12px; padding: 16px; margin-bottom: 16px;
                box-shadow: 0 1px 3px rgba(0,0,0,0.1); }
        .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(320px, 1fr)); gap: 16px; }
        .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(140px, 1fr)); gap: 12px; }
        .stat { background: #F9FAFB; padding: 12px; border-radius: 8px; text-align: center; }
        .stat-value { font-size: 22px; font-weight: bold; color: #3B82F6; }
        .stat-label { color: #6B7280; font-size: 13px; }
        .status { font-weight: bold; }
        table { width: 100%; border-collapse: collapse; }
        th, td { padding: 8px; text-align: left; border-bottom: 1px solid #E5E7EB; font-size: 14px; }
        """


def _render_stats(stats: TravelStats) -> str:
    items = [
        (format_distance(stats.total_distance), "Distance"),
        (format_duration(stats.total_time), "Total Time"),
        (format_duration(stats.time_moving), "Moving Time"),
        (f"{stats.average_speed:.1f} km/h", "Average Speed"),
        (f"{stats.max_speed:.1f} km/h", "Max Speed"),
        (str(stats.locations_visited), "Locations"),
    ]
    return "".join(
        f'<div class="stat"><div class="stat-value">{html.escape(value)}</div>'
        f'<div class="stat-label">{label}</div></div>'
        for value, label in items
    )


def _render_accuracy(accuracy: float | None) -> str:
    if accuracy is None:
        return "<p>No GPS fix.</p>"
    level = accuracy_level(accuracy)
    return (
        f'<p>GPS accuracy: &plusmn;{accuracy:.0f} m '
        f'<span class="status" style="color: {ACCURACY_COLORS[level]}">{level}</span></p>'
    )


def _render_weather(weather: WeatherData | None) -> str:
    if weather is None:
        return "<p>Enable tracking to see local weather.</p>"
    return (
        f"<p><strong>{weather.temperature}&deg;C</strong> {html.escape(weather.condition)}"
        f" - {html.escape(weather.description)}</p>"
        f"<p>Humidity {weather.humidity}% &middot; Wind {weather.wind_speed} km/h"
        f" &middot; Visibility {weather.visibility} km</p>"
    )


def _render_suggestions(suggestions: Sequence[Suggestion]) -> str:
    if not suggestions:
        return "<p>No suggestions yet.</p>"
    rows = "".join(
        f"<tr><td>{html.escape(s.name)}</td><td>{html.escape(s.type)}</td>"
        f"<td>{html.escape(s.distance)}</td><td>{s.rating:.1f}</td></tr>"
        for s in suggestions
    )
    return (
        "<table><thead><tr><th>Name</th><th>Type</th><th>Distance</th><th>Rating</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _render_history(locations: Sequence[LocationRecord]) -> str:
    if not locations:
        return "<p>No locations recorded yet.</p>"
    rows = []
    for loc in list(locations)[-HISTORY_ROWS:][::-1]:
        when = datetime.fromtimestamp(loc.timestamp / 1000, tz=timezone.utc)
        rows.append(
            f"<tr><td>{when.strftime('%Y-%m-%d %H:%M:%S')}</td>"
            f"<td>{loc.latitude:.6f}</td><td>{loc.longitude:.6f}</td>"
            f"<td>{html.escape(loc.address or '')}</td></tr>"
        )
    return (
        "<table><thead><tr><th>Time (UTC)</th><th>Latitude</th><th>Longitude</th>"
        f"<th>Address</th></tr></thead><tbody>{''.join(rows)}</tbody></table>"
    )


def generate_dashboard(
    locations: Sequence[LocationRecord],
    stats: TravelStats,
    weather: WeatherData | None = None,
    suggestions: Sequence[Suggestion] = (),
    app_name: str = "Smart Travel Companion",
    app_version: str = "",
    server_status: str = "checking",
    current_speed: float = 0.0,
    heading: float = 0.0,
    map_url: str | None = None,
    accuracy: float | None = None,
) -> str:
    """Generate the dashboard HTML page.

    Args:
        locations: Location history in arrival order.
        stats: Statistics derived from the history.
        weather: Weather at the latest location, if any.
        suggestions: Nearby suggestions for the latest location.
        app_name: Application name shown in the header.
        app_version: Application version shown in the footer.
        server_status: One of checking, connected, disconnected.
        current_speed: Instantaneous speed for the gauge, km/h.
        heading: Heading for the gauge needle, degrees.
        map_url: Optional link to the full map page.
        accuracy: Horizontal accuracy of the current fix in meters, if any.

    Returns:
        HTML content as string.
    """
    path_svg = render_path_svg([loc.coords for loc in locations])
    gauge_svg = render_speedometer_svg(current_speed, heading)
    status_color = STATUS_COLORS.get(server_status, STATUS_COLORS["checking"])
    map_link = f'<p><a href="{html.escape(map_url)}">Open full map</a></p>' if map_url else ""

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(app_name)}</title>
    <style>
        {_get_common_css()}
    </style>
</head>
<body>
    <div class="container">
        <h1>{html.escape(app_name)}</h1>
        <p>Server: <span class="status" style="color: {status_color}">{html.escape(server_status.title())}</span></p>

        <div class="card">
            <h2>Travel Statistics</h2>
            <div class="stats">{_render_stats(stats)}</div>
        </div>

        <div class="grid">
            <div class="card">
                <h2>Path</h2>
                {path_svg}
                {map_link}
            </div>
            <div class="card">
                <h2>Speed</h2>
                {gauge_svg}
                {_render_accuracy(accuracy)}
            </div>
            <div class="card">
                <h2>Weather</h2>
                {_render_weather(weather)}
            </div>
        </div>

        <div class="card">
            <h2>Nearby</h2>
            {_render_suggestions(suggestions)}
        </div>

        <div class="card">
            <h2>Recent Locations</h2>
            {_render_history(locations)}
        </div>

        <p style="color: #9CA3AF; font-size: 12px;">{html.escape(app_name)} {html.escape(app_version)}</p>
    </div>
</body>
</html>"""
