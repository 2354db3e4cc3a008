"""Map visualization for travel-companion.

Generates an interactive HTML map of the location history using Leaflet.js
with OpenStreetMap tiles.
"""

from __future__ import annotations

import html
import http.server
import json
import socketserver
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from travel_companion.lib.geo import bounds
from travel_companion.models.location import LocationRecord

LEAFLET_VERSION = "1.9.4"


def _zoom_for_span(span: float) -> int:
    """Rough zoom level from the larger side of the bounding box in degrees."""
    if span < 0.01:
        return 15
    if span < 0.1:
        return 12
    if span < 1:
        return 10
    if span < 10:
        return 7
    return 4


def map_view(locations: Sequence[LocationRecord]) -> tuple[list[float], int]:
    """Compute map centre and zoom for a location history.

    Args:
        locations: Location records.

    Returns:
        ([lat, lng] centre, zoom level). An empty history gives a world view.
    """
    if not locations:
        return [0.0, 0.0], 2

    min_lat, max_lat, min_lng, max_lng = bounds([loc.coords for loc in locations])
    center = [(min_lat + max_lat) / 2, (min_lng + max_lng) / 2]
    return center, _zoom_for_span(max(max_lat - min_lat, max_lng - min_lng))


def _point_popup(index: int, location: LocationRecord) -> str:
    when = datetime.fromtimestamp(location.timestamp / 1000, tz=timezone.utc)
    parts = [
        f"<strong>#{index + 1}</strong>",
        when.strftime("%Y-%m-%d %H:%M:%S UTC"),
        f"{location.latitude:.6f}, {location.longitude:.6f}",
    ]
    if location.address:
        parts.append(html.escape(location.address))
    return "<br>".join(parts)


def generate_map(
    locations: Sequence[LocationRecord],
    title: str = "Smart Travel Companion",
) -> str:
    """Generate HTML map of the location history.

    The page draws a polyline through the points in arrival order, a start
    marker, a current-position marker and a popup for every point.

    Args:
        locations: Location records in arrival order.
        title: Page title.

    Returns:
        HTML content as string.
    """
    center, zoom = map_view(locations)

    points_json: list[dict[str, Any]] = [
        {
            "lat": loc.latitude,
            "lng": loc.longitude,
            "popup": _point_popup(i, loc),
        }
        for i, loc in enumerate(locations)
    ]

    empty_note = (
        '<div class="info empty">No locations recorded yet</div>' if not locations else ""
    )

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)} - Map</title>
    <link rel="stylesheet" href="https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.css">
    <style>
        body {{ margin: 0; padding: 0; }}
        #map {{ position: absolute; top: 0; bottom: 0; width: 100%; }}
        .info {{
            padding: 6px 8px;
            font: 14px/16px Arial, Helvetica, sans-serif;
            background: rgba(255,255,255,0.9);
            box-shadow: 0 0 15px rgba(0,0,0,0.2);
            border-radius: 5px;
        }}
        .empty {{
            position: absolute;
            top: 10px;
            left: 50px;
            z-index: 1000;
        }}
    </style>
</head>
<body>
    <div id="map"></div>
    {empty_note}
    <script src="https://unpkg.com/leaflet@{LEAFLET_VERSION}/dist/leaflet.js"></script>
    <script>
        var map = L.map('map').setView({json.dumps(center)}, {zoom});
        L.tileLayer('https://tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
            maxZoom: 19,
            attribution: '&copy; OpenStreetMap contributors'
        }}).addTo(map);

        var points = {json.dumps(points_json)};
        var latlngs = points.map(function(p) {{ return [p.lat, p.lng]; }});

        points.forEach(function(p, i) {{
            var color = i === 0 ? '#10B981' : (i === points.length - 1 ? '#EF4444' : '#3B82F6');
            L.circleMarker([p.lat, p.lng], {{
                radius: 5, color: '#FFFFFF', weight: 2, fillColor: color, fillOpacity: 1
            }}).bindPopup(p.popup).addTo(map);
        }});

        if (latlngs.length > 1) {{
            var polyline = L.polyline(latlngs, {{color: '#3B82F6', weight: 3}}).addTo(map);
            map.fitBounds(polyline.getBounds(), {{padding: [20, 20]}});
        }}
        if (latlngs.length > 0) {{
            L.marker(latlngs[0], {{title: 'Start'}}).addTo(map);
            L.marker(latlngs[latlngs.length - 1], {{title: 'Current'}})
                .bindPopup('Current location').addTo(map);
        }}
    </script>
</body>
</html>"""


def serve_map(
    html_path: Path,
    port: int = 8080,
    host: str = "127.0.0.1",
) -> None:
    """Start a local HTTP server to serve the map.

    Args:
        html_path: Path to the HTML file.
        port: Server port.
        host: Server host.
    """
    directory = html_path.parent

    class Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=str(directory), **kwargs)

        def log_message(self, format: str, *args: object) -> None:
            pass  # Suppress logging

    # Allow port reuse to avoid "Address already in use" errors
    socketserver.TCPServer.allow_reuse_address = True

    with socketserver.TCPServer((host, port), Handler) as httpd:
        url = f"http://{host}:{port}/{html_path.name}"
        print(f"Serving at {url}")
        print("Press Ctrl+C to stop")

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped")
