"""Speedometer gauge for the current sample."""

from __future__ import annotations

import math

from travel_companion.views.surface import Surface, SvgSurface

GAUGE_MAX_SPEED_KMH = 120.0
CARDINAL_DIRECTIONS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def speed_color(speed: float) -> str:
    """Green up to 30 km/h, amber up to 60 km/h, red above."""
    if speed > 60:
        return "#EF4444"
    if speed > 30:
        return "#F59E0B"
    return "#10B981"


def accuracy_level(accuracy: float) -> str:
    """Classify a horizontal accuracy radius (m) as good, fair or poor."""
    if accuracy > 100:
        return "poor"
    if accuracy > 50:
        return "fair"
    return "good"


def cardinal_direction(heading: float) -> str:
    """Nearest of the eight compass points for a heading in degrees."""
    return CARDINAL_DIRECTIONS[round((heading % 360) / 45) % 8]


def render_speedometer(speed: float, heading: float, surface: Surface, radius: float = 80) -> None:
    """Draw the speed gauge and heading needle.

    The arc starts at twelve o'clock and a full turn is 120 km/h; faster
    speeds are clamped to a full circle.

    Args:
        speed: Current speed in km/h.
        heading: Heading in degrees, 0 = north, clockwise.
        surface: Surface to draw on; it is cleared first.
        radius: Gauge radius.
    """
    surface.clear()
    center_x = surface.width / 2
    center_y = surface.height / 2

    surface.circle(center_x, center_y, radius, stroke="#E5E7EB", line_width=8)

    sweep = min(max(speed, 0.0) / GAUGE_MAX_SPEED_KMH, 1.0) * 2 * math.pi
    start = -math.pi / 2
    surface.arc(center_x, center_y, radius, start, start + sweep, speed_color(speed), line_width=8)

    surface.text(center_x, center_y - 5, f"{speed:.1f}", "#1F2937", size=24, anchor="middle", bold=True)
    surface.text(center_x, center_y + 15, "km/h", "#6B7280", anchor="middle")

    needle_length = 30
    heading_rad = math.radians(heading)
    needle_x = center_x + needle_length * math.sin(heading_rad)
    needle_y = center_y - needle_length * math.cos(heading_rad)
    surface.line(center_x, center_y, needle_x, needle_y, "#3B82F6", line_width=3)
    surface.circle(center_x, center_y, 4, fill="#3B82F6")


def render_speedometer_svg(speed: float, heading: float, size: int = 200) -> str:
    """Render the speedometer to an SVG document string."""
    surface = SvgSurface(size, size, background=None)
    render_speedometer(speed, heading, surface)
    return surface.render()
