"""Path rendering for travel-companion.

Projects the location history onto a fixed-size surface: bounding box,
linear projection with padding, a connected polyline, and distinguished
start and current markers.
"""

from __future__ import annotations

from collections.abc import Sequence

from travel_companion.lib.geo import bounds
from travel_companion.views.surface import Surface, SvgSurface

PATH_COLOR = "#3B82F6"
START_COLOR = "#10B981"
CURRENT_COLOR = "#EF4444"
PLACEHOLDER_COLOR = "#9CA3AF"
LEGEND_TEXT_COLOR = "#4B5563"
PLACEHOLDER_TEXT = "Path will appear here"


def project_points(
    points: Sequence[tuple[float, float]],
    width: float,
    height: float,
    padding: float = 20,
) -> list[tuple[float, float]]:
    """Project (lat, lng) points linearly into canvas space.

    x grows with longitude and y grows southwards. An axis with zero span is
    centred.

    Args:
        points: (latitude, longitude) pairs, at least one.
        width: Canvas width.
        height: Canvas height.
        padding: Margin kept free on every side.

    Returns:
        (x, y) canvas coordinates, in input order.
    """
    min_lat, max_lat, min_lng, max_lng = bounds(list(points))
    inner_width = width - padding * 2
    inner_height = height - padding * 2
    lat_span = max_lat - min_lat
    lng_span = max_lng - min_lng

    projected = []
    for lat, lng in points:
        x = padding + ((lng - min_lng) / lng_span) * inner_width if lng_span else width / 2
        y = padding + ((max_lat - lat) / lat_span) * inner_height if lat_span else height / 2
        projected.append((x, y))
    return projected


def render_path(
    points: Sequence[tuple[float, float]],
    surface: Surface,
    padding: float = 20,
) -> None:
    """Draw the path of (lat, lng) points onto a surface.

    Fewer than two points draw a placeholder message instead.

    Args:
        points: (latitude, longitude) pairs in sequence order.
        surface: Surface to draw on; it is cleared first.
        padding: Margin around the projected path.
    """
    surface.clear()

    if len(points) < 2:
        surface.text(
            surface.width / 2,
            surface.height / 2,
            PLACEHOLDER_TEXT,
            PLACEHOLDER_COLOR,
            size=14,
            anchor="middle",
        )
        return

    canvas_points = project_points(points, surface.width, surface.height, padding)
    surface.polyline(canvas_points, PATH_COLOR, line_width=2)

    last = len(canvas_points) - 1
    for index, (x, y) in enumerate(canvas_points):
        if index == 0:
            color = START_COLOR
        elif index == last:
            color = CURRENT_COLOR
        else:
            color = PATH_COLOR
        surface.circle(x, y, 4, fill=color, stroke="#FFFFFF", line_width=2)

    legend_y = surface.height - 15
    surface.circle(15, legend_y, 3, fill=START_COLOR)
    surface.text(25, legend_y + 4, "Start", LEGEND_TEXT_COLOR)
    surface.circle(80, legend_y, 3, fill=CURRENT_COLOR)
    surface.text(90, legend_y + 4, "Current", LEGEND_TEXT_COLOR)


def render_path_svg(
    points: Sequence[tuple[float, float]],
    width: int = 300,
    height: int = 200,
) -> str:
    """Render the path to an SVG document string."""
    surface = SvgSurface(width, height)
    render_path(points, surface)
    return surface.render()
