"""Drawing surfaces for the path and speedometer renderers.

Renderers draw through the small ``Surface`` protocol; ``SvgSurface`` records
the calls as SVG elements so the result can be embedded in HTML or saved.
"""

from __future__ import annotations

import html
import math
from collections.abc import Sequence
from typing import Protocol


class Surface(Protocol):
    """Fixed-size 2D drawing surface, origin at the top-left corner."""

    width: int
    height: int

    def clear(self) -> None: ...

    def polyline(
        self, points: Sequence[tuple[float, float]], color: str, line_width: float = 1
    ) -> None: ...

    def line(
        self, x1: float, y1: float, x2: float, y2: float, color: str, line_width: float = 1
    ) -> None: ...

    def circle(
        self,
        x: float,
        y: float,
        radius: float,
        fill: str | None = None,
        stroke: str | None = None,
        line_width: float = 1,
    ) -> None: ...

    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        color: str,
        line_width: float = 1,
    ) -> None: ...

    def text(
        self,
        x: float,
        y: float,
        content: str,
        color: str,
        size: int = 12,
        anchor: str = "start",
        bold: bool = False,
    ) -> None: ...


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


class SvgSurface:
    """Surface producing an SVG document."""

    def __init__(self, width: int = 300, height: int = 200, background: str | None = "#F9FAFB") -> None:
        self.width = width
        self.height = height
        self.background = background
        self.elements: list[str] = []

    def clear(self) -> None:
        self.elements.clear()

    def polyline(
        self, points: Sequence[tuple[float, float]], color: str, line_width: float = 1
    ) -> None:
        coords = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in points)
        self.elements.append(
            f'<polyline points="{coords}" fill="none" stroke="{color}" '
            f'stroke-width="{_fmt(line_width)}" stroke-linecap="round" stroke-linejoin="round"/>'
        )

    def line(
        self, x1: float, y1: float, x2: float, y2: float, color: str, line_width: float = 1
    ) -> None:
        self.elements.append(
            f'<line x1="{_fmt(x1)}" y1="{_fmt(y1)}" x2="{_fmt(x2)}" y2="{_fmt(y2)}" '
            f'stroke="{color}" stroke-width="{_fmt(line_width)}" stroke-linecap="round"/>'
        )

    def circle(
        self,
        x: float,
        y: float,
        radius: float,
        fill: str | None = None,
        stroke: str | None = None,
        line_width: float = 1,
    ) -> None:
        stroke_attrs = f' stroke="{stroke}" stroke-width="{_fmt(line_width)}"' if stroke else ""
        self.elements.append(
            f'<circle cx="{_fmt(x)}" cy="{_fmt(y)}" r="{_fmt(radius)}" '
            f'fill="{fill or "none"}"{stroke_attrs}/>'
        )

    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        color: str,
        line_width: float = 1,
    ) -> None:
        """Clockwise arc, angles in radians measured from the positive x axis."""
        sweep = end_angle - start_angle
        if sweep <= 0:
            return
        if sweep >= 2 * math.pi:
            self.circle(x, y, radius, stroke=color, line_width=line_width)
            return

        start_x = x + radius * math.cos(start_angle)
        start_y = y + radius * math.sin(start_angle)
        end_x = x + radius * math.cos(end_angle)
        end_y = y + radius * math.sin(end_angle)
        large_arc = 1 if sweep > math.pi else 0
        self.elements.append(
            f'<path d="M {_fmt(start_x)} {_fmt(start_y)} '
            f'A {_fmt(radius)} {_fmt(radius)} 0 {large_arc} 1 {_fmt(end_x)} {_fmt(end_y)}" '
            f'fill="none" stroke="{color}" stroke-width="{_fmt(line_width)}" stroke-linecap="round"/>'
        )

    def text(
        self,
        x: float,
        y: float,
        content: str,
        color: str,
        size: int = 12,
        anchor: str = "start",
        bold: bool = False,
    ) -> None:
        weight = ' font-weight="bold"' if bold else ""
        self.elements.append(
            f'<text x="{_fmt(x)}" y="{_fmt(y)}" fill="{color}" font-size="{size}" '
            f'font-family="Inter, sans-serif" text-anchor="{anchor}"{weight}>'
            f"{html.escape(content)}</text>"
        )

    def render(self) -> str:
        """Return the SVG document."""
        background = (
            f'<rect width="100%" height="100%" fill="{self.background}"/>' if self.background else ""
        )
        body = "".join(self.elements)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">{background}{body}</svg>'
        )
