"""Travel statistics for travel-companion.

Derives distance, elapsed and moving time, and average/maximum speed from
the ordered location history. Statistics are recomputed from scratch on
every call and never persisted.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from travel_companion.lib.geo import haversine_km
from travel_companion.models.location import LocationRecord

# Segments slower than this are not counted as moving time
MOVING_SPEED_THRESHOLD_KMH = 1.0


@dataclass
class TravelStats:
    """Summary of a location history."""

    total_distance: float = 0.0  # km
    total_time: float = 0.0  # s
    average_speed: float = 0.0  # km/h
    max_speed: float = 0.0  # km/h
    locations_visited: int = 0
    time_moving: float = 0.0  # s

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire form.

        Returns:
            Dictionary representation.
        """
        return {
            "totalDistance": self.total_distance,
            "totalTime": self.total_time,
            "averageSpeed": self.average_speed,
            "maxSpeed": self.max_speed,
            "locationsVisited": self.locations_visited,
            "timeMoving": self.time_moving,
        }


def calculate_travel_stats(
    locations: Sequence[LocationRecord],
    current_speed: float = 0.0,
) -> TravelStats:
    """Calculate travel statistics over consecutive location pairs.

    Segment speed is distance over elapsed time; it feeds the maximum speed
    and, above 1 km/h, the moving time. No smoothing or outlier rejection is
    applied, so GPS jitter inflates the maximum speed.

    Args:
        locations: Location records in arrival order.
        current_speed: Instantaneous speed in km/h, the floor for max_speed.

    Returns:
        TravelStats instance.
    """
    if len(locations) < 2:
        return TravelStats(max_speed=current_speed, locations_visited=len(locations))

    total_distance = 0.0
    max_speed = current_speed
    time_moving = 0.0

    for previous, current in zip(locations, locations[1:]):
        distance = haversine_km(
            previous.latitude, previous.longitude, current.latitude, current.longitude
        )
        total_distance += distance

        elapsed_hours = (current.timestamp - previous.timestamp) / 1000 / 3600
        if elapsed_hours > 0 and distance > 0:
            speed = distance / elapsed_hours
            max_speed = max(max_speed, speed)
            if speed > MOVING_SPEED_THRESHOLD_KMH:
                time_moving += elapsed_hours * 3600

    total_time = (locations[-1].timestamp - locations[0].timestamp) / 1000
    average_speed = total_distance / (total_time / 3600) if total_time > 0 else 0.0

    return TravelStats(
        total_distance=total_distance,
        total_time=total_time,
        average_speed=average_speed,
        max_speed=max_speed,
        locations_visited=len(locations),
        time_moving=time_moving,
    )


def format_duration(seconds: float) -> str:
    """Format seconds as ``1h 5m``, ``4m 3s`` or ``9s``."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_distance(km: float) -> str:
    """Format kilometers as meters below 1 km, else with two decimals."""
    if km < 1:
        return f"{km * 1000:.0f}m"
    return f"{km:.2f}km"


def format_stats(stats: TravelStats) -> str:
    """Format statistics for display.

    Args:
        stats: Statistics to format.

    Returns:
        Formatted string.
    """
    lines = [
        "Travel Statistics",
        "=" * 40,
        f"Total distance:    {format_distance(stats.total_distance)}",
        f"Total time:        {format_duration(stats.total_time)}",
        f"Time moving:       {format_duration(stats.time_moving)}",
        f"Average speed:     {stats.average_speed:.1f} km/h",
        f"Max speed:         {stats.max_speed:.1f} km/h",
        f"Locations visited: {stats.locations_visited}",
    ]

    if stats.total_distance > 0:
        lines.append("")
        lines.append(f"That's about {int(stats.total_distance / 0.4)} football fields!")

    return "\n".join(lines)
