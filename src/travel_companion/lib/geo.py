"""Geospatial utilities."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0

# ~11 m at the equator
DUPLICATE_TOLERANCE_DEG = 0.0001


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in kilometers between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Great-circle distance in kilometers.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def is_same_spot(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    tolerance: float = DUPLICATE_TOLERANCE_DEG,
) -> bool:
    """Check whether two points are within ``tolerance`` degrees on both axes."""
    return abs(lat1 - lat2) < tolerance and abs(lon1 - lon2) < tolerance


def bounds(points: list[tuple[float, float]]) -> tuple[float, float, float, float]:
    """Bounding box of (lat, lng) points as (min_lat, max_lat, min_lng, max_lng)."""
    lats = [p[0] for p in points]
    lngs = [p[1] for p in points]
    return min(lats), max(lats), min(lngs), max(lngs)
