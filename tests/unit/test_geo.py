"""Unit tests for geospatial helpers."""

from __future__ import annotations

import pytest

from travel_companion.lib.geo import bounds, haversine_km, is_same_spot


@pytest.mark.ai_generated
class TestHaversine:
    """Tests for great-circle distance."""

    def test_same_point_is_zero(self) -> None:
        assert haversine_km(51.5, -0.12, 51.5, -0.12) == 0.0

    def test_one_degree_of_latitude(self) -> None:
        """One degree along a meridian is about 111.19 km."""
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)

    def test_new_york_to_london(self) -> None:
        distance = haversine_km(40.7128, -74.0060, 51.5074, -0.1278)
        assert distance == pytest.approx(5570, rel=0.01)

    def test_symmetric(self) -> None:
        a = haversine_km(10.0, 20.0, -5.0, 33.0)
        b = haversine_km(-5.0, 33.0, 10.0, 20.0)
        assert a == pytest.approx(b)


@pytest.mark.ai_generated
class TestSameSpot:
    """Tests for the duplicate-location tolerance."""

    def test_within_tolerance(self) -> None:
        assert is_same_spot(40.0, -74.0, 40.00005, -74.00005)

    def test_one_axis_outside_tolerance(self) -> None:
        assert not is_same_spot(40.0, -74.0, 40.0002, -74.0)

    def test_boundary_is_exclusive(self) -> None:
        assert not is_same_spot(0.0, 0.0, 0.0, 0.5, tolerance=0.5)


@pytest.mark.ai_generated
def test_bounds() -> None:
    """Bounding box is (min_lat, max_lat, min_lng, max_lng)."""
    points = [(1.0, 5.0), (-2.0, 7.0), (3.0, 4.0)]
    assert bounds(points) == (-2.0, 3.0, 4.0, 7.0)
