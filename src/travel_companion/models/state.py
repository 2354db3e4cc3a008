"""Client application state for travel-companion.

Holds the displayed location history, tracking flag, server status and the
latest geolocation sample. All mutation goes through the update methods,
each applied atomically under the state lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from travel_companion.lib.geo import is_same_spot
from travel_companion.models.location import LocationRecord

if TYPE_CHECKING:
    from travel_companion.services.geolocation import Position

SERVER_STATUSES = ("checking", "connected", "disconnected")


def is_duplicate_location(
    existing: Iterable[LocationRecord],
    candidate: LocationRecord,
) -> bool:
    """Check whether a record is already displayed.

    A candidate is a duplicate when any existing record lies within 0.0001
    degrees of it on both latitude and longitude.
    """
    return any(
        is_same_spot(loc.latitude, loc.longitude, candidate.latitude, candidate.longitude)
        for loc in existing
    )


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable copy of the application state."""

    locations: tuple[LocationRecord, ...]
    is_tracking: bool
    server_status: str
    position: Position | None
    geo_error: str | None


@dataclass
class AppState:
    """Mutable application state shared by the sampler and the sync task."""

    locations: list[LocationRecord] = field(default_factory=list)
    is_tracking: bool = False
    server_status: str = "checking"
    position: Position | None = None
    geo_error: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def snapshot(self) -> StateSnapshot:
        """Return a consistent copy of the state."""
        with self._lock:
            return StateSnapshot(
                locations=tuple(self.locations),
                is_tracking=self.is_tracking,
                server_status=self.server_status,
                position=self.position,
                geo_error=self.geo_error,
            )

    def set_tracking(self, enabled: bool) -> None:
        with self._lock:
            self.is_tracking = enabled

    def set_server_status(self, status: str) -> None:
        if status not in SERVER_STATUSES:
            raise ValueError(f"Unknown server status: {status}")
        with self._lock:
            self.server_status = status

    def set_position(self, position: Position | None, error: str | None = None) -> None:
        with self._lock:
            self.position = position
            self.geo_error = error

    def replace_locations(self, locations: Iterable[LocationRecord]) -> None:
        with self._lock:
            self.locations = list(locations)

    def merge_location(self, record: LocationRecord) -> bool:
        """Append a server-returned record unless it duplicates a displayed one.

        Returns:
            True if the record was added.
        """
        with self._lock:
            if is_duplicate_location(self.locations, record):
                return False
            self.locations = [*self.locations, record]
            return True

    def clear_locations(self) -> None:
        with self._lock:
            self.locations = []
