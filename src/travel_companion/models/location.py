"""Location record model.

Defines the stored location record and the candidate accepted by append
requests, with conversion to and from the JSON wire form.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from travel_companion.lib.errors import ValidationError

REQUIRED_FIELDS = ("latitude", "longitude", "timestamp")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass(frozen=True)
class LocationCandidate:
    """A location submitted for storage, before an id is assigned."""

    latitude: float
    longitude: float
    timestamp: int
    address: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LocationCandidate:
        """Validate and build a candidate from a request body.

        Args:
            data: Decoded JSON body.

        Returns:
            LocationCandidate instance.

        Raises:
            ValidationError: If the body is not an object, a required field is
                missing, or a required field is not a number.
        """
        if not isinstance(data, dict):
            raise ValidationError("Missing required fields")

        missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
        if missing:
            raise ValidationError("Missing required fields")

        invalid = [name for name in REQUIRED_FIELDS if not _is_number(data[name])]
        if invalid:
            raise ValidationError(f"Invalid value for: {', '.join(invalid)}")

        address = data.get("address")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            timestamp=int(data["timestamp"]),
            address=str(address) if address else None,
        )


@dataclass(frozen=True)
class LocationRecord:
    """A stored location point."""

    id: str
    latitude: float
    longitude: float
    timestamp: int  # epoch milliseconds
    address: str | None = None

    @classmethod
    def from_candidate(cls, record_id: str, candidate: LocationCandidate) -> LocationRecord:
        """Create a record from a validated candidate and an assigned id."""
        return cls(
            id=record_id,
            latitude=candidate.latitude,
            longitude=candidate.longitude,
            timestamp=candidate.timestamp,
            address=candidate.address,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary for JSON serialization.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocationRecord:
        """Create from dictionary.

        Args:
            data: Dictionary with record data.

        Returns:
            LocationRecord instance.
        """
        return cls(
            id=str(data["id"]),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            timestamp=int(data["timestamp"]),
            address=data.get("address"),
        )

    @property
    def coords(self) -> tuple[float, float]:
        """(latitude, longitude) pair."""
        return (self.latitude, self.longitude)
