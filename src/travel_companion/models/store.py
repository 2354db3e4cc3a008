"""Location history storage.

The history is an ordered collection of location records. The shipped
backend keeps it in a single pretty-printed JSON array that is read fully
and rewritten fully on every mutation.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from travel_companion.lib.errors import NotFoundError, StorageError
from travel_companion.models.location import LocationCandidate, LocationRecord

logger = logging.getLogger("travel_companion.store")


class LocationStore(ABC):
    """Collection of location records in arrival order."""

    @abstractmethod
    def list_all(self) -> list[LocationRecord]:
        """Return every stored record, in insertion order."""

    @abstractmethod
    def append(self, candidate: LocationCandidate | dict[str, Any]) -> LocationRecord:
        """Validate, assign an id, store and return a new record."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every record."""

    def get_by_id(self, record_id: str) -> LocationRecord:
        """Find a record by id.

        Raises:
            NotFoundError: If no record has this id.
        """
        for record in self.list_all():
            if record.id == record_id:
                return record
        raise NotFoundError("Location not found")


class JsonFileLocationStore(LocationStore):
    """Location store backed by a single JSON array file."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Path of the JSON file. Its directory is created on first write.
        """
        self.path = Path(path)
        self._last_id = 0

    def list_all(self) -> list[LocationRecord]:
        return self._records(self._read())

    def append(self, candidate: LocationCandidate | dict[str, Any]) -> LocationRecord:
        if not isinstance(candidate, LocationCandidate):
            candidate = LocationCandidate.from_dict(candidate)

        items = self._read()
        self._records(items)
        record = LocationRecord.from_candidate(self._next_id(items), candidate)
        items.append(record.to_dict())
        self._write(items)

        logger.debug("Stored location %s (%s, %s)", record.id, record.latitude, record.longitude)
        return record

    def clear(self) -> None:
        self._write([])
        logger.info("Cleared location history in %s", self.path)

    def _next_id(self, items: list[dict[str, Any]]) -> str:
        """Epoch-millisecond id, bumped past any id already issued or stored."""
        highest = self._last_id
        for item in items:
            try:
                highest = max(highest, int(item["id"]))
            except (KeyError, TypeError, ValueError):
                continue

        candidate = int(time.time() * 1000)
        if candidate <= highest:
            candidate = highest + 1
        self._last_id = candidate
        return str(candidate)

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error reading locations from %s: %s", self.path, e)
            raise StorageError("Failed to read locations") from e

        if not isinstance(data, list):
            logger.error("Location file %s does not hold a JSON array", self.path)
            raise StorageError("Failed to read locations")
        return data

    def _records(self, items: list[Any]) -> list[LocationRecord]:
        """Convert stored items, refusing the whole file if any item is malformed."""
        try:
            return [LocationRecord.from_dict(item) for item in items]
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.error("Malformed location record in %s: %r", self.path, e)
            raise StorageError("Failed to read locations") from e

    def _write(self, items: list[dict[str, Any]]) -> None:
        """Rewrite the whole file through a temporary sibling and an atomic replace."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Error writing locations to %s: %s", self.path, e)
            raise StorageError("Failed to save locations") from e
