"""Geolocation sampling for travel-companion.

Wraps a push-based position source (the platform's continuous position
watch) into a single sample that is replaced on every fix, plus error
reporting. Shipped sources replay recorded tracks.
"""

from __future__ import annotations

import csv
import enum
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger("travel_companion.geolocation")

MPS_TO_KMH = 3.6

UNSUPPORTED_MESSAGE = "Geolocation is not supported by this device."
GENERIC_ERROR_MESSAGE = "An error occurred while retrieving location."


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RawPosition:
    """A fix as reported by a position source."""

    latitude: float
    longitude: float
    accuracy: float = 0.0  # meters
    speed: float | None = None  # m/s
    heading: float | None = None  # degrees
    timestamp: int | None = None  # epoch ms


@dataclass(frozen=True)
class Position:
    """The current sample, speed already in km/h."""

    latitude: float
    longitude: float
    accuracy: float
    speed: float  # km/h
    heading: float
    timestamp: int

    @classmethod
    def from_raw(cls, raw: RawPosition) -> Position:
        """Convert a source fix; missing speed and heading become 0."""
        return cls(
            latitude=raw.latitude,
            longitude=raw.longitude,
            accuracy=raw.accuracy,
            speed=raw.speed * MPS_TO_KMH if raw.speed else 0.0,
            heading=raw.heading or 0.0,
            timestamp=raw.timestamp if raw.timestamp is not None else now_ms(),
        )


class PositionError(Exception):
    """A failure reported by a position source."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"position error {code}")
        self.code = code


ERROR_MESSAGES = {
    PositionError.PERMISSION_DENIED: (
        "Location access denied. Please enable location permissions in your browser settings."
    ),
    PositionError.POSITION_UNAVAILABLE: (
        "Location information is unavailable. Please check your GPS/network connection."
    ),
    PositionError.TIMEOUT: "Location request timed out. Please try again.",
}


def describe_position_error(error: PositionError) -> str:
    """Map a position error to its user-facing message."""
    return ERROR_MESSAGES.get(error.code, GENERIC_ERROR_MESSAGE)


PositionCallback = Callable[[RawPosition], None]
ErrorCallback = Callable[[PositionError], None]
TrackItem = Union[RawPosition, PositionError]


class PositionSource(ABC):
    """Continuous position watch capability."""

    @abstractmethod
    def watch(self, on_position: PositionCallback, on_error: ErrorCallback) -> int:
        """Start delivering fixes; returns a watch id."""

    @abstractmethod
    def clear_watch(self, watch_id: int) -> None:
        """Stop a watch. No callbacks are delivered for it once this returns."""


class StaticPositionSource(PositionSource):
    """Delivers one fixed position (or error) synchronously on watch."""

    def __init__(self, item: TrackItem) -> None:
        self.item = item
        self._next_id = 0
        self.active: set[int] = set()

    def watch(self, on_position: PositionCallback, on_error: ErrorCallback) -> int:
        self._next_id += 1
        self.active.add(self._next_id)
        if isinstance(self.item, PositionError):
            on_error(self.item)
        else:
            on_position(self.item)
        return self._next_id

    def clear_watch(self, watch_id: int) -> None:
        self.active.discard(watch_id)


class ReplayPositionSource(PositionSource):
    """Replays a recorded track on a background thread, one item per interval."""

    def __init__(self, items: Sequence[TrackItem], interval: float = 1.0, loop: bool = False) -> None:
        """Initialize the source.

        Args:
            items: Fixes and errors to deliver, in order.
            interval: Seconds between deliveries.
            loop: Start over after the last item instead of going quiet.
        """
        self.items = list(items)
        self.interval = interval
        self.loop = loop
        self._next_id = 0
        self._watches: dict[int, tuple[threading.Thread, threading.Event]] = {}
        self._lock = threading.Lock()

    def watch(self, on_position: PositionCallback, on_error: ErrorCallback) -> int:
        stop = threading.Event()
        with self._lock:
            self._next_id += 1
            watch_id = self._next_id
            thread = threading.Thread(
                target=self._run,
                args=(stop, on_position, on_error),
                name=f"position-replay-{watch_id}",
                daemon=True,
            )
            self._watches[watch_id] = (thread, stop)
        thread.start()
        return watch_id

    def clear_watch(self, watch_id: int) -> None:
        with self._lock:
            entry = self._watches.pop(watch_id, None)
        if entry is None:
            return
        thread, stop = entry
        stop.set()
        if thread is not threading.current_thread():
            thread.join()

    def _run(self, stop: threading.Event, on_position: PositionCallback, on_error: ErrorCallback) -> None:
        while not stop.is_set():
            for item in self.items:
                if stop.is_set():
                    return
                if isinstance(item, PositionError):
                    on_error(item)
                else:
                    on_position(item)
                if stop.wait(self.interval):
                    return
            if not self.loop:
                return


def _parse_optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _pick(row: dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in row and row[name] not in (None, ""):
            return row[name]
    raise KeyError(names[0])


def _raw_from_row(row: dict[str, Any]) -> RawPosition:
    timestamp = _parse_optional_float(row.get("timestamp"))
    return RawPosition(
        latitude=float(_pick(row, "latitude", "lat")),
        longitude=float(_pick(row, "longitude", "lon", "lng")),
        accuracy=_parse_optional_float(row.get("accuracy")) or 0.0,
        speed=_parse_optional_float(row.get("speed")),
        heading=_parse_optional_float(row.get("heading")),
        timestamp=int(timestamp) if timestamp is not None else None,
    )


def load_track_file(path: Path) -> list[RawPosition]:
    """Load recorded fixes from a CSV or JSON track file.

    CSV files need ``latitude``/``longitude`` columns (``lat``/``lon``/``lng``
    also accepted) and may carry ``accuracy``, ``speed`` (m/s), ``heading`` and
    ``timestamp`` (epoch ms). JSON files hold an array of such objects, or one
    object per line.

    Args:
        path: Track file.

    Returns:
        Parsed fixes; unparseable rows are skipped with a warning.
    """
    path = Path(path)
    rows: list[dict[str, Any]]

    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
    else:
        text = path.read_text(encoding="utf-8").strip()
        if text.startswith("["):
            rows = json.loads(text)
        else:
            rows = [json.loads(line) for line in text.splitlines() if line.strip()]

    fixes: list[RawPosition] = []
    skipped = 0
    for row in rows:
        try:
            fixes.append(_raw_from_row(row))
        except (KeyError, TypeError, ValueError):
            skipped += 1

    if skipped:
        logger.warning("Skipped %d unparseable rows in %s", skipped, path)
    return fixes


class SamplerState(enum.Enum):
    """Lifecycle of the geolocation sampler."""

    IDLE = "idle"
    REQUESTING = "requesting"
    ACTIVE = "active"
    ERROR = "error"


@dataclass(frozen=True)
class SamplerSnapshot:
    """Consistent view of the sampler."""

    state: SamplerState
    position: Position | None
    error: str | None
    is_loading: bool


class GeolocationSampler:
    """Turns a position watch into a current sample plus an error message.

    ``IDLE -> REQUESTING -> ACTIVE`` while tracking, ``REQUESTING/ACTIVE ->
    ERROR`` on a source error, back to ``IDLE`` when tracking is disabled.
    Fixes that arrive after tracking is disabled are ignored.
    """

    def __init__(self, source: PositionSource | None) -> None:
        self.source = source
        self._lock = threading.Lock()
        self._state = SamplerState.IDLE
        self._position: Position | None = None
        self._error: str | None = None
        self._watch_id: int | None = None
        self._generation = 0
        self._listeners: list[Callable[[SamplerSnapshot], None]] = []

    def subscribe(self, listener: Callable[[SamplerSnapshot], None]) -> None:
        """Register a callback invoked with a snapshot after every update."""
        self._listeners.append(listener)

    def snapshot(self) -> SamplerSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def state(self) -> SamplerState:
        return self.snapshot().state

    @property
    def position(self) -> Position | None:
        return self.snapshot().position

    @property
    def error(self) -> str | None:
        return self.snapshot().error

    def set_tracking(self, enabled: bool) -> None:
        """Start or stop the underlying position watch."""
        source = self.source
        if source is None:
            with self._lock:
                self._state = SamplerState.ERROR
                self._error = UNSUPPORTED_MESSAGE
                snap = self._snapshot_locked()
            self._notify(snap)
            return

        if enabled:
            self._start(source)
        else:
            self._stop()

    def _start(self, source: PositionSource) -> None:
        if self._watch_id is not None:
            return

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._state = SamplerState.REQUESTING
            self._error = None
            snap = self._snapshot_locked()
        self._notify(snap)

        logger.debug("Starting position watch")
        self._watch_id = source.watch(
            lambda raw: self._on_position(generation, raw),
            lambda error: self._on_error(generation, error),
        )
        # The source may have failed synchronously inside watch()
        if self.state is SamplerState.ERROR:
            self._clear_watch()

    def _stop(self) -> None:
        with self._lock:
            self._generation += 1
            self._state = SamplerState.IDLE
            snap = self._snapshot_locked()
        self._clear_watch()
        self._notify(snap)

    def _clear_watch(self) -> None:
        watch_id, self._watch_id = self._watch_id, None
        if watch_id is not None and self.source is not None:
            self.source.clear_watch(watch_id)
            logger.debug("Cleared position watch %s", watch_id)

    def _on_position(self, generation: int, raw: RawPosition) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._position = Position.from_raw(raw)
            self._error = None
            self._state = SamplerState.ACTIVE
            snap = self._snapshot_locked()
        self._notify(snap)

    def _on_error(self, generation: int, error: PositionError) -> None:
        with self._lock:
            if generation != self._generation:
                return
            # Terminal for this session until tracking is re-enabled
            self._generation += 1
            self._position = None
            self._error = describe_position_error(error)
            self._state = SamplerState.ERROR
            snap = self._snapshot_locked()
        logger.warning("Geolocation error: %s", error)
        if self._watch_id is not None:
            self._clear_watch()
        self._notify(snap)

    def _snapshot_locked(self) -> SamplerSnapshot:
        return SamplerSnapshot(
            state=self._state,
            position=self._position,
            error=self._error,
            is_loading=self._state is SamplerState.REQUESTING,
        )

    def _notify(self, snap: SamplerSnapshot) -> None:
        for listener in list(self._listeners):
            listener(snap)
