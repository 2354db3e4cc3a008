"""Periodic synchronization between the client state and the history service.

A cancellable periodic timer drives the sync tick: a health check, then
forwarding the latest geolocation sample for persistence.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from travel_companion.lib.errors import ApiError
from travel_companion.models.state import AppState
from travel_companion.services.geolocation import now_ms

if TYPE_CHECKING:
    from travel_companion.models.location import LocationRecord
    from travel_companion.services.client import LocationApiClient
    from travel_companion.services.geolocation import GeolocationSampler, SamplerSnapshot

logger = logging.getLogger("travel_companion.sync")

DEFAULT_SYNC_INTERVAL = 10.0


class PeriodicTask:
    """Runs a callback now and then every ``interval`` seconds until stopped.

    Every invocation gets its own worker thread, so a slow invocation never
    delays or suppresses the next one.
    """

    def __init__(self, callback: Callable[[], None], interval: float = DEFAULT_SYNC_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._timer: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stop.is_set()

    def start(self) -> None:
        if self._timer is not None:
            raise RuntimeError("Periodic task already started")
        self._timer = threading.Thread(target=self._loop, name="periodic-task", daemon=True)
        self._timer.start()

    def stop(self) -> None:
        """Signal the timer to stop; no invocation starts after this returns."""
        with self._lock:
            self._stop.set()
        if self._timer is not None and self._timer is not threading.current_thread():
            self._timer.join()

    def _loop(self) -> None:
        while True:
            with self._lock:
                if self._stop.is_set():
                    return
                threading.Thread(target=self._invoke, name="periodic-task-run", daemon=True).start()
            if self._stop.wait(self.interval):
                return

    def _invoke(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("Periodic task failed")


class SyncTask:
    """One sync tick: health check, then persist the current sample."""

    def __init__(self, client: LocationApiClient, state: AppState) -> None:
        self.client = client
        self.state = state

    def _log_failure(self, message: str, error: Exception) -> None:
        # Silenced through the logger level unless client logging is enabled
        logger.error("%s: %s", message, error)

    def check_server_health(self) -> bool:
        """Check the service and record connectivity; no retry on failure."""
        try:
            self.client.health()
        except ApiError as e:
            self._log_failure("Server health check failed", e)
            self.state.set_server_status("disconnected")
            return False
        self.state.set_server_status("connected")
        return True

    def save_current_position(self) -> LocationRecord | None:
        """Persist the current sample if tracking; merge the stored record.

        Returns:
            The stored record, or None if nothing was sent or the call failed.
        """
        snap = self.state.snapshot()
        if not snap.is_tracking or snap.position is None:
            return None

        try:
            record = self.client.add_location(
                latitude=snap.position.latitude,
                longitude=snap.position.longitude,
                timestamp=now_ms(),
            )
        except ApiError as e:
            self._log_failure("Error saving location", e)
            return None

        if not self.state.merge_location(record):
            logger.debug("Location %s already displayed, skipping", record.id)
        return record

    def tick(self) -> None:
        self.check_server_health()
        self.save_current_position()

    def load_history(self) -> bool:
        """Replace the displayed history with the service's full list."""
        try:
            locations = self.client.list_locations()
        except ApiError as e:
            self._log_failure("Error loading location history", e)
            return False
        self.state.replace_locations(locations)
        return True

    def clear_history(self) -> bool:
        """Delete the history on the service, then in the displayed state."""
        try:
            self.client.clear_locations()
        except ApiError as e:
            self._log_failure("Error clearing history", e)
            return False
        self.state.clear_locations()
        return True


class TrackingSession:
    """Wires a geolocation sampler, the app state and the periodic sync together."""

    def __init__(
        self,
        client: LocationApiClient,
        sampler: GeolocationSampler,
        state: AppState | None = None,
        interval: float = DEFAULT_SYNC_INTERVAL,
    ) -> None:
        self.state = state or AppState()
        self.sampler = sampler
        self.sync = SyncTask(client, self.state)
        self.interval = interval
        self._task: PeriodicTask | None = None
        sampler.subscribe(self._on_sample)

    def _on_sample(self, snap: SamplerSnapshot) -> None:
        self.state.set_position(snap.position, snap.error)

    def open(self) -> None:
        """Load the history and start the periodic sync."""
        self.sync.load_history()
        self.sync.check_server_health()
        self._task = PeriodicTask(self.sync.tick, self.interval)
        self._task.start()

    def start_tracking(self) -> None:
        self.state.set_tracking(True)
        self.sampler.set_tracking(True)

    def stop_tracking(self) -> None:
        self.state.set_tracking(False)
        self.sampler.set_tracking(False)

    def close(self) -> None:
        """Stop tracking and the periodic sync."""
        self.stop_tracking()
        if self._task is not None:
            self._task.stop()
            self._task = None

    def __enter__(self) -> TrackingSession:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
