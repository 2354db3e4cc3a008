"""Unit tests for geolocation sampling."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from travel_companion.services.geolocation import (
    GENERIC_ERROR_MESSAGE,
    UNSUPPORTED_MESSAGE,
    GeolocationSampler,
    Position,
    PositionError,
    PositionSource,
    RawPosition,
    ReplayPositionSource,
    SamplerState,
    StaticPositionSource,
    describe_position_error,
    load_track_file,
)


class ManualPositionSource(PositionSource):
    """Source whose callbacks are fired by the test."""

    def __init__(self) -> None:
        self.watches: dict[int, tuple] = {}
        self.cleared: list[int] = []
        self._next_id = 0

    def watch(self, on_position, on_error) -> int:
        self._next_id += 1
        self.watches[self._next_id] = (on_position, on_error)
        return self._next_id

    def clear_watch(self, watch_id: int) -> None:
        self.cleared.append(watch_id)

    def emit(self, watch_id: int, raw: RawPosition) -> None:
        self.watches[watch_id][0](raw)

    def fail(self, watch_id: int, error: PositionError) -> None:
        self.watches[watch_id][1](error)


@pytest.mark.ai_generated
class TestPosition:
    """Tests for converting raw fixes."""

    def test_speed_is_converted_to_kmh(self) -> None:
        pos = Position.from_raw(RawPosition(1.0, 2.0, accuracy=5, speed=10.0, heading=90, timestamp=7))

        assert pos.speed == pytest.approx(36.0)
        assert pos.heading == 90
        assert pos.timestamp == 7

    def test_missing_speed_and_heading_default_to_zero(self) -> None:
        pos = Position.from_raw(RawPosition(1.0, 2.0))

        assert pos.speed == 0.0
        assert pos.heading == 0.0
        assert pos.timestamp > 0


@pytest.mark.ai_generated
class TestErrorMessages:
    """Tests for user-facing error messages."""

    def test_known_codes(self) -> None:
        assert "denied" in describe_position_error(PositionError(PositionError.PERMISSION_DENIED))
        assert "unavailable" in describe_position_error(
            PositionError(PositionError.POSITION_UNAVAILABLE)
        )
        assert "timed out" in describe_position_error(PositionError(PositionError.TIMEOUT))

    def test_unknown_code(self) -> None:
        assert describe_position_error(PositionError(99)) == GENERIC_ERROR_MESSAGE


@pytest.mark.ai_generated
class TestGeolocationSampler:
    """Tests for the sampler lifecycle."""

    def test_unsupported_platform(self) -> None:
        sampler = GeolocationSampler(None)
        sampler.set_tracking(True)

        assert sampler.state is SamplerState.ERROR
        assert sampler.error == UNSUPPORTED_MESSAGE

    def test_requesting_then_active(self) -> None:
        source = ManualPositionSource()
        sampler = GeolocationSampler(source)

        sampler.set_tracking(True)
        snap = sampler.snapshot()
        assert snap.state is SamplerState.REQUESTING
        assert snap.is_loading is True

        source.emit(1, RawPosition(40.0, -74.0, speed=1.0))
        snap = sampler.snapshot()
        assert snap.state is SamplerState.ACTIVE
        assert snap.is_loading is False
        assert snap.position is not None
        assert snap.position.latitude == 40.0

    def test_latest_fix_replaces_previous(self) -> None:
        source = ManualPositionSource()
        sampler = GeolocationSampler(source)
        sampler.set_tracking(True)

        source.emit(1, RawPosition(1.0, 1.0))
        source.emit(1, RawPosition(2.0, 2.0))

        assert sampler.position is not None
        assert sampler.position.latitude == 2.0

    def test_stop_keeps_last_position_and_ignores_late_fixes(self) -> None:
        source = ManualPositionSource()
        sampler = GeolocationSampler(source)
        sampler.set_tracking(True)
        source.emit(1, RawPosition(1.0, 1.0))

        sampler.set_tracking(False)
        source.emit(1, RawPosition(5.0, 5.0))

        assert sampler.state is SamplerState.IDLE
        assert source.cleared == [1]
        assert sampler.position is not None
        assert sampler.position.latitude == 1.0

    def test_error_is_terminal(self) -> None:
        source = ManualPositionSource()
        sampler = GeolocationSampler(source)
        sampler.set_tracking(True)
        source.emit(1, RawPosition(1.0, 1.0))

        source.fail(1, PositionError(PositionError.TIMEOUT))
        source.emit(1, RawPosition(2.0, 2.0))

        snap = sampler.snapshot()
        assert snap.state is SamplerState.ERROR
        assert snap.position is None
        assert "timed out" in (snap.error or "")
        assert source.cleared == [1]

    def test_restart_after_error(self) -> None:
        source = ManualPositionSource()
        sampler = GeolocationSampler(source)
        sampler.set_tracking(True)
        source.fail(1, PositionError(PositionError.POSITION_UNAVAILABLE))

        sampler.set_tracking(True)
        source.emit(2, RawPosition(3.0, 3.0))

        assert sampler.state is SamplerState.ACTIVE
        assert sampler.error is None

    def test_synchronous_error_from_static_source(self) -> None:
        source = StaticPositionSource(PositionError(PositionError.PERMISSION_DENIED))
        sampler = GeolocationSampler(source)

        sampler.set_tracking(True)

        assert sampler.state is SamplerState.ERROR
        assert source.active == set()

    def test_listeners_receive_snapshots(self) -> None:
        seen = []
        sampler = GeolocationSampler(StaticPositionSource(RawPosition(1.0, 2.0)))
        sampler.subscribe(lambda snap: seen.append(snap.state))

        sampler.set_tracking(True)
        sampler.set_tracking(False)

        assert seen == [SamplerState.REQUESTING, SamplerState.ACTIVE, SamplerState.IDLE]


@pytest.mark.ai_generated
class TestReplayPositionSource:
    """Tests for replaying recorded tracks."""

    def test_delivers_all_items_then_stops(self) -> None:
        done = threading.Event()
        seen: list[RawPosition] = []
        items = [RawPosition(1.0, 1.0), RawPosition(2.0, 2.0)]

        def on_position(raw: RawPosition) -> None:
            seen.append(raw)
            if len(seen) == len(items):
                done.set()

        source = ReplayPositionSource(items, interval=0.01)
        watch_id = source.watch(on_position, lambda e: None)

        assert done.wait(5)
        source.clear_watch(watch_id)
        assert seen == items

    def test_clear_watch_stops_delivery(self) -> None:
        seen: list[RawPosition] = []
        source = ReplayPositionSource([RawPosition(1.0, 1.0)], interval=0.01, loop=True)
        watch_id = source.watch(seen.append, lambda e: None)

        source.clear_watch(watch_id)
        count = len(seen)
        time.sleep(0.05)

        assert len(seen) == count


@pytest.mark.ai_generated
class TestLoadTrackFile:
    """Tests for reading track files."""

    def test_csv(self, tmp_path: Path) -> None:
        path = tmp_path / "track.csv"
        path.write_text(
            "lat,lon,speed,heading,timestamp\n"
            "40.0,-74.0,2.5,90,1700000000000\n"
            "bad,row,,,\n"
            "40.1,-74.1,,,\n"
        )

        fixes = load_track_file(path)

        assert len(fixes) == 2
        assert fixes[0] == RawPosition(40.0, -74.0, 0.0, 2.5, 90.0, 1700000000000)
        assert fixes[1].speed is None

    def test_json_array(self, tmp_path: Path) -> None:
        path = tmp_path / "track.json"
        path.write_text(json.dumps([
            {"latitude": 1.0, "longitude": 2.0},
            {"latitude": 3.0, "lng": 4.0, "accuracy": 12},
        ]))

        fixes = load_track_file(path)

        assert [f.longitude for f in fixes] == [2.0, 4.0]
        assert fixes[1].accuracy == 12.0

    def test_json_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "track.jsonl"
        path.write_text('{"lat": 1, "lon": 2}\n\n{"lat": 3}\n')

        fixes = load_track_file(path)

        assert fixes == [RawPosition(1.0, 2.0)]
