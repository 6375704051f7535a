import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fieldroute.models.domain import Coordinate, Profile, Role
from fieldroute.persistence.memory import InMemoryStore
from fieldroute.services.errors import (
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
)
from fieldroute.services.tracking import (
    LocationWatch,
    PositionError,
    PositionErrorCode,
    acquire_fix,
    list_team_locations,
    report_location,
)

NOW = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)


class FakeDevice:
    """Position source driven by the test."""

    def __init__(self, fix=None, error=None, delay=0.0):
        self.fix = fix
        self.error = error
        self.delay = delay
        self.watchers = {}
        self.cleared = []

    async def get_current_position(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.fix

    def watch_position(self, callback, error_callback):
        handle = len(self.watchers) + 1
        self.watchers[handle] = (callback, error_callback)
        return handle

    def clear_watch(self, handle):
        self.cleared.append(handle)
        self.watchers.pop(handle, None)

    def emit(self, coordinate):
        for callback, _ in list(self.watchers.values()):
            callback(coordinate)

    def fail(self, error):
        for _, error_callback in list(self.watchers.values()):
            error_callback(error)


def test_acquire_fix_returns_position() -> None:
    assert asyncio.run(acquire_fix(FakeDevice(fix=Coordinate(1, 2)))) == Coordinate(1, 2)


@pytest.mark.parametrize(
    "code, expected",
    [
        (PositionErrorCode.PERMISSION_DENIED, LocationPermissionDenied),
        (PositionErrorCode.POSITION_UNAVAILABLE, LocationUnavailable),
        (PositionErrorCode.TIMEOUT, LocationTimeout),
    ],
)
def test_acquire_fix_maps_device_errors(code, expected) -> None:
    with pytest.raises(expected):
        asyncio.run(acquire_fix(FakeDevice(error=PositionError(code))))


def test_acquire_fix_times_out() -> None:
    with pytest.raises(LocationTimeout):
        asyncio.run(acquire_fix(FakeDevice(fix=Coordinate(0, 0), delay=1.0), timeout=0.01))


def test_location_watch_throttles_callbacks_and_releases_the_device() -> None:
    ticks = iter([0.0, 10.0, 31.0])
    delivered = []

    async def scenario():
        device = FakeDevice()
        async with LocationWatch(device, delivered.append, min_interval=30, clock=lambda: next(ticks)) as watch:
            assert watch.active
            device.emit(Coordinate(0, 0))
            device.emit(Coordinate(0, 1))
            device.emit(Coordinate(0, 2))
            device.fail(PositionError(PositionErrorCode.POSITION_UNAVAILABLE))
            assert isinstance(watch.last_error, LocationUnavailable)
            assert watch.latest == Coordinate(0, 2)
        return device, watch

    device, watch = asyncio.run(scenario())
    assert delivered == [Coordinate(0, 0), Coordinate(0, 2)]
    assert device.cleared == [1]
    assert not watch.active


def test_location_watch_awaits_async_callbacks_on_exit() -> None:
    delivered = []

    async def on_position(coordinate):
        await asyncio.sleep(0)
        delivered.append(coordinate)

    async def scenario():
        device = FakeDevice()
        async with LocationWatch(device, on_position, min_interval=0):
            device.emit(Coordinate(5, 5))

    asyncio.run(scenario())
    assert delivered == [Coordinate(5, 5)]


def _store() -> InMemoryStore:
    return InMemoryStore(
        profiles=[
            Profile(id="a1", role=Role.ADMIN),
            Profile(id="m1", role=Role.MANAGER),
            Profile(id="s1", role=Role.SELLER, manager_id="m1"),
            Profile(id="s2", role=Role.SELLER, manager_id="m1"),
            Profile(id="s3", role=Role.SELLER, manager_id="m2", last_latitude=1.0, last_longitude=1.0),
        ]
    )


def test_report_location_is_throttled() -> None:
    store = _store()
    first = asyncio.run(report_location(store, store.profiles["s1"], Coordinate(1, 2), now=NOW))
    assert first.accepted
    assert store.profiles["s1"].last_location == Coordinate(1, 2)

    soon = asyncio.run(report_location(store, first.profile, Coordinate(3, 4), now=NOW + timedelta(seconds=10)))
    assert not soon.accepted
    assert soon.retry_after_seconds == pytest.approx(20)
    assert store.profiles["s1"].last_location == Coordinate(1, 2)

    later = asyncio.run(report_location(store, first.profile, Coordinate(3, 4), now=NOW + timedelta(seconds=30)))
    assert later.accepted
    assert store.profiles["s1"].last_location_time == NOW + timedelta(seconds=30)


def test_list_team_locations_scope() -> None:
    store = _store()
    asyncio.run(report_location(store, store.profiles["s1"], Coordinate(1, 2), now=NOW))

    assert [p.id for p in asyncio.run(list_team_locations(store, store.profiles["m1"]))] == ["s1"]
    assert sorted(p.id for p in asyncio.run(list_team_locations(store, store.profiles["a1"]))) == ["s1", "s3"]
    assert asyncio.run(list_team_locations(store, store.profiles["s2"])) == []
    assert [p.id for p in asyncio.run(list_team_locations(store, store.profiles["s1"]))] == ["s1"]
