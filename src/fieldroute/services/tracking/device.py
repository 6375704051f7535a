"""GPS device collaborator.

The device is passed in explicitly. :func:`acquire_fix` takes a one-shot fix
with a timeout, and :class:`LocationWatch` scopes a continuous watch to an
``async with`` block so it is always released.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from enum import IntEnum
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from ...config import settings
from ...models.domain import Coordinate
from ..errors import LocationError, LocationPermissionDenied, LocationTimeout, LocationUnavailable

logger = logging.getLogger(__name__)


class PositionErrorCode(IntEnum):
    """Codes used by browser and mobile geolocation APIs."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionError(Exception):
    """Raised (or reported) by a :class:`PositionSource`."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"position error {code}")
        self.code = code


PositionCallback = Callable[[Coordinate], Union[Awaitable[None], None]]
ErrorCallback = Callable[[PositionError], None]


class PositionSource(Protocol):
    async def get_current_position(self) -> Coordinate: ...

    def watch_position(self, callback: Callable[[Coordinate], None], error_callback: ErrorCallback) -> Any: ...

    def clear_watch(self, handle: Any) -> None: ...


def translate_position_error(error: PositionError) -> LocationError:
    if error.code == PositionErrorCode.PERMISSION_DENIED:
        return LocationPermissionDenied("Location permission denied. Enable location access on the device.")
    if error.code == PositionErrorCode.POSITION_UNAVAILABLE:
        return LocationUnavailable("GPS signal unavailable. Move to an open area and try again.")
    if error.code == PositionErrorCode.TIMEOUT:
        return LocationTimeout("The GPS took too long to respond.")
    return LocationError(f"Unknown GPS error: {error}")


async def acquire_fix(source: PositionSource, timeout: Optional[float] = None) -> Coordinate:
    """One-shot fix; each failure cause maps to its own error type."""

    timeout = settings.gps_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(source.get_current_position(), timeout)
    except asyncio.TimeoutError as exc:
        logger.warning(f"GPS fix timed out after {timeout}s")
        raise LocationTimeout(f"The GPS took more than {timeout:g}s to respond.") from exc
    except PositionError as exc:
        logger.warning(f"GPS fix failed with code {exc.code}: {exc}")
        raise translate_position_error(exc) from exc


class LocationWatch:
    """Continuous watch whose lifetime is bound to an ``async with`` block.

    ``latest`` always holds the most recent fix; ``on_position`` is invoked at
    most once per ``min_interval`` seconds. Watch errors are kept in
    ``last_error`` and do not stop the watch.
    """

    def __init__(
        self,
        source: PositionSource,
        on_position: Optional[PositionCallback] = None,
        *,
        min_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.on_position = on_position
        self.min_interval = settings.location_min_interval_seconds if min_interval is None else min_interval
        self.clock = clock
        self.latest: Optional[Coordinate] = None
        self.last_error: Optional[LocationError] = None
        self._last_delivered: Optional[float] = None
        self._handle: Any = None
        self._pending: set[asyncio.Task] = set()

    @property
    def active(self) -> bool:
        return self._handle is not None

    async def __aenter__(self) -> "LocationWatch":
        self._handle = self.source.watch_position(self._handle_position, self._handle_error)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._handle is not None:
            self.source.clear_watch(self._handle)
            self._handle = None
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _handle_position(self, coordinate: Coordinate) -> None:
        self.latest = coordinate
        self.last_error = None
        if self.on_position is None:
            return
        now = self.clock()
        if self._last_delivered is not None and now - self._last_delivered < self.min_interval:
            return
        self._last_delivered = now
        result = self.on_position(coordinate)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    def _handle_error(self, error: PositionError) -> None:
        self.last_error = translate_position_error(error)
        logger.info(f"Position watch error ignored: {self.last_error.reason}")
