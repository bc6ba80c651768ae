"""Single-subscription live location watcher.

The watcher is a two-state machine:

* ``IDLE``: no location subscription.
* ``WATCHING``: exactly one subscription, whose handle the watcher holds.

`LocationWatcher.update` moves between them from the tracking predicate over
the current snapshot. A new subscription is only started when no handle is
held. The handle is always released on the way back to idle.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, Protocol

from pyridersbud.config import RidersBudConfig
from pyridersbud.models.booking import Booking, BookingStatus, Snapshot
from pyridersbud.models.location import LocationFix
from pyridersbud.models.notification import Actor
from pyridersbud.state.diff import is_customer_booking

_logger = logging.getLogger(__name__)

WatchHandle = int
PositionCallback = Callable[[LocationFix], None]
ErrorCallback = Callable[[Exception], None]
LocationSink = Callable[[str, LocationFix], Awaitable[None] | None]


class LocationSource(Protocol):
    """A provider of position updates, e.g. a device geolocation API."""

    def watch_position(self, on_position: PositionCallback, on_error: ErrorCallback) -> WatchHandle:
        """Start reporting positions; returns a handle for :meth:`clear_watch`."""
        ...

    def clear_watch(self, handle: WatchHandle) -> None:
        """Stop the subscription identified by *handle*."""
        ...


class WatcherState(StrEnum):
    IDLE = "idle"
    WATCHING = "watching"


def active_tracking_booking(snapshot: Snapshot | None, actor: Actor | None) -> Booking | None:
    """The actor's booking whose mechanic is currently en route, if any."""
    if snapshot is None or actor is None or not actor.is_customer:
        return None
    for booking in snapshot.bookings:
        if (
            is_customer_booking(booking, actor)
            and booking.mechanic is not None
            and booking.status == BookingStatus.EN_ROUTE
        ):
            return booking
    return None


def should_track_location(snapshot: Snapshot | None, actor: Actor | None) -> bool:
    return active_tracking_booking(snapshot, actor) is not None


class LocationWatcher:
    """Owns at most one live location subscription.

    Position fixes are forwarded to *sink* as ``sink(customer_id, fix)``. An
    async sink is scheduled as a task on the running loop; pending tasks are
    cancelled by :meth:`aclose`. Errors from the source are logged and leave
    the state unchanged.
    """

    def __init__(
        self,
        source: LocationSource,
        sink: LocationSink | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._source = source
        self._sink = sink
        self._logger = logger or _logger
        self._handle: WatchHandle | None = None
        self._customer_id: str | None = None
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> WatcherState:
        return WatcherState.WATCHING if self._handle is not None else WatcherState.IDLE

    @property
    def handle(self) -> WatchHandle | None:
        return self._handle

    @property
    def is_watching(self) -> bool:
        return self._handle is not None

    def update(self, snapshot: Snapshot | None, actor: Actor | None) -> WatcherState:
        """Re-evaluate the tracking predicate and transition if needed."""
        if actor is not None and should_track_location(snapshot, actor):
            if self._customer_id not in (None, actor.id):
                self.stop()
            self.start(actor.id)
        else:
            self.stop()
        return self.state

    def start(self, customer_id: str) -> bool:
        """Idle -> Watching. Returns ``False`` when a subscription is already held or the source refuses."""
        if self._handle is not None:
            return False
        try:
            handle = self._source.watch_position(self._on_position, self._on_error)
        except Exception:
            self._logger.warning("Could not start location watch customer=%s", customer_id, exc_info=True)
            return False
        self._handle = handle
        self._customer_id = customer_id
        self._logger.debug("Location watch started handle=%s customer=%s", self._handle, customer_id)
        return True

    def stop(self) -> bool:
        """Watching -> Idle. Returns ``False`` when already idle."""
        handle = self._handle
        if handle is None:
            return False
        self._handle = None
        self._customer_id = None
        self._source.clear_watch(handle)
        self._logger.debug("Location watch cleared handle=%s", handle)
        return True

    async def aclose(self) -> None:
        """Release the subscription and cancel in-flight location updates."""
        self.stop()
        pending = list(self._pending)
        self._pending.clear()
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _on_position(self, fix: LocationFix) -> None:
        customer_id = self._customer_id
        if self._handle is None or customer_id is None or self._sink is None:
            return
        try:
            result = self._sink(customer_id, fix)
        except Exception:
            self._logger.warning("Location update failed for customer=%s", customer_id, exc_info=True)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._on_sink_done)

    def _on_sink_done(self, task: asyncio.Future[Any]) -> None:
        self._pending.discard(task)  # type: ignore[arg-type]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.warning("Location update failed", exc_info=exc)

    def _on_error(self, error: Exception) -> None:
        # Transient: the subscription stays active.
        self._logger.warning("Location watch error: %s", error)


class PollingLocationSource:
    """`LocationSource` that polls an async position provider on the running loop."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[LocationFix]],
        *,
        interval: float = 5.0,
        logger: logging.Logger | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fetch = fetch
        self._interval = interval
        self._logger = logger or _logger
        self._tasks: dict[WatchHandle, asyncio.Task[None]] = {}
        self._ids = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        fetch: Callable[[], Awaitable[LocationFix]],
        config: RidersBudConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> PollingLocationSource:
        return cls(fetch, interval=config.location_poll_interval, logger=logger)

    @property
    def active_handles(self) -> frozenset[WatchHandle]:
        return frozenset(self._tasks)

    def watch_position(self, on_position: PositionCallback, on_error: ErrorCallback) -> WatchHandle:
        handle = next(self._ids)
        loop = asyncio.get_running_loop()
        self._tasks[handle] = loop.create_task(self._poll(on_position, on_error))
        return handle

    def clear_watch(self, handle: WatchHandle) -> None:
        task = self._tasks.pop(handle, None)
        if task is not None:
            task.cancel()

    async def _poll(self, on_position: PositionCallback, on_error: ErrorCallback) -> None:
        while True:
            try:
                fix = await self._fetch()
            except Exception as exc:
                on_error(exc)
            else:
                on_position(fix)
            await asyncio.sleep(self._interval)
