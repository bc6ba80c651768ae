"""Live-state notification engine.

Ties the pieces together for one execution context:

* booking snapshots (pushed via :meth:`LiveNotificationEngine.on_snapshot`
  or polled from a `BookingStore`) are diffed against the previous one and
  the resulting events are published on the bus;
* chat key changes on the transport become chat alerts;
* a periodic timer publishes service reminders;
* the live location watcher follows the current snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pyridersbud._redact import redact_for_log
from pyridersbud.channel import ChatChannel, Conversation
from pyridersbud.config import RidersBudConfig
from pyridersbud.exceptions import RidersBudError
from pyridersbud.models.booking import Snapshot
from pyridersbud.models.notification import Actor, NotificationEvent
from pyridersbud.notifications.bus import NotificationBus
from pyridersbud.notifications.chat import ChatAlerts
from pyridersbud.notifications.reminders import ReminderScanner
from pyridersbud.notifications.toasts import ToastQueue
from pyridersbud.state.tracker import SnapshotTracker
from pyridersbud.store import BookingStore
from pyridersbud.transport.base import Transport
from pyridersbud.watcher import LocationSource, LocationWatcher

_logger = logging.getLogger(__name__)


class LiveNotificationEngine:
    """Notification engine for one running context.

    Usage::

        async with LiveNotificationEngine(config, transport=transport) as engine:
            engine.set_actor(Actor(role="customer", id="c1", name="Ana"))
            engine.on_snapshot(snapshot)
            print(engine.bus.unread_count(engine.actor.recipient_key))
    """

    def __init__(
        self,
        config: RidersBudConfig,
        *,
        transport: Transport,
        store: BookingStore | None = None,
        location_source: LocationSource | None = None,
        bus: NotificationBus | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._store = store
        self._owns_bus = bus is None
        self._bus = bus if bus is not None else NotificationBus(max_retained=config.max_notifications)
        self._tracker = SnapshotTracker(currency_symbol=config.currency_symbol)
        self._channel = ChatChannel(transport)
        self._actor: Actor | None = None
        self._snapshot: Snapshot | None = None
        self._chat_alerts = ChatAlerts(
            transport,
            self._bus,
            snapshot_provider=lambda: self._snapshot,
            actor_provider=lambda: self._actor,
        )
        self._reminders = ReminderScanner(transport, self._bus, window_days=config.reminder_window_days)
        self._watcher: LocationWatcher | None = None
        if location_source is not None:
            sink = store.update_customer_location if store is not None else None
            self._watcher = LocationWatcher(location_source, sink, logger=_logger)
        self._poll_task: asyncio.Task[None] | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LiveNotificationEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._chat_alerts.start()
        if self._config.reminder_interval > 0:
            self._reminders.start(lambda: self._actor, self._config.reminder_interval)
        if self._store is not None and self._config.snapshot_poll_interval > 0:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_store())
        _logger.debug("Notification engine started config=%s", redact_for_log(self._config))

    async def stop(self) -> None:
        """Release every subscription, timer and watch handle owned by this engine."""
        if not self._started:
            return
        self._started = False
        self._chat_alerts.stop()
        await self._reminders.stop()
        task = self._poll_task
        self._poll_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                _logger.warning("Booking snapshot polling had stopped with an error", exc_info=True)
        if self._watcher is not None:
            await self._watcher.aclose()
        if self._owns_bus:
            self._bus.close()
        _logger.debug("Notification engine stopped")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def actor(self) -> Actor | None:
        return self._actor

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def watcher(self) -> LocationWatcher | None:
        return self._watcher

    @property
    def chat_alerts(self) -> ChatAlerts:
        return self._chat_alerts

    @property
    def reminders(self) -> ReminderScanner:
        return self._reminders

    @property
    def is_running(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Session and snapshots
    # ------------------------------------------------------------------

    def set_actor(self, actor: Actor | None) -> None:
        """Switch the acting customer/mechanic (``None`` on logout); starts a new session."""
        if actor != self._actor:
            self._reminders.reset_session()
        self._actor = actor
        if self._watcher is not None:
            self._watcher.update(self._snapshot, actor)

    def on_snapshot(self, snapshot: Snapshot, *, now: datetime | None = None) -> list[NotificationEvent]:
        """Diff *snapshot* against the previous one, publish the events and return them."""
        events = self._tracker.advance(snapshot, self._actor, now=now)
        self._snapshot = snapshot
        for event in events:
            self._bus.publish(event)
        if self._watcher is not None:
            self._watcher.update(snapshot, self._actor)
        return events

    def toasts(self, recipient_key: str | None = None) -> ToastQueue:
        """A toast queue on this engine's bus, using the configured duration."""
        return ToastQueue(self._bus, recipient_key=recipient_key, duration=self._config.toast_duration)

    def check_reminders(self) -> list[NotificationEvent]:
        return self._reminders.check_due(self._actor)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def open_conversation(self, conversation_id: str) -> Conversation:
        return self._channel.open(conversation_id)

    @contextlib.contextmanager
    def viewing_conversation(self, conversation_id: str) -> Iterator[Conversation]:
        """Open a conversation and suppress its chat alerts while the block runs."""
        with self._chat_alerts.viewing(conversation_id):
            yield self._channel.open(conversation_id)

    # ------------------------------------------------------------------
    # Store polling
    # ------------------------------------------------------------------

    async def refresh(self) -> list[NotificationEvent]:
        """Fetch one snapshot from the store and process it."""
        if self._store is None:
            raise RidersBudError("No booking store configured")
        snapshot = await self._store.fetch_snapshot()
        return self.on_snapshot(snapshot)

    async def _poll_store(self) -> None:
        interval = self._config.snapshot_poll_interval
        while True:
            try:
                await self.refresh()
            except Exception:
                _logger.warning("Booking snapshot refresh failed", exc_info=True)
            await asyncio.sleep(interval)
