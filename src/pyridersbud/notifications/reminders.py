"""Time-based service reminder notifications."""

from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import logging
from collections.abc import Callable

from pydantic import ValidationError

from pyridersbud._constants import DEFAULT_REMINDER_WINDOW_DAYS, LINK_REMINDERS, REMINDERS_KEY
from pyridersbud.models.notification import Actor, NotificationEvent, NotificationType
from pyridersbud.models.reminder import Reminder
from pyridersbud.notifications.bus import NotificationBus
from pyridersbud.transport.base import Transport, decode_json_list

_logger = logging.getLogger(__name__)


def load_reminders(transport: Transport) -> list[Reminder]:
    """Read ``serviceReminders``; corrupt stores and invalid records are skipped."""
    reminders: list[Reminder] = []
    for item in decode_json_list(transport.read(REMINDERS_KEY), key=REMINDERS_KEY, logger=_logger):
        try:
            reminders.append(Reminder.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping invalid reminder record %r", item, exc_info=True)
    return reminders


def reminder_message(reminder: Reminder, days_until_due: int) -> str:
    if days_until_due == 0:
        return f"Your {reminder.service_name} for {reminder.vehicle} is due today!"
    suffix = "s" if days_until_due > 1 else ""
    return f"Your {reminder.service_name} for {reminder.vehicle} is due in {days_until_due} day{suffix}."


class ReminderScanner:
    """Notifies customers of upcoming service reminders, once per session.

    The set of already-notified reminder ids is owned here and lives as long
    as the session; :meth:`reset_session` starts a new one.
    """

    def __init__(
        self,
        transport: Transport,
        bus: NotificationBus,
        *,
        window_days: int = DEFAULT_REMINDER_WINDOW_DAYS,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self._transport = transport
        self._bus = bus
        self._window_days = window_days
        self._today = today
        self._notified: set[str] = set()
        self._task: asyncio.Task[None] | None = None

    @property
    def notified(self) -> frozenset[str]:
        return frozenset(self._notified)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def reset_session(self) -> None:
        self._notified.clear()

    def check_due(self, actor: Actor | None, today: dt.date | None = None) -> list[NotificationEvent]:
        """Publish a reminder notification for each not-yet-notified reminder due in the window."""
        if actor is None or not actor.is_customer:
            return []
        day = today or self._today()
        horizon = day + dt.timedelta(days=self._window_days)

        events: list[NotificationEvent] = []
        for reminder in load_reminders(self._transport):
            if not day <= reminder.date <= horizon:
                continue
            if reminder.id in self._notified:
                continue
            event = NotificationEvent(
                type=NotificationType.REMINDER,
                title="Service Reminder",
                message=reminder_message(reminder, reminder.days_until(day)),
                link=LINK_REMINDERS,
                recipient_id=actor.recipient_key,
            )
            self._notified.add(reminder.id)
            self._bus.publish(event)
            events.append(event)
        return events

    # ------------------------------------------------------------------
    # Periodic timer
    # ------------------------------------------------------------------

    def start(self, actor_provider: Callable[[], Actor | None], interval: float) -> None:
        """Run :meth:`check_due` now and then every *interval* seconds."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(actor_provider, interval))

    async def _run(self, actor_provider: Callable[[], Actor | None], interval: float) -> None:
        while True:
            try:
                self.check_due(actor_provider())
            except Exception:
                _logger.warning("Service reminder scan failed", exc_info=True)
            await asyncio.sleep(interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
