"""Chat message notifications driven by conversation key changes."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator, Sequence

from pyridersbud._constants import LINK_BOOKING_HISTORY, LINK_HOME, mechanic_job_link
from pyridersbud._listeners import Unsubscribe
from pyridersbud.channel import conversation_id_from_key, decode_history
from pyridersbud.models.booking import BookingStatus, Snapshot
from pyridersbud.models.chat import ChatMessage, ChatSender
from pyridersbud.models.notification import Actor, NotificationEvent, NotificationType
from pyridersbud.notifications.bus import NotificationBus
from pyridersbud.state.diff import is_customer_booking
from pyridersbud.transport.base import StorageChange, Transport

_logger = logging.getLogger(__name__)


def chat_events_for(
    conversation_id: str,
    messages: Sequence[ChatMessage],
    snapshot: Snapshot,
    actor: Actor,
) -> list[NotificationEvent]:
    """Build the alert for the latest message of a conversation, if *actor* should get one.

    Customers are alerted about mechanic messages on their own bookings;
    mechanics about customer messages on bookings assigned to them. Messages
    the actor sent themselves never alert.
    """
    if not messages:
        return []
    last = messages[-1]
    booking = snapshot.get(conversation_id)
    if booking is None:
        return []

    if actor.is_customer and last.sender == ChatSender.MECHANIC:
        if booking.mechanic is None or not is_customer_booking(booking, actor):
            return []
        link = LINK_BOOKING_HISTORY if booking.status == BookingStatus.COMPLETED else LINK_HOME
        return [
            NotificationEvent(
                type=NotificationType.CHAT,
                title=f"New Message from {booking.mechanic.name or 'your mechanic'}",
                message=last.text,
                link=link,
                recipient_id=actor.recipient_key,
            )
        ]

    if actor.is_mechanic and last.sender == ChatSender.CUSTOMER:
        if booking.mechanic is None or booking.mechanic.id != actor.id:
            return []
        return [
            NotificationEvent(
                type=NotificationType.CHAT,
                title=f"New Message from {booking.customer_name or 'your customer'}",
                message=last.text,
                link=mechanic_job_link(booking.id),
                recipient_id=actor.recipient_key,
            )
        ]

    return []


class ChatAlerts:
    """Turns ``chat_*`` key changes into chat notifications.

    Conversations currently on screen are tracked with :meth:`mark_open` /
    :meth:`mark_closed` (or the :meth:`viewing` context manager) and do not
    alert.
    """

    def __init__(
        self,
        transport: Transport,
        bus: NotificationBus,
        *,
        snapshot_provider: Callable[[], Snapshot | None],
        actor_provider: Callable[[], Actor | None],
    ) -> None:
        self._transport = transport
        self._bus = bus
        self._snapshot_provider = snapshot_provider
        self._actor_provider = actor_provider
        self._open: set[str] = set()
        self._unsubscribe: Unsubscribe | None = None

    @property
    def open_conversations(self) -> frozenset[str]:
        return frozenset(self._open)

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._transport.subscribe(self._on_change)

    def stop(self) -> None:
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()

    def mark_open(self, conversation_id: str) -> None:
        self._open.add(conversation_id)

    def mark_closed(self, conversation_id: str) -> None:
        self._open.discard(conversation_id)

    @contextlib.contextmanager
    def viewing(self, conversation_id: str) -> Iterator[None]:
        self.mark_open(conversation_id)
        try:
            yield
        finally:
            self.mark_closed(conversation_id)

    def _on_change(self, change: StorageChange) -> None:
        conversation_id = conversation_id_from_key(change.key)
        if conversation_id is None or change.new_value is None:
            return
        if conversation_id in self._open:
            return
        snapshot = self._snapshot_provider()
        actor = self._actor_provider()
        if snapshot is None or actor is None:
            return

        messages = decode_history(change.new_value, key=change.key)
        for event in chat_events_for(conversation_id, messages, snapshot, actor):
            self._bus.publish(event)
