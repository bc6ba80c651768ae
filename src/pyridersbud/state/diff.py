"""Snapshot diffing: turn booking transitions into notification events.

`compute_events` is a pure function of ``(prev, curr, actor, now)``. Every rule
fires on a *change* between the two snapshots, so comparing a snapshot with
itself (or with a deep-equal copy) yields nothing. Event ids are derived from
the transition and ``now``, which makes repeated calls with the same inputs
return identical sequences.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from pyridersbud._constants import (
    DEFAULT_CURRENCY_SYMBOL,
    LINK_BOOKING_HISTORY,
    LINK_MECHANIC_DASHBOARD,
    LINK_MECHANIC_EARNINGS,
    RECIPIENT_ALL,
    format_currency,
    mechanic_job_link,
)
from pyridersbud.models.booking import Booking, BookingStatus, Snapshot
from pyridersbud.models.notification import Actor, NotificationEvent, NotificationType

_EVENT_NAMESPACE = uuid.UUID("5b0c7a8e-3f7d-4d1e-9a59-2f6f1c1d8e42")

_FALLBACK_MECHANIC_NAME = "Your mechanic"

# new status -> (title, message template)
_CUSTOMER_STATUS_MESSAGES: dict[BookingStatus, tuple[str, Callable[[Booking], str]]] = {
    BookingStatus.MECHANIC_ASSIGNED: (
        "Mechanic Assigned!",
        lambda b: f"{_mechanic_name(b)} has been assigned to your job.",
    ),
    BookingStatus.EN_ROUTE: (
        "Mechanic En Route!",
        lambda b: f"{_mechanic_name(b)} is on the way.",
    ),
    BookingStatus.IN_PROGRESS: (
        "Work has Begun!",
        lambda b: f"{_mechanic_name(b)} has started the {b.service.name} service.",
    ),
    BookingStatus.COMPLETED: (
        "Service Complete!",
        lambda b: f"Your {b.service.name} is now complete.",
    ),
}


def _mechanic_name(booking: Booking) -> str:
    if booking.mechanic is not None and booking.mechanic.name:
        return booking.mechanic.name
    return _FALLBACK_MECHANIC_NAME


def is_customer_booking(booking: Booking, actor: Actor) -> bool:
    """Whether *booking* belongs to *actor*.

    Prefer the customer id when the store provides one; older records only
    carry the customer's display name.
    """
    if booking.customer_id is not None:
        return booking.customer_id == actor.id
    return bool(actor.name) and booking.customer_name == actor.name


def make_event_id(recipient_id: str, kind: NotificationType, booking_id: str, title: str, now: datetime) -> str:
    seed = "|".join((recipient_id, kind.value, booking_id, title, now.isoformat()))
    return f"notif-{uuid.uuid5(_EVENT_NAMESPACE, seed).hex}"


def _event(
    *,
    kind: NotificationType,
    title: str,
    message: str,
    link: str,
    recipient_id: str,
    booking_id: str,
    now: datetime,
) -> NotificationEvent:
    return NotificationEvent(
        id=make_event_id(recipient_id, kind, booking_id, title, now),
        type=kind,
        title=title,
        message=message,
        link=link,
        recipient_id=recipient_id,
        timestamp=now,
    )


def _customer_events(
    prev_index: dict[str, Booking],
    curr: Snapshot,
    actor: Actor,
    now: datetime,
) -> list[NotificationEvent]:
    events: list[NotificationEvent] = []
    for booking in curr.bookings:
        if not is_customer_booking(booking, actor):
            continue
        old = prev_index.get(booking.id)
        # Newly created bookings have no status change to report.
        if old is None or old.status == booking.status:
            continue
        mapped = _CUSTOMER_STATUS_MESSAGES.get(booking.status)
        if mapped is None:
            continue
        title, render = mapped
        events.append(
            _event(
                kind=NotificationType.BOOKING,
                title=title,
                message=render(booking),
                link=LINK_BOOKING_HISTORY,
                recipient_id=actor.recipient_key,
                booking_id=booking.id,
                now=now,
            )
        )
    return events


def _mechanic_events(
    prev_index: dict[str, Booking],
    curr: Snapshot,
    actor: Actor,
    now: datetime,
    currency_symbol: str,
) -> list[NotificationEvent]:
    events: list[NotificationEvent] = []
    recipient = actor.recipient_key

    # 1) New unassigned jobs, broadcast to every mechanic.
    for booking in curr.bookings:
        if booking.status != BookingStatus.UPCOMING or booking.mechanic is not None:
            continue
        if booking.id in prev_index:
            continue
        events.append(
            _event(
                kind=NotificationType.JOB,
                title="New Job Available!",
                message=f"A {booking.service.name} for a {booking.vehicle.make or 'vehicle'} is available.",
                link=LINK_MECHANIC_DASHBOARD,
                recipient_id=RECIPIENT_ALL,
                booking_id=booking.id,
                now=now,
            )
        )

    # 2) Jobs newly assigned to this mechanic.
    for booking in curr.bookings:
        if booking.mechanic is None or booking.mechanic.id != actor.id:
            continue
        old = prev_index.get(booking.id)
        if old is not None and old.mechanic is not None and old.mechanic.id == actor.id:
            continue
        events.append(
            _event(
                kind=NotificationType.JOB,
                title="You Have a New Job!",
                message=f"You've been assigned a {booking.service.name} for {booking.customer_name or 'a customer'}.",
                link=mechanic_job_link(booking.id),
                recipient_id=recipient,
                booking_id=booking.id,
                now=now,
            )
        )

    # 3) Payments landing on this mechanic's bookings.
    for booking in curr.bookings:
        if booking.mechanic is None or booking.mechanic.id != actor.id:
            continue
        old = prev_index.get(booking.id)
        if old is None or old.is_paid is True or booking.is_paid is not True:
            continue
        amount = format_currency(booking.service.price, currency_symbol)
        events.append(
            _event(
                kind=NotificationType.GENERAL,
                title="Payment Received!",
                message=f"You've received a payment of {amount} for booking #{booking.id[-6:]}.",
                link=LINK_MECHANIC_EARNINGS,
                recipient_id=recipient,
                booking_id=booking.id,
                now=now,
            )
        )

    return events


def compute_events(
    prev: Snapshot | None,
    curr: Snapshot,
    actor: Actor,
    *,
    now: datetime | None = None,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> list[NotificationEvent]:
    """Compute the notifications produced by the transition ``prev -> curr`` for *actor*.

    Returns an empty list when there is no baseline (``prev is None``): the
    first observation after (re)connecting never reports retroactively.

    Customer actors get one booking event per status change on their own
    bookings. Mechanic actors get three independent checks, emitted in this
    order: new unassigned jobs, jobs newly assigned to them, and payments.
    Within each check, bookings are visited in ``curr`` order.
    """
    if prev is None or prev is curr:
        return []
    timestamp = now if now is not None else datetime.now(UTC)
    prev_index = prev.index()

    if actor.is_customer:
        return _customer_events(prev_index, curr, actor, timestamp)
    if actor.is_mechanic:
        return _mechanic_events(prev_index, curr, actor, timestamp, currency_symbol)
    return []
