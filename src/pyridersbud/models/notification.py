"""Notification and actor models."""

from __future__ import annotations

import uuid

from pydantic import Field, field_validator

from pyridersbud._constants import RECIPIENT_ALL
from pyridersbud.models._base import RidersBudBaseModel, RidersBudEnum, Timestamp, utcnow


class NotificationType(RidersBudEnum):
    BOOKING = "booking"
    JOB = "job"
    CHAT = "chat"
    REMINDER = "reminder"
    GENERAL = "general"
    UNKNOWN = "unknown"


class ActorRole(RidersBudEnum):
    CUSTOMER = "customer"
    MECHANIC = "mechanic"
    UNKNOWN = "unknown"


def recipient_key(role: ActorRole | str, actor_id: str) -> str:
    """Recipient key for an actor, e.g. ``customer-c1`` or ``mechanic-m1``."""
    return f"{ActorRole(role).value}-{actor_id}"


class Actor(RidersBudBaseModel):
    """The authenticated customer or mechanic a context is acting as."""

    role: ActorRole
    id: str
    name: str = ""

    @property
    def recipient_key(self) -> str:
        return recipient_key(self.role, self.id)

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    @property
    def is_mechanic(self) -> bool:
        return self.role == ActorRole.MECHANIC


class NotificationEvent(RidersBudBaseModel):
    """A user-facing notification.

    Instances are frozen; the only state change (``read``) is expressed by
    replacing the stored instance with :meth:`as_read`.
    """

    id: str = Field(default_factory=lambda: f"notif-{uuid.uuid4().hex}")
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    recipient_id: str
    read: bool = False
    timestamp: Timestamp = Field(default_factory=utcnow)

    @field_validator("title", "message")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title and message must be non-empty")
        return value

    def is_for(self, key: str) -> bool:
        """Whether this notification targets *key* (directly or via ``all``)."""
        return self.recipient_id in (key, RECIPIENT_ALL)

    def as_read(self) -> NotificationEvent:
        if self.read:
            return self
        return self.model_copy(update={"read": True})
