"""Chat message model."""

from __future__ import annotations

from pydantic import Field

from pyridersbud.models._base import RidersBudBaseModel, RidersBudEnum, Timestamp, utcnow


class ChatSender(RidersBudEnum):
    CUSTOMER = "customer"
    MECHANIC = "mechanic"
    UNKNOWN = "unknown"


class ChatMessage(RidersBudBaseModel):
    """One message in a booking conversation.

    ``timestamp`` is advisory; conversation order is the persisted list order.
    """

    sender: ChatSender
    text: str
    timestamp: Timestamp = Field(default_factory=utcnow)
