"""Data models for RidersBUD snapshots, notifications and chat."""

from pyridersbud.models._base import RidersBudBaseModel, RidersBudEnum, Timestamp, parse_timestamp
from pyridersbud.models.booking import Booking, BookingStatus, MechanicRef, ServiceInfo, Snapshot, VehicleInfo
from pyridersbud.models.chat import ChatMessage, ChatSender
from pyridersbud.models.location import LocationFix
from pyridersbud.models.notification import Actor, ActorRole, NotificationEvent, NotificationType, recipient_key
from pyridersbud.models.reminder import Reminder

__all__ = [
    "Actor",
    "ActorRole",
    "Booking",
    "BookingStatus",
    "ChatMessage",
    "ChatSender",
    "LocationFix",
    "MechanicRef",
    "NotificationEvent",
    "NotificationType",
    "Reminder",
    "RidersBudBaseModel",
    "RidersBudEnum",
    "ServiceInfo",
    "Snapshot",
    "Timestamp",
    "VehicleInfo",
    "parse_timestamp",
    "recipient_key",
]
