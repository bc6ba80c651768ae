"""pyridersbud - Live-state notification engine for the RidersBUD booking platform."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyridersbud")
except PackageNotFoundError:
    __version__ = "0+local"
from pyridersbud.channel import ChatChannel, Conversation
from pyridersbud.config import RidersBudConfig
from pyridersbud.engine import LiveNotificationEngine
from pyridersbud.exceptions import (
    RidersBudConfigError,
    RidersBudError,
    RidersBudStoreError,
    RidersBudTransportError,
    RidersBudUsageError,
)
from pyridersbud.models import (
    Actor,
    ActorRole,
    Booking,
    BookingStatus,
    ChatMessage,
    ChatSender,
    LocationFix,
    MechanicRef,
    NotificationEvent,
    NotificationType,
    Reminder,
    ServiceInfo,
    Snapshot,
    VehicleInfo,
)
from pyridersbud.notifications import ChatAlerts, NotificationBus, ReminderScanner, ToastQueue
from pyridersbud.state import SnapshotTracker, compute_events
from pyridersbud.store import BookingStore, RestBookingStore
from pyridersbud.transport import LocalBroker, LocalTransport, MqttTransport, StorageChange, Transport, build_transport
from pyridersbud.watcher import LocationSource, LocationWatcher, PollingLocationSource, WatcherState

__all__ = [
    "__version__",
    "Actor",
    "ActorRole",
    "Booking",
    "BookingStatus",
    "BookingStore",
    "ChatAlerts",
    "ChatChannel",
    "ChatMessage",
    "ChatSender",
    "Conversation",
    "LiveNotificationEngine",
    "LocalBroker",
    "LocalTransport",
    "LocationFix",
    "LocationSource",
    "LocationWatcher",
    "MechanicRef",
    "MqttTransport",
    "NotificationBus",
    "NotificationEvent",
    "NotificationType",
    "PollingLocationSource",
    "Reminder",
    "ReminderScanner",
    "RestBookingStore",
    "RidersBudConfig",
    "RidersBudConfigError",
    "RidersBudError",
    "RidersBudStoreError",
    "RidersBudTransportError",
    "RidersBudUsageError",
    "ServiceInfo",
    "Snapshot",
    "SnapshotTracker",
    "StorageChange",
    "ToastQueue",
    "Transport",
    "VehicleInfo",
    "WatcherState",
    "build_transport",
    "compute_events",
]
