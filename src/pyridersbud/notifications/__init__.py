"""Notification bus, toasts, and the reminder and chat notification sources."""

from pyridersbud.notifications.bus import BusUpdate, BusUpdateKind, NotificationBus
from pyridersbud.notifications.chat import ChatAlerts, chat_events_for
from pyridersbud.notifications.reminders import ReminderScanner, load_reminders, reminder_message
from pyridersbud.notifications.toasts import Toast, ToastQueue

__all__ = [
    "BusUpdate",
    "BusUpdateKind",
    "ChatAlerts",
    "NotificationBus",
    "ReminderScanner",
    "Toast",
    "ToastQueue",
    "chat_events_for",
    "load_reminders",
    "reminder_message",
]
