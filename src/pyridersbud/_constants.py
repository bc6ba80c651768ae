"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Persisted storage keys
# ------------------------------------------------------------------

CHAT_KEY_PREFIX = "chat_"
REMINDERS_KEY = "serviceReminders"

# ------------------------------------------------------------------
# Recipient keys
# ------------------------------------------------------------------

RECIPIENT_ALL = "all"

# ------------------------------------------------------------------
# Deep-link targets used by generated notifications
# ------------------------------------------------------------------

LINK_HOME = "/"
LINK_BOOKING_HISTORY = "/booking-history"
LINK_MECHANIC_DASHBOARD = "/mechanic/dashboard"
LINK_MECHANIC_EARNINGS = "/mechanic/earnings"
LINK_REMINDERS = "/reminders"


def mechanic_job_link(booking_id: str) -> str:
    return f"/mechanic/job/{booking_id}"


# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------

DEFAULT_CURRENCY_SYMBOL = "₱"  # Philippine peso
DEFAULT_MAX_NOTIFICATIONS = 100
DEFAULT_TOAST_DURATION_S = 5.0
DEFAULT_REMINDER_WINDOW_DAYS = 7
DEFAULT_MQTT_TOPIC_PREFIX = "ridersbud/storage"


def format_currency(amount: float, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Format *amount* with thousands separators, e.g. ``₱1,500`` or ``₱1,250.50``."""
    value = float(amount)
    if value.is_integer():
        return f"{symbol}{int(value):,}"
    return f"{symbol}{value:,.2f}"
