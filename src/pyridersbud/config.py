"""Engine configuration for pyridersbud."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyridersbud._constants import (
    DEFAULT_CURRENCY_SYMBOL,
    DEFAULT_MAX_NOTIFICATIONS,
    DEFAULT_MQTT_TOPIC_PREFIX,
    DEFAULT_REMINDER_WINDOW_DAYS,
    DEFAULT_TOAST_DURATION_S,
)
from pyridersbud.exceptions import RidersBudConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise RidersBudConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class RidersBudConfig:
    """Engine configuration.

    Parameters
    ----------
    mqtt_host : str or None
        Storage broker host. ``None`` selects the in-process transport.
    mqtt_port : int
        Storage broker port.
    mqtt_tls : bool
        Enable TLS for the broker connection.
    mqtt_username : str or None
        Broker username.
    mqtt_password : str or None
        Broker password.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_topic_prefix : str
        Topic namespace; each storage key maps to ``<prefix>/<key>``.
    mqtt_client_id : str or None
        Explicit client id. A random one is generated when omitted.
    storage_path : str or None
        JSON file backing the in-process transport. In-memory when omitted.
    store_base_url : str or None
        Base URL of the booking store REST API.
    store_api_key : str or None
        Bearer token sent to the booking store.
    store_timeout : float
        Total HTTP timeout for store calls, in seconds.
    snapshot_poll_interval : float
        Seconds between booking snapshot polls. ``0`` disables polling.
    max_notifications : int
        Maximum number of notifications retained by the bus.
    toast_duration : float
        Seconds a toast stays visible.
    currency_symbol : str
        Prefix used when formatting payment amounts.
    reminder_interval : float
        Seconds between service-reminder scans. ``0`` disables the timer.
    reminder_window_days : int
        Reminders due within this many days (inclusive) are notified.
    location_poll_interval : float
        Seconds between position polls of the default location source.
    """

    mqtt_host: str | None = None
    mqtt_port: int = 1883
    mqtt_tls: bool = False
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_keepalive: int = 60
    mqtt_topic_prefix: str = DEFAULT_MQTT_TOPIC_PREFIX
    mqtt_client_id: str | None = None
    storage_path: str | None = None
    store_base_url: str | None = None
    store_api_key: str | None = None
    store_timeout: float = 10.0
    snapshot_poll_interval: float = 5.0
    max_notifications: int = DEFAULT_MAX_NOTIFICATIONS
    toast_duration: float = DEFAULT_TOAST_DURATION_S
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    reminder_interval: float = 300.0
    reminder_window_days: int = DEFAULT_REMINDER_WINDOW_DAYS
    location_poll_interval: float = 5.0

    @classmethod
    def from_env(cls, **overrides: Any) -> RidersBudConfig:
        """Create configuration from ``RIDERSBUD_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        RidersBudConfigError
            When a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "RIDERSBUD_MQTT_HOST": "mqtt_host",
            "RIDERSBUD_MQTT_USERNAME": "mqtt_username",
            "RIDERSBUD_MQTT_PASSWORD": "mqtt_password",
            "RIDERSBUD_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "RIDERSBUD_MQTT_CLIENT_ID": "mqtt_client_id",
            "RIDERSBUD_STORAGE_PATH": "storage_path",
            "RIDERSBUD_STORE_BASE_URL": "store_base_url",
            "RIDERSBUD_STORE_API_KEY": "store_api_key",
            "RIDERSBUD_CURRENCY_SYMBOL": "currency_symbol",
        }
        _ENV_INT_MAP = {
            "RIDERSBUD_MQTT_PORT": "mqtt_port",
            "RIDERSBUD_MQTT_KEEPALIVE": "mqtt_keepalive",
            "RIDERSBUD_MAX_NOTIFICATIONS": "max_notifications",
            "RIDERSBUD_REMINDER_WINDOW_DAYS": "reminder_window_days",
        }
        _ENV_FLOAT_MAP = {
            "RIDERSBUD_STORE_TIMEOUT": "store_timeout",
            "RIDERSBUD_SNAPSHOT_POLL_INTERVAL": "snapshot_poll_interval",
            "RIDERSBUD_TOAST_DURATION": "toast_duration",
            "RIDERSBUD_REMINDER_INTERVAL": "reminder_interval",
            "RIDERSBUD_LOCATION_POLL_INTERVAL": "location_poll_interval",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("RIDERSBUD_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
