"""Out-of-process storage transport backed by an MQTT broker.

Each storage key is a retained topic ``<prefix>/<key>``: the broker keeps the
last value (durability) and replays it to late subscribers. Deleting a key
publishes an empty retained payload, which clears it on the broker.

The subscription uses the MQTT v5 ``noLocal`` option, so the broker never
echoes this client's own writes back; the same-context loopback is dispatched
locally instead, before ``write`` returns.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, cast

import paho.mqtt.client as mqtt
from paho.mqtt.subscribeoptions import SubscribeOptions

from pyridersbud._listeners import ListenerSet, Unsubscribe
from pyridersbud._redact import redact_for_log
from pyridersbud.config import RidersBudConfig
from pyridersbud.exceptions import RidersBudTransportError
from pyridersbud.transport.base import ChangeHandler, StorageChange


class MqttTransport:
    """Threaded paho-mqtt runtime that replicates storage keys across processes.

    Remote changes arrive on the paho network thread and are handed to the
    asyncio loop with ``call_soon_threadsafe``; the local cache and the
    subscribers are only ever touched on the loop.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        host: str,
        port: int = 1883,
        topic_prefix: str = "ridersbud/storage",
        client_id: str | None = None,
        username: str | None = None,
        password: str | None = None,
        tls: bool = False,
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._host = host
        self._port = port
        self._prefix = topic_prefix.rstrip("/")
        self._client_id = client_id or f"ridersbud-{uuid.uuid4().hex[:12]}"
        self._username = username
        self._password = password
        self._tls = tls
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._cache: dict[str, str] = {}
        self._subscribers: ListenerSet[StorageChange] = ListenerSet(name="mqtt transport", logger=self._logger)

    @classmethod
    def from_config(
        cls,
        config: RidersBudConfig,
        *,
        loop: asyncio.AbstractEventLoop,
        logger: logging.Logger | None = None,
    ) -> MqttTransport:
        if not config.mqtt_host:
            raise RidersBudTransportError("mqtt_host is not configured")
        return cls(
            loop=loop,
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic_prefix=config.mqtt_topic_prefix,
            client_id=config.mqtt_client_id,
            username=config.mqtt_username,
            password=config.mqtt_password,
            tls=config.mqtt_tls,
            keepalive=config.mqtt_keepalive,
            logger=logger,
        )

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    @property
    def subscription_topic(self) -> str:
        return f"{self._prefix}/#"

    def topic_for(self, key: str) -> str:
        return f"{self._prefix}/{key}"

    def key_for(self, topic: str) -> str | None:
        head = f"{self._prefix}/"
        if not topic.startswith(head):
            return None
        key = topic[len(head) :]
        return key or None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Connect, subscribe to the key namespace and start the network loop."""
        self.stop()
        self._logger.debug(
            "MQTT transport start requested host=%s port=%s topic=%s client_id=%s",
            self._host,
            self._port,
            self.subscription_topic,
            self._client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._username:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            client.connect(self._host, self._port, keepalive=self._keepalive)
        except OSError as exc:
            raise RidersBudTransportError(f"MQTT connect to {self._host}:{self._port} failed: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def close(self) -> None:
        self.stop()
        self._subscribers.clear()

    # ------------------------------------------------------------------
    # Transport interface
    # ------------------------------------------------------------------

    def read(self, key: str) -> str | None:
        return self._cache.get(key)

    def write(self, key: str, value: str | None) -> None:
        client = self._client
        if client is None or not self._running:
            raise RidersBudTransportError("MQTT transport not started", key=key)

        self._logger.debug("MQTT write key=%s value=%s", key, redact_for_log(value, max_string=128))
        payload = value.encode("utf-8") if value is not None else None
        info = client.publish(self.topic_for(key), payload, qos=1, retain=True)
        if info.rc == mqtt.MQTT_ERR_NO_CONN:
            self._logger.debug("MQTT write key=%s queued until reconnect", key)
        elif info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise RidersBudTransportError(f"MQTT publish failed rc={info.rc}", key=key)

        self._apply(StorageChange(key=key, new_value=value))

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        return self._subscribers.add(handler)

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.debug("MQTT connected reason=%s, subscribing topic=%s", reason_code, self.subscription_topic)
        client.subscribe(self.subscription_topic, options=SubscribeOptions(qos=1, noLocal=True))

    def _on_message(self, _client: Any, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        key = self.key_for(msg.topic)
        if key is None:
            return
        try:
            text = bytes(msg.payload).decode("utf-8")
        except UnicodeDecodeError:
            self._logger.warning("Dropping non-UTF-8 payload for key=%s", key)
            return
        change = StorageChange(key=key, new_value=text if text else None)
        self._loop.call_soon_threadsafe(self._apply, change)

    def _on_disconnect(
        self,
        _client: Any,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    # ------------------------------------------------------------------
    # Loop-side application
    # ------------------------------------------------------------------

    def _apply(self, change: StorageChange) -> None:
        if change.new_value is None:
            self._cache.pop(change.key, None)
        else:
            self._cache[change.key] = change.new_value
        self._subscribers.dispatch(change)
