"""Storage transports: durable key/value stores with broadcast-on-write."""

from __future__ import annotations

import asyncio
import logging

from pyridersbud.config import RidersBudConfig
from pyridersbud.transport.base import ChangeHandler, StorageChange, Transport, decode_json_list, encode_json
from pyridersbud.transport.local import LocalBroker, LocalTransport
from pyridersbud.transport.mqtt import MqttTransport


def build_transport(
    config: RidersBudConfig,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    logger: logging.Logger | None = None,
) -> LocalTransport | MqttTransport:
    """Pick the transport implementation for *config*.

    An MQTT transport is returned unstarted; call ``start()`` before writing.
    """
    if config.mqtt_host:
        return MqttTransport.from_config(config, loop=loop or asyncio.get_running_loop(), logger=logger)
    return LocalTransport(LocalBroker(config.storage_path, logger=logger))


__all__ = [
    "ChangeHandler",
    "LocalBroker",
    "LocalTransport",
    "MqttTransport",
    "StorageChange",
    "Transport",
    "build_transport",
    "decode_json_list",
    "encode_json",
]
