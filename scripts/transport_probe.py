#!/usr/bin/env python3
"""Passive probe for the RidersBUD MQTT storage transport.

Attaches to the storage broker configured through ``RIDERSBUD_*`` environment
variables and prints every key change (retained values are replayed on
connect). Chat histories are decoded and shown message by message.

Use this to check that writes from other contexts arrive, and in what order.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyridersbud import RidersBudConfig, RidersBudError  # noqa: E402
from pyridersbud.channel import conversation_id_from_key, decode_history  # noqa: E402
from pyridersbud.transport import MqttTransport, StorageChange  # noqa: E402

_LOG = logging.getLogger("transport_probe")


@dataclass
class ProbeStats:
    started_at: float
    total_changes: int = 0
    deletes: int = 0
    chat_changes: int = 0
    last_change_at: float | None = None

    def on_change(self, now: float) -> float | None:
        previous = self.last_change_at
        self.total_changes += 1
        self.last_change_at = now
        return None if previous is None else now - previous


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Passive probe for the RidersBUD storage transport.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--prefix",
        default=None,
        help="Override the topic prefix (default: RIDERSBUD_MQTT_TOPIC_PREFIX).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print stored JSON values.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_change(change: StorageChange, stats: ProbeStats, *, pretty: bool) -> None:
    now = time.time()
    delta = stats.on_change(now)
    ts_text = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now))
    gap_text = "first" if delta is None else f"{delta:.1f}s"

    if change.new_value is None:
        stats.deletes += 1
        print(f"[probe] change#{stats.total_changes} at {ts_text} gap={gap_text} key={change.key} deleted")
        return

    print(
        f"[probe] change#{stats.total_changes} at {ts_text} gap={gap_text} "
        f"key={change.key} chars={len(change.new_value)}",
    )
    if conversation_id_from_key(change.key) is not None:
        stats.chat_changes += 1
        for message in decode_history(change.new_value, key=change.key):
            print(f"[probe]   {message.sender.value:>8}: {message.text}")
        return
    if pretty:
        try:
            print(json.dumps(json.loads(change.new_value), indent=2, ensure_ascii=False, sort_keys=True))
        except json.JSONDecodeError:
            print(f"[probe]   raw={change.new_value}")


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s     : {runtime:.1f}")
    print(f"[probe]   total_changes : {stats.total_changes}")
    print(f"[probe]   chat_changes  : {stats.chat_changes}")
    print(f"[probe]   deletes       : {stats.deletes}")


async def _run(args: argparse.Namespace, config: RidersBudConfig) -> int:
    loop = asyncio.get_running_loop()
    transport = MqttTransport.from_config(config, loop=loop, logger=_LOG)
    stats = ProbeStats(started_at=time.time())
    stop = asyncio.Event()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    transport.subscribe(lambda change: _print_change(change, stats, pretty=args.json))
    print(f"[probe] Connecting to {config.mqtt_host}:{config.mqtt_port} topic={transport.subscription_topic}")
    try:
        transport.start()
    except RidersBudError as exc:
        print(f"[probe] Connect failed: {exc}", file=sys.stderr)
        return 2

    try:
        timeout = args.duration if args.duration > 0 else None
        try:
            await asyncio.wait_for(stop.wait(), timeout=timeout)
        except TimeoutError:
            print(f"[probe] Reached --duration={args.duration}s, stopping.")
    finally:
        transport.close()

    _print_summary(stats)
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {"mqtt_topic_prefix": args.prefix} if args.prefix else {}
    try:
        config = RidersBudConfig.from_env(**overrides)
    except RidersBudError as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2
    if not config.mqtt_host:
        print("[probe] RIDERSBUD_MQTT_HOST is not set", file=sys.stderr)
        return 2

    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    raise SystemExit(_main())
