from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from pyridersbud.config import RidersBudConfig
from pyridersbud.transport import LocalBroker, LocalTransport, StorageChange, build_transport, decode_json_list


def test_writer_receives_its_own_write_before_write_returns() -> None:
    transport = LocalTransport()
    seen: list[StorageChange] = []
    transport.subscribe(seen.append)

    transport.write("chat_b1", "[]")

    assert seen == [StorageChange(key="chat_b1", new_value="[]")]


def test_write_reaches_other_contexts_once_each() -> None:
    broker = LocalBroker()
    ctx_a = broker.context("a")
    ctx_b = broker.context("b")
    ctx_c = broker.context("c")
    seen: dict[str, list[StorageChange]] = {"a": [], "b": [], "c": []}
    ctx_a.subscribe(seen["a"].append)
    ctx_b.subscribe(seen["b"].append)
    ctx_c.subscribe(seen["c"].append)

    ctx_a.write("k", "v1")

    for name in ("a", "b", "c"):
        assert seen[name] == [StorageChange(key="k", new_value="v1")]
    assert ctx_c.read("k") == "v1"


def test_delete_broadcasts_none_and_removes_value() -> None:
    broker = LocalBroker()
    ctx_a = broker.context("a")
    ctx_b = broker.context("b")
    seen: list[StorageChange] = []
    ctx_b.subscribe(seen.append)

    ctx_a.write("k", "v1")
    ctx_a.write("k", None)

    assert ctx_b.read("k") is None
    assert seen[-1] == StorageChange(key="k", new_value=None)


def test_unsubscribe_stops_delivery() -> None:
    transport = LocalTransport()
    seen: list[StorageChange] = []
    unsubscribe = transport.subscribe(seen.append)

    transport.write("k", "1")
    unsubscribe()
    transport.write("k", "2")

    assert [c.new_value for c in seen] == ["1"]


def test_failing_handler_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    transport = LocalTransport()
    seen: list[str] = []

    def _boom(_change: StorageChange) -> None:
        raise RuntimeError("handler exploded")

    transport.subscribe(_boom)
    transport.subscribe(lambda change: seen.append(change.key))

    with caplog.at_level(logging.WARNING):
        transport.write("k", "v")

    assert seen == ["k"]
    assert transport.read("k") == "v"
    assert any("listener failed" in record.getMessage() for record in caplog.records)


def test_closed_context_receives_nothing() -> None:
    broker = LocalBroker()
    ctx_a = broker.context("a")
    ctx_b = broker.context("b")
    seen: list[StorageChange] = []
    ctx_b.subscribe(seen.append)

    ctx_b.close()
    ctx_a.write("k", "v")

    assert seen == []
    assert ctx_b.read("k") == "v"


def test_values_persist_to_file(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    LocalTransport(LocalBroker(path)).write("serviceReminders", "[]")

    assert json.loads(path.read_text(encoding="utf-8")) == {"serviceReminders": "[]"}
    assert LocalTransport(LocalBroker(path)).read("serviceReminders") == "[]"


def test_unwritable_storage_file_still_dispatches(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    broker = LocalBroker(tmp_path / "missing" / "store.json")
    writer = broker.context("a")
    other = broker.context("b")
    seen: list[StorageChange] = []
    other_seen: list[StorageChange] = []
    writer.subscribe(seen.append)
    other.subscribe(other_seen.append)

    with caplog.at_level(logging.WARNING):
        writer.write("chat_b1", "[]")

    assert seen == [StorageChange(key="chat_b1", new_value="[]")]
    assert other_seen == [StorageChange(key="chat_b1", new_value="[]")]
    assert writer.read("chat_b1") == "[]"
    assert any("Could not persist storage file" in record.getMessage() for record in caplog.records)


def test_unreadable_storage_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")

    assert LocalBroker(path).get("anything") is None


@pytest.mark.parametrize("raw", [None, ""])
def test_decode_missing_value_is_empty(raw: str | None) -> None:
    assert decode_json_list(raw, key="k") == []


@pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', '"text"', "42"])
def test_decode_corrupt_value_is_empty_and_logged(raw: str, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert decode_json_list(raw, key="chat_b1") == []
    assert any("chat_b1" in record.getMessage() for record in caplog.records)


def test_decode_list_round_trip() -> None:
    assert decode_json_list('[{"a":1},2]') == [{"a": 1}, 2]


def test_build_transport_defaults_to_local(tmp_path: Path) -> None:
    transport = build_transport(RidersBudConfig(storage_path=str(tmp_path / "s.json")))

    assert isinstance(transport, LocalTransport)
    transport.write("k", "v")
    assert (tmp_path / "s.json").exists()
