"""Owned single-slot "previous snapshot" state for the diff engine."""

from __future__ import annotations

from datetime import datetime

from pyridersbud._constants import DEFAULT_CURRENCY_SYMBOL
from pyridersbud.models.booking import Snapshot
from pyridersbud.models.notification import Actor, NotificationEvent
from pyridersbud.state.diff import compute_events


class SnapshotTracker:
    """Holds the last observed snapshot and diffs each new one against it.

    The slot is overwritten after every tick, with or without an actor, so a
    login never replays transitions that happened while logged out.
    """

    def __init__(self, *, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> None:
        self._currency_symbol = currency_symbol
        self._previous: Snapshot | None = None

    @property
    def previous(self) -> Snapshot | None:
        return self._previous

    def advance(
        self,
        curr: Snapshot,
        actor: Actor | None,
        *,
        now: datetime | None = None,
    ) -> list[NotificationEvent]:
        prev = self._previous
        self._previous = curr
        if actor is None:
            return []
        return compute_events(prev, curr, actor, now=now, currency_symbol=self._currency_symbol)

    def reset(self) -> None:
        """Forget the baseline; the next snapshot reports nothing."""
        self._previous = None
