"""State layer.

Pure snapshot diffing plus the single owned slot that remembers the previous
snapshot between ticks.
"""

from pyridersbud.state.diff import compute_events, is_customer_booking
from pyridersbud.state.tracker import SnapshotTracker

__all__ = ["SnapshotTracker", "compute_events", "is_customer_booking"]
