"""Checkpoint primitives: snapshots, the live-state holder and the history."""

from __future__ import annotations

from .history import DEFAULT_CAPACITY, History
from .holder import StateHolder
from .snapshot import LineItem, Snapshot, Voucher

__all__ = ["DEFAULT_CAPACITY", "History", "LineItem", "Snapshot", "StateHolder", "Voucher"]
