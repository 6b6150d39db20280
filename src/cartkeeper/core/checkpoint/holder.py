"""
Live cart state holder.

The holder owns the single mutable copy of the cart that the register screen
edits. Copies are only made at the snapshot boundary: reads return the live
lists, while ``to_snapshot`` and ``restore`` go through deep copies.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .snapshot import LineItem, Snapshot, Voucher


class StateHolder:
    """Owner of the live line items and applied vouchers."""

    __slots__ = ("_items", "_vouchers")

    def __init__(self) -> None:
        self._items: list[LineItem] = []
        self._vouchers: list[Voucher] = []

    # ------------------------------- Live state -----------------------------

    def set_items(self, items: Iterable[LineItem] | None) -> None:
        """Replace the live line items wholesale (``None`` -> empty)."""
        self._items = items if isinstance(items, list) else list(items or [])

    def set_applied_instruments(self, instruments: Iterable[Voucher] | None) -> None:
        """Replace the live vouchers wholesale (``None`` -> empty)."""
        self._vouchers = (
            instruments if isinstance(instruments, list) else list(instruments or [])
        )

    def get_items(self) -> list[LineItem]:
        """Return the live line items (no copy)."""
        return self._items

    def get_applied_instruments(self) -> list[Voucher]:
        """Return the live vouchers (no copy)."""
        return self._vouchers

    def reset(self) -> None:
        """Drop the live cart back to empty."""
        self._items = []
        self._vouchers = []

    # ------------------------------- Snapshots ------------------------------

    def to_snapshot(
        self, label: str | None = None, timestamp: datetime | None = None
    ) -> Snapshot:
        """Capture the live state into a new :class:`Snapshot` (``timestamp`` defaults to now)."""
        return Snapshot(self._items, self._vouchers, timestamp=timestamp, label=label)

    def restore(self, snapshot: Snapshot | None) -> None:
        """
        Replace the live state with a deep copy of ``snapshot``'s payload.

        After this call the live lists are structurally independent from the
        snapshot, so editing them never reaches back into history.
        """
        if snapshot is None:
            return
        self._items = snapshot.items()
        self._vouchers = snapshot.applied_instruments()


__all__ = ["StateHolder"]
