"""
Cart snapshot definition.

This module defines the immutable record of a cart at a specific point in
time. It is separated from ``holder.py`` and ``history.py`` so that both can
depend on it without a cycle.

Design Notes
------------
- **Immutability**: A snapshot owns a structural deep copy of the line items
  and applied vouchers taken at construction. Nothing outside this class
  touches the payload; accessors hand out fresh deep copies.
- **Labels**: An explicit label may be attached when the checkpoint is taken.
  Otherwise the label is derived on demand from the timestamp and the number
  of units in the cart.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

LineItem = dict[str, Any]
Voucher = Any


def line_quantity(item: Mapping[str, Any]) -> int:
    """
    Return the unit count of a line item.

    Reads ``quantity`` and falls back to ``qty``. Missing, null, negative or
    non-numeric values count as 0.
    """
    raw = item.get("quantity")
    if raw is None:
        raw = item.get("qty")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, int(value))


class Snapshot:
    """
    Immutable, deep-copied record of the cart at one point in time.

    Attributes
    ----------
    _items : tuple[LineItem, ...]
        Line items in display order (product reference, price, quantity).
    _vouchers : tuple[Voucher, ...]
        Applied discount instruments; opaque to the history core.
    _timestamp : datetime
        Timezone-aware capture time.
    _label : str | None
        Explicit label, or ``None`` to derive one from the payload.
    """

    __slots__ = ("_items", "_vouchers", "_timestamp", "_label")

    def __init__(
        self,
        items: Iterable[LineItem] | None,
        applied_instruments: Iterable[Voucher] | None = None,
        timestamp: datetime | None = None,
        label: str | None = None,
    ) -> None:
        self._items: tuple[LineItem, ...] = tuple(copy.deepcopy(list(items or [])))
        self._vouchers: tuple[Voucher, ...] = tuple(
            copy.deepcopy(list(applied_instruments or []))
        )
        self._timestamp: datetime = timestamp if timestamp is not None else datetime.now(UTC)
        self._label: str | None = label

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, name):
            raise AttributeError(f"Snapshot is immutable; cannot reassign {name!r}")
        object.__setattr__(self, name, value)

    # ------------------------------- Payload --------------------------------

    def items(self) -> list[LineItem]:
        """Return a deep copy of the saved line items."""
        return copy.deepcopy(list(self._items))

    def applied_instruments(self) -> list[Voucher]:
        """Return a deep copy of the saved vouchers."""
        return copy.deepcopy(list(self._vouchers))

    @property
    def timestamp(self) -> datetime:
        """Capture time (timezone-aware)."""
        return self._timestamp

    def item_count(self) -> int:
        """Total number of units across all line items."""
        return sum(line_quantity(item) for item in self._items)

    # ------------------------------- Labels ---------------------------------

    @property
    def label(self) -> str:
        """
        Human-readable label for menus and history listings.

        Returns the attached label if there is one, otherwise
        ``"<local date/time> (<N> items)"``.
        """
        if self._label:
            return self._label
        local = self._timestamp.astimezone()
        return f"{local.strftime('%x %X')} ({self.item_count()} items)"

    @property
    def has_custom_label(self) -> bool:
        return bool(self._label)

    def with_label(self, label: str | None) -> Snapshot:
        """Return a copy of this snapshot carrying ``label``."""
        clone = object.__new__(Snapshot)
        object.__setattr__(clone, "_items", self._items)
        object.__setattr__(clone, "_vouchers", self._vouchers)
        object.__setattr__(clone, "_timestamp", self._timestamp)
        object.__setattr__(clone, "_label", label)
        return clone

    # ------------------------------- Export ---------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view (ISO timestamp, deep-copied payload)."""
        return {
            "timestamp": self._timestamp.isoformat(),
            "label": self.label,
            "item_count": self.item_count(),
            "items": self.items(),
            "applied_instruments": self.applied_instruments(),
        }

    def __repr__(self) -> str:
        return f"Snapshot({self.label!r}, {len(self._items)} lines)"


__all__ = ["LineItem", "Snapshot", "Voucher"]
