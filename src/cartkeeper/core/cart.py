"""Cart line-item operations and totals.

Pure helpers used by the register screen before it hands the new cart to the
history service. Every function returns a new list and leaves its input
untouched, so the previous cart value can still be compared or discarded.

Line items are plain dicts with at least ``id``, ``price`` and ``quantity``
(``qty`` is read as a fallback); vouchers are dicts with ``id`` and a
monetary ``value``. Malformed numbers read as zero rather than raising.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from cartkeeper.core.checkpoint import LineItem, Voucher
from cartkeeper.core.checkpoint.snapshot import line_quantity


def parse_amount(raw: Any) -> float:
    """Parse a monetary JSON value; null, non-numeric or non-finite values read as 0."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def add_to_cart(items: Sequence[LineItem], product: Mapping[str, Any]) -> list[LineItem]:
    """Add one unit of ``product``; bumps the quantity if the line already exists."""
    pid = product.get("id")
    if any(item.get("id") == pid for item in items):
        return [
            {**item, "quantity": line_quantity(item) + 1}
            if item.get("id") == pid
            else item
            for item in items
        ]
    return [*items, {**product, "quantity": 1}]


def remove_from_cart(items: Sequence[LineItem], product_id: Any) -> list[LineItem]:
    """Remove one unit of ``product_id``; drops the line when it reaches zero."""
    existing = next((item for item in items if item.get("id") == product_id), None)
    if existing is not None and line_quantity(existing) > 1:
        return [
            {**item, "quantity": line_quantity(item) - 1}
            if item.get("id") == product_id
            else item
            for item in items
        ]
    return [item for item in items if item.get("id") != product_id]


def delete_from_cart(items: Sequence[LineItem], product_id: Any) -> list[LineItem]:
    """Drop the whole line for ``product_id`` regardless of quantity."""
    return [item for item in items if item.get("id") != product_id]


def calculate_subtotal(items: Sequence[LineItem]) -> float:
    return sum(parse_amount(item.get("price")) * line_quantity(item) for item in items)


def calculate_voucher_discount(vouchers: Sequence[Voucher]) -> float:
    return sum(parse_amount(v.get("value")) for v in vouchers if isinstance(v, Mapping))


def calculate_total(subtotal: float, voucher_discount: float) -> float:
    """Amount due; vouchers never push the total below zero."""
    return max(0.0, subtotal - voucher_discount)


class CartTotals(BaseModel):
    """Monetary summary of a cart."""

    subtotal: float
    voucher_discount: float
    total: float = Field(..., ge=0.0)
    item_count: int = Field(..., ge=0, description="Number of units across all lines.")


def summarize(items: Sequence[LineItem], vouchers: Sequence[Voucher]) -> CartTotals:
    """Compute :class:`CartTotals` for the given cart."""
    subtotal = round(calculate_subtotal(items), 2)
    discount = round(calculate_voucher_discount(vouchers), 2)
    return CartTotals(
        subtotal=subtotal,
        voucher_discount=discount,
        total=round(calculate_total(subtotal, discount), 2),
        item_count=sum(line_quantity(item) for item in items),
    )


__all__ = [
    "CartTotals",
    "add_to_cart",
    "calculate_subtotal",
    "calculate_total",
    "calculate_voucher_discount",
    "delete_from_cart",
    "line_quantity",
    "parse_amount",
    "remove_from_cart",
    "summarize",
]
