"""
Cart editor: register-screen actions routed through the history service.

Each action computes the next cart with the pure helpers in
:mod:`cartkeeper.core.cart` and hands it to :class:`CartHistoryService`,
which takes care of auto-checkpointing. The editor never keeps its own copy
of the cart; the service's live state is the single source of truth.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from cartkeeper.core import cart
from cartkeeper.core.cart import CartTotals
from cartkeeper.core.checkpoint import LineItem, Voucher

from .cart_history import CartHistoryService, CartView


class CartEditor:
    """Thin action layer over a :class:`CartHistoryService`."""

    def __init__(self, history: CartHistoryService) -> None:
        self.history = history

    # ----- Line items ---------------------------------------------------------

    def add_product(self, product: Mapping[str, Any]) -> list[LineItem]:
        """Add one unit of ``product`` to the cart."""
        updated = cart.add_to_cart(self.history.get_cart_items(), product)
        return self.history.update_cart_items(updated)

    def remove_product(self, product_id: Any) -> list[LineItem]:
        """Remove one unit of ``product_id`` (drops the line at zero)."""
        updated = cart.remove_from_cart(self.history.get_cart_items(), product_id)
        return self.history.update_cart_items(updated)

    def delete_product(self, product_id: Any) -> list[LineItem]:
        """Remove the whole line for ``product_id``."""
        updated = cart.delete_from_cart(self.history.get_cart_items(), product_id)
        return self.history.update_cart_items(updated)

    # ----- Vouchers -----------------------------------------------------------

    def apply_voucher(self, voucher: Voucher) -> list[Voucher]:
        updated = [*self.history.get_applied_instruments(), voucher]
        return self.history.update_applied_instruments(updated)

    def remove_voucher(self, voucher_id: Any) -> list[Voucher]:
        updated = [
            v
            for v in self.history.get_applied_instruments()
            if not (isinstance(v, Mapping) and v.get("id") == voucher_id)
        ]
        return self.history.update_applied_instruments(updated)

    # ----- History ------------------------------------------------------------

    def save(self, label: str | None = None) -> bool:
        return self.history.save_state(label)

    def undo(self) -> CartView | None:
        return self.history.undo()

    def redo(self) -> CartView | None:
        return self.history.redo()

    def checkout(self) -> CartTotals:
        """Close the sale: return the final totals and reset the session."""
        totals = self.totals()
        self.history.clear_history()
        return totals

    # ----- Reads --------------------------------------------------------------

    def totals(self) -> CartTotals:
        return cart.summarize(
            self.history.get_cart_items(), self.history.get_applied_instruments()
        )


__all__ = ["CartEditor"]
