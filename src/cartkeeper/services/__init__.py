"""Application services built on the checkpoint core."""

from __future__ import annotations

from .cart_history import CartHistoryService, CartView
from .editor import CartEditor

__all__ = ["CartEditor", "CartHistoryService", "CartView"]
