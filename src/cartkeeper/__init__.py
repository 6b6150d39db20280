"""CartKeeper package bootstrap.

Checkpoint history (undo/redo with debounced auto-save) for a point-of-sale
shopping cart and its applied vouchers.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
