"""Core package initializer for CartKeeper.

Downstream code imports the pieces directly, e.g.:
    from cartkeeper.core.settings import settings, load_settings, Settings, get_logger
    from cartkeeper.core.checkpoint import History, Snapshot, StateHolder
"""

from __future__ import annotations

__all__ = ["__doc__"]
