"""
Cart history service: live cart, debounced auto-checkpoints, undo/redo.

This is the public entry point of the checkpoint core. It owns one
:class:`StateHolder` (the live cart) and one :class:`History` (saved
checkpoints) and ties them together:

- ``update_cart_items`` / ``update_applied_instruments`` replace the live
  cart and (re)schedule an automatic checkpoint.
- ``save_state`` writes a checkpoint immediately, cancelling any pending
  automatic one.
- ``undo`` / ``redo`` / ``restore_state_by_index`` copy a saved checkpoint
  back into the live cart and return the resulting state.

Debounce
--------
Every update cancels the pending auto-save task and schedules a new one after
``max(0, threshold - (now - last_save))`` milliseconds. Before the first save
the full threshold applies. Updates that leave the cart empty schedule
nothing. The task itself runs :meth:`save_state`, so the empty-cart guard is
evaluated when it fires.

Failure model
-------------
Nothing here raises for expected misuse. Missing collections are normalised
to empty lists; "nothing to do" is reported as ``False`` (``save_state``) or
``None`` (``undo``, ``redo``, ``restore_state_by_index``).

Lifecycle
---------
One service per cart session, created by the composition root (API session
store, CLI runner) and reset with ``clear_history`` when the sale completes.
There is intentionally no module-level instance.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypedDict

from cartkeeper.core.checkpoint import History, LineItem, Snapshot, StateHolder, Voucher
from cartkeeper.core.scheduling import AsyncioScheduler, Scheduler, TaskHandle
from cartkeeper.core.settings import get_logger, load_settings

log = get_logger("cartkeeper.service")


class CartView(TypedDict):
    """Live cart as returned by undo/redo/restore."""

    items: list[LineItem]
    applied_instruments: list[Voucher]


class CartHistoryService:
    """
    Coordinator for the live cart and its checkpoint history.

    Parameters
    ----------
    scheduler:
        Clock and deferred-task facility for auto-save. Defaults to an
        :class:`AsyncioScheduler` bound to the running loop on first use.
    history_limit:
        Maximum retained checkpoints (defaults to settings).
    autosave_enabled / autosave_threshold_ms:
        Initial auto-save configuration (defaults to settings).
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        *,
        history_limit: int | None = None,
        autosave_enabled: bool | None = None,
        autosave_threshold_ms: int | None = None,
    ) -> None:
        cfg = load_settings()
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._holder = StateHolder()
        self._history = History(history_limit if history_limit is not None else cfg.history_limit)
        self._autosave_enabled: bool = (
            cfg.autosave_enabled if autosave_enabled is None else autosave_enabled
        )
        self._autosave_threshold_ms: int = 0
        self.set_auto_save_threshold(
            cfg.autosave_threshold_ms if autosave_threshold_ms is None else autosave_threshold_ms
        )
        self._last_save_ms: float | None = None
        self._pending: TaskHandle | None = None

    # ------------------------------- Live cart ------------------------------

    def update_cart_items(self, items: Iterable[LineItem] | None) -> list[LineItem]:
        """Replace the live line items and schedule an auto-checkpoint."""
        self._holder.set_items(items)
        self._schedule_auto_save()
        return self._holder.get_items()

    def update_applied_instruments(
        self, instruments: Iterable[Voucher] | None
    ) -> list[Voucher]:
        """Replace the live vouchers and schedule an auto-checkpoint."""
        self._holder.set_applied_instruments(instruments)
        self._schedule_auto_save()
        return self._holder.get_applied_instruments()

    update_applied_vouchers = update_applied_instruments

    def get_cart_items(self) -> list[LineItem]:
        return self._holder.get_items()

    def get_applied_instruments(self) -> list[Voucher]:
        return self._holder.get_applied_instruments()

    get_applied_vouchers = get_applied_instruments

    # ------------------------------- Checkpoints ----------------------------

    def save_state(self, label: str | None = None) -> bool:
        """
        Checkpoint the live cart.

        Returns
        -------
        bool
            ``False`` (and nothing changes) when the cart has no items,
            ``True`` once the checkpoint is in the history.
        """
        if not self._holder.get_items():
            log.debug("Skipped checkpoint: cart is empty")
            return False

        self._cancel_pending()

        snapshot = self._holder.to_snapshot(label=label, timestamp=self._scheduler.now())
        self._history.add_snapshot(snapshot)
        self._last_save_ms = self._scheduler.now_ms()
        log.info(
            "Checkpoint %d/%d saved: %s",
            self._history.cursor + 1,
            len(self._history),
            snapshot.label,
        )
        return True

    def undo(self) -> CartView | None:
        """Restore the previous checkpoint, or return ``None`` if there is none."""
        snapshot = self._history.previous()
        if snapshot is None:
            return None
        log.info("Undo -> checkpoint %d", self._history.cursor)
        return self._restore(snapshot)

    def redo(self) -> CartView | None:
        """Restore the next checkpoint, or return ``None`` if there is none."""
        snapshot = self._history.next()
        if snapshot is None:
            return None
        log.info("Redo -> checkpoint %d", self._history.cursor)
        return self._restore(snapshot)

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def restore_state_by_index(self, index: int) -> CartView | None:
        """
        Copy checkpoint ``index`` into the live cart.

        The history cursor is left where it is, so a later ``undo``/``redo``
        still moves relative to the last save or undo/redo step.
        """
        snapshot = self._history.get_snapshot(index)
        if snapshot is None:
            return None
        log.info("Restored checkpoint %d (cursor stays at %d)", index, self._history.cursor)
        return self._restore(snapshot)

    def get_all_saved_states(self) -> tuple[Snapshot, ...]:
        """All retained checkpoints, oldest first."""
        return self._history.entries()

    @property
    def history_capacity(self) -> int:
        return self._history.capacity

    def history_cursor(self) -> int:
        """Index of the current checkpoint (-1 when the history is empty)."""
        return self._history.cursor

    def clear_history(self) -> None:
        """Forget every checkpoint and empty the live cart."""
        self._cancel_pending()
        self._history.clear()
        self._holder.reset()
        self._last_save_ms = None
        log.info("History cleared")

    # ------------------------------- Auto-save ------------------------------

    @property
    def auto_save_enabled(self) -> bool:
        return self._autosave_enabled

    @property
    def auto_save_threshold(self) -> int:
        """Minimum spacing between automatic checkpoints, in milliseconds."""
        return self._autosave_threshold_ms

    def set_auto_save_enabled(self, enabled: bool) -> None:
        self._autosave_enabled = bool(enabled)
        if not self._autosave_enabled:
            self._cancel_pending()

    def set_auto_save_threshold(self, threshold_ms: int | None) -> None:
        """Set the auto-save spacing; negatives clamp to 0, ``None`` keeps the current value."""
        if threshold_ms is None:
            return
        self._autosave_threshold_ms = max(0, int(threshold_ms))

    def has_pending_auto_save(self) -> bool:
        return self._pending is not None

    # ------------------------------- Internals ------------------------------

    def _restore(self, snapshot: Snapshot) -> CartView:
        self._holder.restore(snapshot)
        return {
            "items": self._holder.get_items(),
            "applied_instruments": self._holder.get_applied_instruments(),
        }

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule_auto_save(self) -> None:
        if not self._autosave_enabled:
            return

        self._cancel_pending()
        if not self._holder.get_items():
            return

        if self._last_save_ms is None:
            wait = float(self._autosave_threshold_ms)
        else:
            elapsed = self._scheduler.now_ms() - self._last_save_ms
            wait = max(0.0, self._autosave_threshold_ms - elapsed)

        self._pending = self._scheduler.call_later(wait, self._run_auto_save)
        log.debug("Auto-save scheduled in %.0f ms", wait)

    def _run_auto_save(self) -> None:
        self._pending = None
        self.save_state()


__all__ = ["CartHistoryService", "CartView"]
