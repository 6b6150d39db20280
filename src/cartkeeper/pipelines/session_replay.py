"""
Session replay: run a scripted register session on a virtual clock.

Flow Overview
-------------
1. Build a :class:`CartHistoryService` on a :class:`ManualScheduler` so
   debounced auto-saves fire deterministically when the script ``wait``s.
2. Apply each :class:`ScriptStep` through a :class:`CartEditor`, recording a
   :class:`StepOutcome` (what happened, whether it changed anything, how many
   checkpoints exist afterwards).
3. Optionally *settle*: advance the clock by the auto-save threshold so a
   trailing edit gets its checkpoint, as it would on a real register.

The result bundles the service itself so callers can inspect the final cart
and history.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict, cast

from cartkeeper.core.contracts.session import ScriptStep, SessionScript
from cartkeeper.core.scheduling import ManualScheduler
from cartkeeper.core.settings import get_logger
from cartkeeper.services import CartEditor, CartHistoryService

log = get_logger("cartkeeper.replay")


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """
    Result of a single replayed step.

    Attributes
    ----------
    index : int
        Position of the step in the script (0-based).
    op : str
        The step's operation name.
    detail : str
        Short human-readable description of what happened.
    applied : bool
        False when the service reported "nothing to do" (empty save, undo at
        the start, unknown index).
    clock_ms : float
        Virtual clock reading after the step.
    checkpoints : int
        Number of checkpoints in the history after the step.
    """

    index: int
    op: str
    detail: str
    applied: bool
    clock_ms: float
    checkpoints: int


class ReplayResult(TypedDict):
    """Everything a caller needs to render a replayed session."""

    name: str
    service: CartHistoryService
    editor: CartEditor
    scheduler: ManualScheduler
    outcomes: list[StepOutcome]
    auto_saves: int


def _apply(step: ScriptStep, editor: CartEditor) -> tuple[str, bool]:
    svc = editor.history
    if step.op == "set_items":
        items = svc.update_cart_items(step.items)
        return f"{len(items)} line(s)", True
    if step.op == "set_vouchers":
        vouchers = svc.update_applied_instruments(step.vouchers)
        return f"{len(vouchers)} voucher(s)", True
    if step.op == "add":
        product = cast(dict[str, Any], step.product)
        editor.add_product(product)
        return f"+1 {product['id']}", True
    if step.op == "remove":
        editor.remove_product(step.id)
        return f"-1 {step.id}", True
    if step.op == "delete":
        editor.delete_product(step.id)
        return f"deleted {step.id}", True
    if step.op == "apply_voucher":
        voucher = cast(dict[str, Any], step.voucher)
        editor.apply_voucher(voucher)
        return f"voucher {voucher.get('id', '?')}", True
    if step.op == "remove_voucher":
        editor.remove_voucher(step.id)
        return f"voucher {step.id} removed", True
    if step.op == "save":
        saved = editor.save(step.label)
        return ("saved" if saved else "skipped (empty cart)"), saved
    if step.op == "undo":
        view = editor.undo()
        return ("undone" if view is not None else "nothing to undo"), view is not None
    if step.op == "redo":
        view = editor.redo()
        return ("redone" if view is not None else "nothing to redo"), view is not None
    if step.op == "restore":
        view = svc.restore_state_by_index(cast(int, step.index))
        if view is None:
            return f"no checkpoint #{step.index}", False
        return f"restored #{step.index}", True
    if step.op == "clear":
        svc.clear_history()
        return "history cleared", True
    raise ValueError(f"Unsupported step: {step.op}")


def run_script(script: SessionScript, settle: bool = True) -> ReplayResult:
    """
    Replay ``script`` and return the final service plus per-step outcomes.

    Parameters
    ----------
    script:
        A validated session script.
    settle:
        After the last step, advance the clock by the auto-save threshold so
        any pending auto-save fires.
    """
    scheduler = ManualScheduler()
    service = CartHistoryService(
        scheduler,
        history_limit=script.history_limit,
        autosave_enabled=script.autosave_enabled,
        autosave_threshold_ms=script.autosave_threshold_ms,
    )
    editor = CartEditor(service)

    outcomes: list[StepOutcome] = []
    auto_saves = 0
    for i, step in enumerate(script.steps):
        if step.op == "wait":
            fired = scheduler.advance(cast(float, step.ms))
            auto_saves += fired
            detail, applied = f"{step.ms:.0f} ms ({fired} auto-save(s))", True
        else:
            detail, applied = _apply(step, editor)
        outcomes.append(
            StepOutcome(
                index=i,
                op=step.op,
                detail=detail,
                applied=applied,
                clock_ms=scheduler.now_ms(),
                checkpoints=len(service.get_all_saved_states()),
            )
        )

    if settle and service.has_pending_auto_save():
        auto_saves += scheduler.advance(service.auto_save_threshold)
        log.debug("Settled trailing auto-save at %.0f ms", scheduler.now_ms())

    return {
        "name": script.name,
        "service": service,
        "editor": editor,
        "scheduler": scheduler,
        "outcomes": outcomes,
        "auto_saves": auto_saves,
    }


__all__ = ["ReplayResult", "StepOutcome", "run_script"]
