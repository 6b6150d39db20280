"""
Session script contract.

A session script is a JSON document describing a register session step by
step: cart edits, explicit checkpoints, undo/redo and the passage of time
(``wait``) that lets debounced auto-saves fire. The CLI replays scripts on a
virtual clock, which makes them handy for reproducing a customer's "what
happened to my cart" report or demonstrating the undo model.

Example
-------
{
  "name": "two edits, one auto-save",
  "autosave_threshold_ms": 2000,
  "steps": [
    {"op": "set_items", "items": [{"id": "p1", "price": 2.5, "quantity": 1}]},
    {"op": "wait", "ms": 500},
    {"op": "add", "product": {"id": "p2", "price": 1.0}},
    {"op": "wait", "ms": 2500},
    {"op": "undo"}
  ]
}
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

StepOp = Literal[
    "set_items",
    "set_vouchers",
    "add",
    "remove",
    "delete",
    "apply_voucher",
    "remove_voucher",
    "save",
    "undo",
    "redo",
    "restore",
    "wait",
    "clear",
]

# Field each op needs in addition to `op`.
_REQUIRED: dict[str, str] = {
    "add": "product",
    "remove": "id",
    "delete": "id",
    "apply_voucher": "voucher",
    "remove_voucher": "id",
    "restore": "index",
    "wait": "ms",
}


class ScriptStep(BaseModel):
    """One action in a session script."""

    op: StepOp
    items: list[dict[str, Any]] | None = None
    vouchers: list[Any] | None = None
    product: dict[str, Any] | None = None
    voucher: dict[str, Any] | None = None
    id: str | int | None = None
    label: str | None = None
    index: int | None = None
    ms: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_required(self) -> ScriptStep:
        needed = _REQUIRED.get(self.op)
        if needed is not None and getattr(self, needed) is None:
            raise ValueError(f"step '{self.op}' requires '{needed}'")
        if self.op == "add" and self.product is not None and "id" not in self.product:
            raise ValueError("step 'add' requires a product with an 'id'")
        return self


class SessionScript(BaseModel):
    """A named list of steps plus optional auto-save overrides."""

    name: str = "session"
    autosave_enabled: bool | None = None
    autosave_threshold_ms: int | None = Field(default=None, ge=0)
    history_limit: int | None = Field(default=None, ge=1)
    steps: list[ScriptStep] = Field(default_factory=list)


__all__ = ["ScriptStep", "SessionScript", "StepOp"]
