"""
Pydantic request/response models for the CartKeeper HTTP API.

Line items and vouchers travel as plain JSON objects. The request models for
single products/vouchers validate the few fields the cart logic relies on
(``id``, ``price``, ``value``) and keep any extra display fields verbatim.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cartkeeper.core.cart import CartTotals

# ----- Requests ---------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    """Optional per-session overrides of the auto-save settings."""

    autosave_enabled: bool | None = None
    autosave_threshold_ms: int | None = Field(default=None, ge=0)


class ItemsRequest(BaseModel):
    items: list[dict[str, Any]] | None = Field(
        default=None, description="Full replacement of the cart's line items."
    )


class VouchersRequest(BaseModel):
    vouchers: list[Any] | None = Field(
        default=None, description="Full replacement of the applied vouchers."
    )


class ProductRequest(BaseModel):
    """A catalog product to add to the cart (one unit)."""

    model_config = ConfigDict(extra="allow")

    id: str | int
    price: float = Field(..., ge=0.0)
    name: str | None = None


class VoucherRequest(BaseModel):
    """A validated voucher to apply to the cart."""

    model_config = ConfigDict(extra="allow")

    id: str | int
    value: float = Field(..., ge=0.0)
    code: str | None = None


class SaveRequest(BaseModel):
    label: str | None = Field(default=None, max_length=200)


class AutoSaveRequest(BaseModel):
    enabled: bool | None = None
    threshold_ms: int | None = Field(default=None, ge=0)


# ----- Responses --------------------------------------------------------------


class CartStateResponse(BaseModel):
    """Live cart plus navigation flags for the register UI."""

    session_id: str
    items: list[dict[str, Any]]
    applied_instruments: list[Any]
    totals: CartTotals
    can_undo: bool
    can_redo: bool
    cursor: int
    history_length: int
    autosave_enabled: bool
    autosave_threshold_ms: int
    autosave_pending: bool


class SaveResponse(BaseModel):
    saved: bool
    state: CartStateResponse


class SnapshotInfo(BaseModel):
    index: int
    timestamp: datetime
    label: str
    item_count: int
    items: list[dict[str, Any]]
    applied_instruments: list[Any]
    current: bool = Field(..., description="True for the entry under the cursor.")


class HistoryResponse(BaseModel):
    session_id: str
    cursor: int
    capacity: int
    can_undo: bool
    can_redo: bool
    entries: list[SnapshotInfo]


__all__ = [
    "AutoSaveRequest",
    "CartStateResponse",
    "CreateSessionRequest",
    "HistoryResponse",
    "ItemsRequest",
    "ProductRequest",
    "SaveRequest",
    "SaveResponse",
    "SnapshotInfo",
    "VoucherRequest",
    "VouchersRequest",
]
