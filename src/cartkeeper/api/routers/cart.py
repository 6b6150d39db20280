"""
API Routes for cart sessions and their checkpoint history.

Endpoints
---------
- `POST /sessions`: Open a cart session.
- `GET|DELETE /sessions/{id}`: Read the live cart / end the session.
- `PUT /sessions/{id}/items|vouchers`: Replace line items or vouchers.
- `POST|DELETE /sessions/{id}/products...`, `/vouchers...`: Single edits.
- `POST /sessions/{id}/save|undo|redo`: Checkpoint navigation.
- `GET|DELETE /sessions/{id}/history`, `POST .../history/{i}/restore`.
- `PATCH /sessions/{id}/autosave`: Toggle / tune auto-save.

Design Decisions
----------------
- **Sentinels to status codes**: the service answers "nothing to do" with
  ``None``; undo/redo map that to 409 Conflict and restore-by-index to 404.
- **Async handlers**: every route is ``async`` so auto-save timers are armed
  on the server's event loop.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from cartkeeper.api.schemas import (
    AutoSaveRequest,
    CartStateResponse,
    CreateSessionRequest,
    HistoryResponse,
    ItemsRequest,
    ProductRequest,
    SaveRequest,
    SaveResponse,
    SnapshotInfo,
    VoucherRequest,
    VouchersRequest,
)
from cartkeeper.api.session_store import get_session_store
from cartkeeper.services import CartEditor

router = APIRouter(prefix="/sessions", tags=["Cart"])


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _editor(session_id: str) -> CartEditor:
    editor = get_session_store().get_session(session_id)
    if editor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    return editor


def _state(session_id: str, editor: CartEditor) -> CartStateResponse:
    svc = editor.history
    return CartStateResponse(
        session_id=session_id,
        items=svc.get_cart_items(),
        applied_instruments=svc.get_applied_instruments(),
        totals=editor.totals(),
        can_undo=svc.can_undo(),
        can_redo=svc.can_redo(),
        cursor=svc.history_cursor(),
        history_length=len(svc.get_all_saved_states()),
        autosave_enabled=svc.auto_save_enabled,
        autosave_threshold_ms=svc.auto_save_threshold,
        autosave_pending=svc.has_pending_auto_save(),
    )


# --------------------------------------------------------------------------- #
# Sessions
# --------------------------------------------------------------------------- #


@router.post(
    "",
    response_model=CartStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new cart session",
)
async def create_session(request: CreateSessionRequest | None = None) -> CartStateResponse:
    opts = request or CreateSessionRequest()
    store = get_session_store()
    session_id = store.create_session(
        autosave_enabled=opts.autosave_enabled,
        autosave_threshold_ms=opts.autosave_threshold_ms,
    )
    return _state(session_id, _editor(session_id))


@router.get("/{session_id}", response_model=CartStateResponse, summary="Read the live cart")
async def get_session(session_id: str) -> CartStateResponse:
    return _state(session_id, _editor(session_id))


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End a session (e.g. sale completed)",
)
async def close_session(session_id: str) -> Response:
    if not get_session_store().close_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --------------------------------------------------------------------------- #
# Live cart edits
# --------------------------------------------------------------------------- #


@router.put("/{session_id}/items", response_model=CartStateResponse)
async def replace_items(session_id: str, request: ItemsRequest) -> CartStateResponse:
    editor = _editor(session_id)
    editor.history.update_cart_items(request.items)
    return _state(session_id, editor)


@router.put("/{session_id}/vouchers", response_model=CartStateResponse)
async def replace_vouchers(session_id: str, request: VouchersRequest) -> CartStateResponse:
    editor = _editor(session_id)
    editor.history.update_applied_instruments(request.vouchers)
    return _state(session_id, editor)


@router.post("/{session_id}/products", response_model=CartStateResponse)
async def add_product(session_id: str, product: ProductRequest) -> CartStateResponse:
    editor = _editor(session_id)
    editor.add_product(product.model_dump(exclude_none=True))
    return _state(session_id, editor)


@router.delete("/{session_id}/products/{product_id}", response_model=CartStateResponse)
async def remove_product(
    session_id: str,
    product_id: str,
    whole_line: bool = Query(default=False, alias="all"),
) -> CartStateResponse:
    """Remove one unit, or the whole line with `?all=true`."""
    editor = _editor(session_id)
    pid = _match_id(editor.history.get_cart_items(), product_id)
    if whole_line:
        editor.delete_product(pid)
    else:
        editor.remove_product(pid)
    return _state(session_id, editor)


@router.post("/{session_id}/vouchers", response_model=CartStateResponse)
async def apply_voucher(session_id: str, voucher: VoucherRequest) -> CartStateResponse:
    editor = _editor(session_id)
    editor.apply_voucher(voucher.model_dump(exclude_none=True))
    return _state(session_id, editor)


@router.delete("/{session_id}/vouchers/{voucher_id}", response_model=CartStateResponse)
async def remove_voucher(session_id: str, voucher_id: str) -> CartStateResponse:
    editor = _editor(session_id)
    editor.remove_voucher(_match_id(editor.history.get_applied_instruments(), voucher_id))
    return _state(session_id, editor)


def _match_id(entries: list[Any], raw_id: str) -> Any:
    """Path ids arrive as strings; reuse the stored id (int or str) when one matches."""
    for entry in entries:
        if isinstance(entry, dict) and str(entry.get("id")) == raw_id:
            return entry.get("id")
    return raw_id


# --------------------------------------------------------------------------- #
# Checkpoints
# --------------------------------------------------------------------------- #


@router.post("/{session_id}/save", response_model=SaveResponse, summary="Checkpoint now")
async def save_state(session_id: str, request: SaveRequest | None = None) -> SaveResponse:
    editor = _editor(session_id)
    saved = editor.save(request.label if request else None)
    return SaveResponse(saved=saved, state=_state(session_id, editor))


@router.post("/{session_id}/undo", response_model=CartStateResponse)
async def undo(session_id: str) -> CartStateResponse:
    editor = _editor(session_id)
    if editor.undo() is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to undo")
    return _state(session_id, editor)


@router.post("/{session_id}/redo", response_model=CartStateResponse)
async def redo(session_id: str) -> CartStateResponse:
    editor = _editor(session_id)
    if editor.redo() is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to redo")
    return _state(session_id, editor)


@router.get("/{session_id}/history", response_model=HistoryResponse)
async def get_history(session_id: str) -> HistoryResponse:
    svc = _editor(session_id).history
    cursor = svc.history_cursor()
    entries = [
        SnapshotInfo(
            index=i,
            timestamp=snap.timestamp,
            label=snap.label,
            item_count=snap.item_count(),
            items=snap.items(),
            applied_instruments=snap.applied_instruments(),
            current=i == cursor,
        )
        for i, snap in enumerate(svc.get_all_saved_states())
    ]
    return HistoryResponse(
        session_id=session_id,
        cursor=cursor,
        capacity=svc.history_capacity,
        can_undo=svc.can_undo(),
        can_redo=svc.can_redo(),
        entries=entries,
    )


@router.post("/{session_id}/history/{index}/restore", response_model=CartStateResponse)
async def restore_checkpoint(session_id: str, index: int) -> CartStateResponse:
    editor = _editor(session_id)
    if editor.history.restore_state_by_index(index) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No checkpoint at index {index}",
        )
    return _state(session_id, editor)


@router.delete("/{session_id}/history", response_model=CartStateResponse)
async def clear_history(session_id: str) -> CartStateResponse:
    editor = _editor(session_id)
    editor.history.clear_history()
    return _state(session_id, editor)


@router.patch("/{session_id}/autosave", response_model=CartStateResponse)
async def configure_autosave(session_id: str, request: AutoSaveRequest) -> CartStateResponse:
    editor = _editor(session_id)
    if request.threshold_ms is not None:
        editor.history.set_auto_save_threshold(request.threshold_ms)
    if request.enabled is not None:
        editor.history.set_auto_save_enabled(request.enabled)
    return _state(session_id, editor)


__all__ = ["router"]
