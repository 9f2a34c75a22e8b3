from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from order_tracking.core.config import RECEIPT_FEEDBACK_SECONDS
from order_tracking.deps import actor_for, get_store, http_error, require_staff
from order_tracking.schemas.tracking import (
    ReceiptTokenResponse,
    ReceiptValidationRequest,
    ReceiptValidationResponse,
)
from order_tracking.services.errors import OrderNotFound, TrackingError
from order_tracking.services.order_store import OrderStore
from order_tracking.services.receipts import build_receipt_token, render_receipt_qr, validate_receipt
from order_tracking.services.tracking_feed import ViewerContext

router = APIRouter(prefix="/api", tags=["receipts"])


def _require_order(store: OrderStore, order_id: str) -> None:
    if store.get_order(order_id) is None:
        raise http_error(OrderNotFound(order_id))


@router.get("/orders/{order_id}/receipt", response_model=ReceiptTokenResponse)
def get_receipt(order_id: str, store: OrderStore = Depends(get_store)):
    _require_order(store, order_id)
    return ReceiptTokenResponse(
        order_id=order_id,
        token=build_receipt_token(order_id),
        qr_code_url=f"/api/orders/{order_id}/receipt.png",
    )


@router.get("/orders/{order_id}/receipt.png")
def get_receipt_qr(order_id: str, store: OrderStore = Depends(get_store)):
    _require_order(store, order_id)
    return Response(
        content=render_receipt_qr(order_id),
        media_type="image/png",
        headers={"Cache-Control": "no-store"},
    )


@router.post("/receipts/validate", response_model=ReceiptValidationResponse)
def validate_receipt_code(
    payload: ReceiptValidationRequest,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(require_staff),
):
    visible_orders = [
        order for order in store.get_orders(company_id=viewer.company_id) if not order.is_archived
    ]
    try:
        result = validate_receipt(store, payload.code.strip(), visible_orders, actor=actor_for(viewer))
    except TrackingError as exc:
        raise http_error(exc) from exc
    return ReceiptValidationResponse(
        ok=True,
        message=result.message,
        order_id=result.order_id,
        delivered_items=result.delivered_items,
        dismiss_after_seconds=RECEIPT_FEEDBACK_SECONDS,
    )
