from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from order_tracking.deps import (
    actor_for,
    get_store,
    get_viewer,
    http_error,
    require_company_access,
    require_staff,
)
from order_tracking.schemas.order import (
    InternalOrderCreate,
    ItemStatusUpdate,
    Order,
    PublicOrderCreate,
    TabSummary,
)
from order_tracking.schemas.status import OrderStatus
from order_tracking.services.errors import OrderNotFound, TrackingError
from order_tracking.services.order_store import OrderStore
from order_tracking.services.orders import (
    filter_orders,
    place_internal_order,
    place_public_order,
    summarize_tabs,
    transition_item,
)
from order_tracking.services.tracking_feed import ViewerContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["orders"])


def _get_company_order(store: OrderStore, order_id: str, viewer: ViewerContext) -> Order:
    order = store.get_order(order_id)
    # pedido de outra empresa responde como inexistente
    if order is None or order.company_id != viewer.company_id:
        raise http_error(OrderNotFound(order_id))
    return order


@router.post("/orders/{company_id}/public", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_public_order(
    company_id: str,
    payload: PublicOrderCreate,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(get_viewer),
):
    if viewer.user_id and not viewer.is_staff:
        payload = payload.model_copy(update={"user_id": viewer.user_id})
    try:
        return place_public_order(store, company_id, payload)
    except TrackingError as exc:
        raise http_error(exc) from exc


@router.post("/orders/{company_id}/internal", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_internal_order(
    company_id: str,
    payload: InternalOrderCreate,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(require_company_access),
):
    try:
        return place_internal_order(store, company_id, payload, actor=actor_for(viewer))
    except TrackingError as exc:
        raise http_error(exc) from exc


@router.get("/orders/{company_id}", response_model=List[Order])
def list_company_orders(
    company_id: str,
    q: Optional[str] = Query(default=None, max_length=120),
    include_archived: bool = False,
    store: OrderStore = Depends(get_store),
    _viewer: ViewerContext = Depends(require_company_access),
):
    orders = store.get_orders(company_id=company_id)
    return filter_orders(orders, q, include_archived=include_archived)


@router.get("/orders/{company_id}/tabs", response_model=List[TabSummary])
def list_company_tabs(
    company_id: str,
    store: OrderStore = Depends(get_store),
    _viewer: ViewerContext = Depends(require_company_access),
):
    return summarize_tabs(store.get_orders(company_id=company_id))


@router.get("/users/{user_id}/orders", response_model=List[Order])
def list_user_orders(
    user_id: str,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(get_viewer),
):
    if viewer.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permissão insuficiente")
    return [order for order in store.get_orders(user_id=user_id) if not order.is_archived]


@router.patch("/orders/{order_id}/items/{item_index}/status", response_model=Order)
def update_item_status(
    order_id: str,
    item_index: int,
    payload: ItemStatusUpdate,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(require_staff),
):
    order = _get_company_order(store, order_id, viewer)
    if order.is_archived:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Pedido arquivado")
    try:
        return transition_item(
            store,
            order_id,
            item_index,
            payload.status,
            actor=actor_for(viewer),
            expected_version=payload.expected_version,
        )
    except TrackingError as exc:
        raise http_error(exc) from exc


@router.post("/orders/{order_id}/confirm-receipt", response_model=Order)
def confirm_receipt(
    order_id: str,
    expected_version: Optional[int] = Query(default=None, ge=1),
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(get_viewer),
):
    order = store.get_order(order_id)
    if order is None or order.is_archived or (order.user_id and order.user_id != viewer.user_id):
        raise http_error(OrderNotFound(order_id))
    if order.status != OrderStatus.accepted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Pedido não pode ser confirmado neste status",
        )
    try:
        return store.confirm_order_receipt(order_id, expected_version=expected_version)
    except TrackingError as exc:
        raise http_error(exc) from exc


@router.post("/orders/{company_id}/archive-completed")
def archive_completed(
    company_id: str,
    store: OrderStore = Depends(get_store),
    _viewer: ViewerContext = Depends(require_company_access),
):
    try:
        archived = store.archive_completed_orders(company_id)
    except TrackingError as exc:
        raise http_error(exc) from exc
    return {"archived": archived}


@router.post("/orders/{order_id}/archive", response_model=Order)
def archive_order(
    order_id: str,
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(require_staff),
):
    _get_company_order(store, order_id, viewer)
    try:
        return store.archive_order(order_id)
    except TrackingError as exc:
        raise http_error(exc) from exc
