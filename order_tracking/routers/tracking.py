from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Callable, ContextManager

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from order_tracking.core.request_context import bind_viewer
from order_tracking.deps import (
    COMPANY_HEADER,
    NAME_HEADER,
    ROLE_HEADER,
    USER_HEADER,
    build_viewer,
    get_store,
    get_store_scope,
    get_viewer,
)
from order_tracking.schemas.tracking import TrackingSnapshot
from order_tracking.services.alerts import ReadyAlert
from order_tracking.services.order_store import OrderStore
from order_tracking.services.tracking_feed import TrackingFeed, ViewerContext, build_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tracking"])


@router.get("/api/tracking/snapshot", response_model=TrackingSnapshot)
def tracking_snapshot(
    store: OrderStore = Depends(get_store),
    viewer: ViewerContext = Depends(get_viewer),
):
    if not viewer.has_scope:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Empresa ou usuário não informado")
    snapshot, _ready = build_snapshot(store, viewer)
    return snapshot


@router.websocket("/ws/tracking")
async def tracking_socket(
    websocket: WebSocket,
    store_scope: Callable[[], ContextManager[OrderStore]] = Depends(get_store_scope),
):
    # Navegador não manda headers customizados no WebSocket: aceita também query string.
    params = websocket.query_params
    try:
        viewer = build_viewer(
            params.get("role") or websocket.headers.get(ROLE_HEADER),
            company_id=params.get("company_id") or websocket.headers.get(COMPANY_HEADER),
            user_id=params.get("user_id") or websocket.headers.get(USER_HEADER),
            name=params.get("name") or websocket.headers.get(NAME_HEADER),
        )
    except HTTPException as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc.detail))
        return

    bind_viewer(viewer)
    await websocket.accept()

    async def send_snapshot(snapshot: TrackingSnapshot) -> None:
        await websocket.send_json({"event": "snapshot", "data": snapshot.model_dump(mode="json")})

    async def send_alert(alert: ReadyAlert) -> None:
        await websocket.send_json({"event": "item.ready", "data": {**asdict(alert), "key": alert.key}})

    feed = TrackingFeed(
        store_scope,
        lambda: viewer,
        on_snapshot=send_snapshot,
        on_alert=send_alert,
    )
    if not feed.start():
        await websocket.send_json({"event": "error", "data": {"detail": "Empresa ou usuário não informado"}})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    logger.info("tracking socket opened role=%s company_id=%s", viewer.role.value, viewer.company_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("tracking socket closed role=%s company_id=%s", viewer.role.value, viewer.company_id)
    finally:
        await feed.stop()

