from __future__ import annotations

from fastapi import APIRouter, Depends

from order_tracking.deps import get_store, http_error, require_company_access, require_company_admin
from order_tracking.schemas.tracking import TrackingSettingsRead, TrackingSettingsUpdate
from order_tracking.services.errors import TrackingError
from order_tracking.services.order_store import OrderStore
from order_tracking.services.tracking_feed import ViewerContext

router = APIRouter(tags=["settings"])


@router.get("/api/companies/{company_id}/tracking-settings", response_model=TrackingSettingsRead)
def get_tracking_settings(
    company_id: str,
    store: OrderStore = Depends(get_store),
    _viewer: ViewerContext = Depends(require_company_access),
):
    return store.get_tracking_settings(company_id)


@router.put("/api/companies/{company_id}/tracking-settings", response_model=TrackingSettingsRead)
def update_tracking_settings(
    company_id: str,
    body: TrackingSettingsUpdate,
    store: OrderStore = Depends(get_store),
    _viewer: ViewerContext = Depends(require_company_admin),
):
    try:
        return store.save_tracking_settings(
            company_id,
            enable_detailed_tracking=body.enable_detailed_tracking,
        )
    except TrackingError as exc:
        raise http_error(exc) from exc
