from __future__ import annotations

from fastapi import APIRouter, Depends

from order_tracking.core.metrics import request_metrics
from order_tracking.deps import require_platform_admin
from order_tracking.services.tracking_feed import ViewerContext

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("/companies")
def company_metrics(_viewer: ViewerContext = Depends(require_platform_admin)):
    return {"companies": request_metrics.snapshot_per_company()}


@router.get("/endpoints")
def endpoint_metrics(_viewer: ViewerContext = Depends(require_platform_admin)):
    return {"endpoints": request_metrics.snapshot()}
