from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from order_tracking.schemas.order import Order


class ReceiptValidationRequest(BaseModel):
    code: str = Field(..., max_length=200)


class ReceiptValidationResponse(BaseModel):
    ok: bool
    message: str
    order_id: Optional[str] = None
    delivered_items: List[int] = []
    dismiss_after_seconds: float


class ReceiptTokenResponse(BaseModel):
    order_id: str
    token: str
    qr_code_url: str


class TrackingSettingsRead(BaseModel):
    company_id: str
    enable_detailed_tracking: bool


class TrackingSettingsUpdate(BaseModel):
    enable_detailed_tracking: bool


class TrackingSnapshot(BaseModel):
    role: str
    company_id: Optional[str] = None
    user_id: Optional[str] = None
    orders: List[Order]
    ready_items: List[str] = []
