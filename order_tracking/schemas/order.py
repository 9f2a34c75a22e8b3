from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from order_tracking.schemas.status import ItemStatus, OrderSource, OrderStatus, TargetType
from order_tracking.services.order_status import derive_status


class Actor(BaseModel):
    id: str
    name: str


class HistoryEntry(BaseModel):
    status: str
    timestamp: int
    employee_name: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    requires_preparation: bool = False
    status: ItemStatus = ItemStatus.pending
    assigned_employee: Optional[Actor] = None


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    user_id: Optional[str] = None
    target_type: TargetType
    target_number: str
    source: OrderSource
    timestamp: int
    items: List[OrderItem] = Field(..., min_length=1)
    history: List[HistoryEntry] = []
    is_archived: bool = False
    version: int = 1
    finalized_at: Optional[int] = None
    waiter_id: Optional[str] = None
    customer_name: Optional[str] = None

    @computed_field
    @property
    def status(self) -> OrderStatus:
        return derive_status(self.items)

    @computed_field
    @property
    def total(self) -> float:
        return round(sum(item.price * item.quantity for item in self.items), 2)


class CartItem(BaseModel):
    product_id: str
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    requires_preparation: bool = False


class PublicOrderCreate(BaseModel):
    user_id: Optional[str] = None
    target_type: TargetType = TargetType.table
    target_number: str = "1"
    items: List[CartItem] = Field(..., min_length=1)


class InternalOrderCreate(BaseModel):
    target_type: TargetType
    target_number: str = Field(..., min_length=1)
    items: List[CartItem] = Field(..., min_length=1)
    customer_name: Optional[str] = None


class ItemStatusUpdate(BaseModel):
    status: ItemStatus
    expected_version: Optional[int] = Field(default=None, ge=1)


class TabSummary(BaseModel):
    type: TargetType
    number: str
    status: str
    total: float
    order_ids: List[str] = []
