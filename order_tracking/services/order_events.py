from __future__ import annotations

from order_tracking.schemas.order import Actor, Order
from order_tracking.schemas.status import ItemStatus, OrderStatus
from order_tracking.services.event_bus import event_bus

ORDER_CREATED = "order.created"
ITEM_STATUS_CHANGED = "order.item.status.changed"
ORDER_COMPLETED = "order.completed"
ORDER_ARCHIVED = "order.archived"
ITEM_READY_ALERT = "tracking.item.ready"


def build_order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "company_id": order.company_id,
        "user_id": order.user_id,
        "status": order.status.value,
        "source": order.source.value,
        "target_type": order.target_type.value,
        "target_number": order.target_number,
        "version": order.version,
        "total": order.total,
    }


def emit_order_created(order: Order) -> None:
    event_bus.emit(ORDER_CREATED, build_order_payload(order))


def emit_item_status_changed(
    order: Order,
    *,
    item_index: int,
    previous_status: ItemStatus,
    actor: Actor | None = None,
    previous_order_status: OrderStatus | None = None,
) -> None:
    item = order.items[item_index]
    payload = build_order_payload(order)
    payload.update(
        {
            "item_index": item_index,
            "product_id": item.product_id,
            "item_name": item.name,
            "item_status": item.status.value,
            "previous_item_status": ItemStatus(previous_status).value,
            "employee_name": actor.name if actor else None,
        }
    )
    event_bus.emit(ITEM_STATUS_CHANGED, payload)
    if order.status == OrderStatus.completed and previous_order_status != OrderStatus.completed:
        event_bus.emit(ORDER_COMPLETED, build_order_payload(order))


def emit_order_archived(order: Order) -> None:
    event_bus.emit(ORDER_ARCHIVED, build_order_payload(order))
