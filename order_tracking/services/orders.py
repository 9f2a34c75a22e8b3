import logging
from typing import Iterable, List

from order_tracking.core import config
from order_tracking.schemas.order import (
    Actor,
    CartItem,
    HistoryEntry,
    InternalOrderCreate,
    Order,
    OrderItem,
    PublicOrderCreate,
    TabSummary,
)
from order_tracking.schemas.status import ItemStatus, OrderSource, OrderStatus
from order_tracking.services.errors import ItemNotFound, OrderNotFound
from order_tracking.services.order_status import check_transition, initial_item_status
from order_tracking.services.order_store import OrderStore, now_ms

logger = logging.getLogger(__name__)

PUBLIC_ORDER_LABEL = "Pedido criado pelo cliente"
INTERNAL_ORDER_LABEL = "Pedido criado internamente"


def next_order_id(store: OrderStore, timestamp: int) -> str:
    """Id = epoch ms; avança 1 ms enquanto colidir com um pedido existente."""
    candidate = timestamp
    while store.get_order(str(candidate)) is not None:
        candidate += 1
    return str(candidate)


def _build_items(cart: Iterable[CartItem], source: OrderSource) -> List[OrderItem]:
    items: List[OrderItem] = []
    for entry in cart:
        items.append(
            OrderItem(
                product_id=entry.product_id,
                name=entry.name.strip(),
                price=entry.price,
                quantity=entry.quantity,
                requires_preparation=entry.requires_preparation,
                status=initial_item_status(
                    source=source,
                    requires_preparation=entry.requires_preparation,
                ),
            )
        )
    return items


def build_public_order(store: OrderStore, company_id: str, payload: PublicOrderCreate) -> Order:
    timestamp = now_ms()
    return Order(
        id=next_order_id(store, timestamp),
        company_id=company_id,
        user_id=payload.user_id,
        target_type=payload.target_type,
        target_number=payload.target_number.strip() or "1",
        source=OrderSource.public,
        timestamp=timestamp,
        items=_build_items(payload.items, OrderSource.public),
        history=[HistoryEntry(status=PUBLIC_ORDER_LABEL, timestamp=timestamp)],
    )


def build_internal_order(
    store: OrderStore,
    company_id: str,
    payload: InternalOrderCreate,
    actor: Actor | None = None,
) -> Order:
    timestamp = now_ms()
    return Order(
        id=next_order_id(store, timestamp),
        company_id=company_id,
        target_type=payload.target_type,
        target_number=payload.target_number.strip(),
        source=OrderSource.internal,
        timestamp=timestamp,
        items=_build_items(payload.items, OrderSource.internal),
        history=[
            HistoryEntry(
                status=INTERNAL_ORDER_LABEL,
                timestamp=timestamp,
                employee_name=actor.name if actor else None,
            )
        ],
        waiter_id=actor.id if actor else None,
        customer_name=payload.customer_name,
    )


def place_public_order(store: OrderStore, company_id: str, payload: PublicOrderCreate) -> Order:
    return store.place_order(build_public_order(store, company_id, payload))


def place_internal_order(
    store: OrderStore,
    company_id: str,
    payload: InternalOrderCreate,
    actor: Actor | None = None,
) -> Order:
    return store.place_order(build_internal_order(store, company_id, payload, actor))


def transition_item(
    store: OrderStore,
    order_id: str,
    item_index: int,
    new_status: ItemStatus,
    *,
    actor: Actor | None = None,
    expected_version: int | None = None,
    strict: bool | None = None,
) -> Order:
    """Transição feita pela equipe; valida o fluxo antes de chamar o store."""
    order = store.get_order(order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if item_index < 0 or item_index >= len(order.items):
        raise ItemNotFound(order_id, item_index)

    if config.STRICT_ITEM_TRANSITIONS if strict is None else strict:
        item = order.items[item_index]
        check_transition(
            item.status,
            new_status,
            requires_preparation=item.requires_preparation,
            detailed_tracking=store.is_detailed_tracking_enabled(order.company_id),
        )

    return store.update_order_item_status(
        order_id,
        item_index,
        new_status,
        actor=actor,
        expected_version=expected_version,
    )


def filter_orders(orders: Iterable[Order], q: str | None = None, *, include_archived: bool = False) -> List[Order]:
    term = (q or "").strip().lower()
    result: List[Order] = []
    for order in orders:
        if order.is_archived and not include_archived:
            continue
        if term and term not in order.target_number.lower() and not any(
            term in item.name.lower() for item in order.items
        ):
            continue
        result.append(order)
    return result


def summarize_tabs(orders: Iterable[Order]) -> List[TabSummary]:
    """Agrupa pedidos ativos por mesa/quarto."""
    tabs: dict[tuple[str, str], TabSummary] = {}
    for order in orders:
        if order.is_archived:
            continue
        key = (order.target_type.value, order.target_number)
        tab = tabs.get(key)
        if tab is None:
            tab = TabSummary(
                type=order.target_type,
                number=order.target_number,
                status="ready_to_pay",
                total=0.0,
            )
            tabs[key] = tab
        tab.total = round(tab.total + order.total, 2)
        tab.order_ids.append(order.id)
        if order.status != OrderStatus.completed:
            tab.status = "occupied"
    return list(tabs.values())
