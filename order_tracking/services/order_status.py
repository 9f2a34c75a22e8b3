"""Regras de status dos itens e do pedido.

O status do pedido nunca é gravado: é sempre calculado a partir dos itens.
"""
from __future__ import annotations

from typing import Iterable

from order_tracking.schemas.status import ItemStatus, OrderSource, OrderStatus
from order_tracking.services.errors import InvalidTransition

DONE_STATUSES = {ItemStatus.delivered, ItemStatus.received}

# (origem, destino) liberados para a equipe; pending -> preparing depende do item.
_STAFF_TRANSITIONS = {
    (ItemStatus.pending, ItemStatus.preparing),
    (ItemStatus.preparing, ItemStatus.ready),
    (ItemStatus.ready, ItemStatus.delivered),
}
_RECEIPT_TRANSITIONS = {
    (ItemStatus.pending, ItemStatus.delivered),
    (ItemStatus.ready, ItemStatus.delivered),
}
_CUSTOMER_TRANSITIONS = {
    (ItemStatus.delivered, ItemStatus.received),
}


def _as_status(value) -> ItemStatus:
    return value if isinstance(value, ItemStatus) else ItemStatus(getattr(value, "status", value))


def derive_status(items: Iterable) -> OrderStatus:
    """Aceita itens (com .status) ou os próprios status."""
    statuses = [_as_status(item) for item in items]
    if statuses and all(status in DONE_STATUSES for status in statuses):
        return OrderStatus.completed
    if all(status == ItemStatus.pending for status in statuses):
        return OrderStatus.pending
    return OrderStatus.accepted


def initial_item_status(*, source: OrderSource, requires_preparation: bool) -> ItemStatus:
    if not requires_preparation:
        return ItemStatus.ready
    # Pedido do cliente já chega na cozinha como "em preparo".
    if source == OrderSource.public:
        return ItemStatus.preparing
    return ItemStatus.pending


def is_legal_transition(
    current: ItemStatus,
    target: ItemStatus,
    *,
    requires_preparation: bool = True,
    detailed_tracking: bool = False,
    via_receipt: bool = False,
) -> bool:
    current = ItemStatus(current)
    target = ItemStatus(target)
    pair = (current, target)

    if via_receipt:
        return pair in _RECEIPT_TRANSITIONS
    if pair in _CUSTOMER_TRANSITIONS:
        return True
    if pair not in _STAFF_TRANSITIONS:
        return False
    if pair == (ItemStatus.pending, ItemStatus.preparing):
        return requires_preparation or detailed_tracking
    return True


def check_transition(
    current: ItemStatus,
    target: ItemStatus,
    *,
    requires_preparation: bool = True,
    detailed_tracking: bool = False,
    via_receipt: bool = False,
) -> None:
    if not is_legal_transition(
        current,
        target,
        requires_preparation=requires_preparation,
        detailed_tracking=detailed_tracking,
        via_receipt=via_receipt,
    ):
        raise InvalidTransition(ItemStatus(current), ItemStatus(target))


def is_tracked_item(item, *, detailed_tracking: bool) -> bool:
    """Itens que passam pela cozinha/controle operacional."""
    return bool(getattr(item, "requires_preparation", False)) or detailed_tracking
