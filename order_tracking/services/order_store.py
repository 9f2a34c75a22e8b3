"""Order Store: pedidos gravados como documento inteiro (itens + histórico).

Toda escrita é leitura-modificação-escrita do pedido completo. A coluna
``version`` é incrementada a cada gravação; quem passa ``expected_version``
recebe ConcurrentModification se outro ator gravou antes.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from order_tracking.core.database import SessionLocal
from order_tracking.models.company_settings import CompanyTrackingSettings
from order_tracking.models.order import Order as OrderRow
from order_tracking.schemas.order import Actor, HistoryEntry, Order
from order_tracking.schemas.status import ItemStatus, OrderStatus
from order_tracking.services.errors import (
    ConcurrentModification,
    ItemNotFound,
    OrderNotFound,
    StoreUnavailable,
)
from order_tracking.services.order_events import (
    emit_item_status_changed,
    emit_order_archived,
    emit_order_created,
)
from order_tracking.services.order_status import derive_status

logger = logging.getLogger(__name__)

RECEIPT_CONFIRMED_LABEL = "Pedido recebido e finalizado pelo cliente"


def now_ms() -> int:
    return int(time.time() * 1000)


class OrderStore(Protocol):
    def get_orders(self, company_id: str | None = None, user_id: str | None = None) -> List[Order]:
        ...

    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    def place_order(self, order: Order) -> Order:
        ...

    def update_order_item_status(
        self,
        order_id: str,
        item_index: int,
        new_status: ItemStatus,
        actor: Actor | None = None,
        expected_version: int | None = None,
    ) -> Order:
        ...

    def confirm_order_receipt(self, order_id: str, expected_version: int | None = None) -> Order:
        ...

    def archive_completed_orders(self, company_id: str) -> int:
        ...

    def archive_order(self, order_id: str) -> Order:
        ...

    def is_detailed_tracking_enabled(self, company_id: str) -> bool:
        ...

    def get_tracking_settings(self, company_id: str) -> dict:
        ...

    def save_tracking_settings(self, company_id: str, *, enable_detailed_tracking: bool) -> dict:
        ...


def row_to_order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        company_id=row.company_id,
        user_id=row.user_id,
        target_type=row.target_type,
        target_number=row.target_number,
        source=row.source,
        timestamp=row.timestamp,
        items=list(row.items_json or []),
        history=list(row.history_json or []),
        is_archived=bool(row.is_archived),
        version=row.version or 1,
        finalized_at=row.finalized_at,
        waiter_id=row.waiter_id,
        customer_name=row.customer_name,
    )


def _dump_items(order: Order) -> list[dict]:
    return [item.model_dump(mode="json") for item in order.items]


def _dump_history(order: Order) -> list[dict]:
    return [entry.model_dump(mode="json") for entry in order.history]


def _next_history_timestamp(order: Order) -> int:
    timestamp = now_ms()
    if order.history:
        timestamp = max(timestamp, order.history[-1].timestamp)
    return timestamp


class SqlOrderStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # Leitura

    def get_orders(self, company_id: str | None = None, user_id: str | None = None) -> List[Order]:
        query = self.db.query(OrderRow)
        if company_id:
            query = query.filter(OrderRow.company_id == company_id)
        if user_id:
            query = query.filter(OrderRow.user_id == user_id)
        rows = query.order_by(OrderRow.timestamp.desc(), OrderRow.id.desc()).all()
        return [row_to_order(row) for row in rows]

    def get_order(self, order_id: str) -> Optional[Order]:
        row = self._get_row(order_id)
        return row_to_order(row) if row else None

    def get_tracking_settings(self, company_id: str) -> dict:
        return {
            "company_id": company_id,
            "enable_detailed_tracking": self.is_detailed_tracking_enabled(company_id),
        }

    def is_detailed_tracking_enabled(self, company_id: str) -> bool:
        settings = self._get_settings_row(company_id)
        return bool(settings.enable_detailed_tracking) if settings else False

    # Escrita

    def place_order(self, order: Order) -> Order:
        row = OrderRow(
            id=order.id,
            company_id=order.company_id,
            user_id=order.user_id,
            target_type=order.target_type.value,
            target_number=order.target_number,
            source=order.source.value,
            timestamp=order.timestamp,
            items_json=_dump_items(order),
            history_json=_dump_history(order),
            is_archived=order.is_archived,
            finalized_at=order.finalized_at,
            waiter_id=order.waiter_id,
            customer_name=order.customer_name,
        )
        self.db.add(row)
        self._commit(order.id)
        self.db.refresh(row)
        created = row_to_order(row)
        logger.info(
            "order placed order_id=%s company_id=%s source=%s items=%s",
            created.id,
            created.company_id,
            created.source.value,
            len(created.items),
        )
        emit_order_created(created)
        return created

    def update_order_item_status(
        self,
        order_id: str,
        item_index: int,
        new_status: ItemStatus,
        actor: Actor | None = None,
        expected_version: int | None = None,
    ) -> Order:
        row = self._get_row_for_update(order_id, expected_version)
        order = row_to_order(row)
        if item_index < 0 or item_index >= len(order.items):
            raise ItemNotFound(order_id, item_index)

        new_status = ItemStatus(new_status)
        item = order.items[item_index]
        previous_status = item.status
        previous_order_status = order.status

        item.status = new_status
        if actor:
            item.assigned_employee = actor
        # Sempre registra, mesmo repetindo o status atual.
        order.history.append(
            HistoryEntry(
                status=f"{item.name}: {new_status.value}",
                timestamp=_next_history_timestamp(order),
                employee_name=actor.name if actor else None,
            )
        )
        if derive_status(order.items) == OrderStatus.completed and not order.finalized_at:
            order.finalized_at = now_ms()

        row.items_json = _dump_items(order)
        row.history_json = _dump_history(order)
        row.finalized_at = order.finalized_at
        self._commit(order_id, expected_version)
        self.db.refresh(row)

        updated = row_to_order(row)
        logger.info(
            "item status updated order_id=%s item_index=%s %s->%s employee=%s",
            order_id,
            item_index,
            previous_status.value,
            new_status.value,
            actor.name if actor else None,
        )
        emit_item_status_changed(
            updated,
            item_index=item_index,
            previous_status=previous_status,
            actor=actor,
            previous_order_status=previous_order_status,
        )
        return updated

    def confirm_order_receipt(self, order_id: str, expected_version: int | None = None) -> Order:
        row = self._get_row_for_update(order_id, expected_version)
        order = row_to_order(row)
        previous_statuses = [item.status for item in order.items]
        previous_order_status = order.status

        for item in order.items:
            item.status = ItemStatus.received
        order.history.append(
            HistoryEntry(status=RECEIPT_CONFIRMED_LABEL, timestamp=_next_history_timestamp(order))
        )
        order.finalized_at = now_ms()

        row.items_json = _dump_items(order)
        row.history_json = _dump_history(order)
        row.finalized_at = order.finalized_at
        self._commit(order_id, expected_version)
        self.db.refresh(row)

        updated = row_to_order(row)
        logger.info("order receipt confirmed order_id=%s", order_id)
        for index, previous_status in enumerate(previous_statuses):
            if previous_status != ItemStatus.received:
                emit_item_status_changed(
                    updated,
                    item_index=index,
                    previous_status=previous_status,
                    previous_order_status=previous_order_status,
                )
                previous_order_status = updated.status
        return updated

    def archive_completed_orders(self, company_id: str) -> int:
        rows = (
            self.db.query(OrderRow)
            .filter(OrderRow.company_id == company_id, OrderRow.is_archived.is_(False))
            .all()
        )
        archived: list[OrderRow] = []
        for row in rows:
            if derive_status(row_to_order(row).items) == OrderStatus.completed:
                row.is_archived = True
                archived.append(row)
        if not archived:
            return 0

        self._commit(None)
        logger.info("orders archived company_id=%s count=%s", company_id, len(archived))
        for row in archived:
            self.db.refresh(row)
            emit_order_archived(row_to_order(row))
        return len(archived)

    def archive_order(self, order_id: str) -> Order:
        row = self._get_row_for_update(order_id, None)
        if not row.is_archived:
            row.is_archived = True
            self._commit(order_id)
            self.db.refresh(row)
            emit_order_archived(row_to_order(row))
        return row_to_order(row)

    def save_tracking_settings(self, company_id: str, *, enable_detailed_tracking: bool) -> dict:
        settings = self._get_settings_row(company_id)
        if settings is None:
            settings = CompanyTrackingSettings(company_id=company_id)
            self.db.add(settings)
        settings.enable_detailed_tracking = enable_detailed_tracking
        self._commit(None)
        logger.info(
            "tracking settings saved company_id=%s detailed=%s",
            company_id,
            enable_detailed_tracking,
        )
        return {"company_id": company_id, "enable_detailed_tracking": enable_detailed_tracking}

    # Internos

    def _get_row(self, order_id: str) -> Optional[OrderRow]:
        return self.db.query(OrderRow).filter(OrderRow.id == order_id).first()

    def _get_row_for_update(self, order_id: str, expected_version: int | None) -> OrderRow:
        row = self._get_row(order_id)
        if row is None:
            raise OrderNotFound(order_id)
        if expected_version is not None and row.version != expected_version:
            raise ConcurrentModification(order_id, expected_version, row.version)
        return row

    def _get_settings_row(self, company_id: str) -> Optional[CompanyTrackingSettings]:
        return (
            self.db.query(CompanyTrackingSettings)
            .filter(CompanyTrackingSettings.company_id == company_id)
            .first()
        )

    def _commit(self, order_id: str | None, expected_version: int | None = None) -> None:
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning("stale write rejected order_id=%s", order_id)
            raise ConcurrentModification(order_id or "", expected_version, None) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("order store write failed order_id=%s", order_id)
            raise StoreUnavailable() from exc


@contextmanager
def session_store() -> Iterator[SqlOrderStore]:
    """Store com sessão própria, para uso fora de uma requisição."""
    db = SessionLocal()
    try:
        yield SqlOrderStore(db)
    finally:
        db.close()
