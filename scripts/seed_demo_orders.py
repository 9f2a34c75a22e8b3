#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from order_tracking.core.config import IS_PROD  # noqa: E402
from order_tracking.core.database import Base, SessionLocal, engine  # noqa: E402
import order_tracking.models  # noqa: E402,F401
from order_tracking.schemas.order import HistoryEntry, Order, OrderItem  # noqa: E402
from order_tracking.schemas.status import ItemStatus, OrderSource, TargetType  # noqa: E402
from order_tracking.services.order_store import SqlOrderStore, now_ms  # noqa: E402
from order_tracking.services.orders import INTERNAL_ORDER_LABEL, PUBLIC_ORDER_LABEL, next_order_id  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cria pedidos de demonstração para uma empresa.")
    parser.add_argument("--company", required=True, help="ID da empresa")
    parser.add_argument("--waiter", default="Garçom Pedro", help="Nome do garçom nos históricos")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Permite executar em produção",
    )
    return parser.parse_args()


def build_demo_orders(store: SqlOrderStore, company_id: str, waiter: str) -> list[Order]:
    now = now_ms()
    table_created = now - 3_610_000
    room_created = now - 1_810_000

    table_order = Order(
        id=next_order_id(store, now - 3_600_000),
        company_id=company_id,
        target_type=TargetType.table,
        target_number="5",
        source=OrderSource.public,
        timestamp=now - 3_600_000,
        items=[
            OrderItem(
                product_id="1",
                name="Hambúrguer Gourmet",
                price=45.90,
                quantity=2,
                requires_preparation=True,
                status=ItemStatus.pending,
            ),
            OrderItem(
                product_id="2",
                name="Suco de Laranja Natural",
                price=12.00,
                quantity=1,
                status=ItemStatus.delivered,
            ),
        ],
        history=[
            HistoryEntry(status=PUBLIC_ORDER_LABEL, timestamp=table_created),
            HistoryEntry(
                status="Suco de Laranja Natural: delivered",
                timestamp=now - 3_605_000,
                employee_name=waiter,
            ),
        ],
    )
    room_order = Order(
        id=next_order_id(store, now - 1_800_000),
        company_id=company_id,
        target_type=TargetType.room,
        target_number="101",
        source=OrderSource.internal,
        timestamp=now - 1_800_000,
        items=[
            OrderItem(
                product_id="3",
                name="Café da Manhã Completo",
                price=65.00,
                quantity=1,
                requires_preparation=True,
                status=ItemStatus.pending,
            )
        ],
        history=[
            HistoryEntry(status=INTERNAL_ORDER_LABEL, timestamp=room_created, employee_name=waiter),
        ],
    )
    return [table_order, room_order]


def main() -> int:
    args = parse_args()

    if IS_PROD and not args.force:
        print("Seed desabilitado em produção. Use --force.")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        store = SqlOrderStore(db)
        for order in build_demo_orders(store, args.company, args.waiter):
            created = store.place_order(order)
            print(f"Pedido {created.id} criado ({created.target_type.value} {created.target_number})")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
