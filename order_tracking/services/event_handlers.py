from __future__ import annotations

import logging

from order_tracking.core.metrics import request_metrics
from order_tracking.services.alerts import ReadyAlert, play_alert
from order_tracking.services.event_bus import event_bus
from order_tracking.services.order_events import (
    ITEM_READY_ALERT,
    ORDER_ARCHIVED,
    ORDER_COMPLETED,
)

logger = logging.getLogger(__name__)


def handle_item_ready(payload: dict) -> None:
    alert = ReadyAlert(
        company_id=payload.get("company_id"),
        order_id=payload["order_id"],
        product_id=payload["product_id"],
        item_name=payload.get("item_name"),
    )
    request_metrics.count_ready_alert(alert.company_id)
    play_alert(alert)


def handle_order_completed(payload: dict) -> None:
    logger.info(
        "order completed order_id=%s company_id=%s total=%s",
        payload["order_id"],
        payload["company_id"],
        payload.get("total"),
    )


def handle_order_archived(payload: dict) -> None:
    logger.info("order archived order_id=%s company_id=%s", payload["order_id"], payload["company_id"])


event_bus.subscribe(ITEM_READY_ALERT, handle_item_ready)
event_bus.subscribe(ORDER_COMPLETED, handle_order_completed)
event_bus.subscribe(ORDER_ARCHIVED, handle_order_archived)
