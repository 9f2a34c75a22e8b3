from __future__ import annotations

import json
import logging

import pytest

from order_tracking.core.logging_setup import JsonFormatter
from order_tracking.core.metrics import InMemoryRequestMetrics
from order_tracking.core.request_context import (
    bind_viewer,
    clear_request_context,
    get_request_context,
    set_request_context,
)
from order_tracking.schemas.status import UserRole
from order_tracking.services.tracking_feed import ViewerContext


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("order_tracking.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_request_context() -> None:
    set_request_context(request_id="req-1", company_id="company-001", user_id="emp-7", user_role="employee")
    try:
        payload = json.loads(JsonFormatter("%(message)s").format(_record("hello", duration_ms=12.5)))
    finally:
        clear_request_context()

    assert payload["request_id"] == "req-1"
    assert payload["company_id"] == "company-001"
    assert payload["user_id"] == "emp-7"
    assert payload["user_role"] == "employee"
    assert payload["module"] == "order_tracking.test"
    assert payload["duration_ms"] == 12.5


def test_bind_viewer_fills_context_and_keeps_request_id() -> None:
    set_request_context(request_id="ws-1")
    try:
        bind_viewer(ViewerContext(role=UserRole.company_admin, company_id="company-001", user_id="adm-1"))
        context = get_request_context()
    finally:
        clear_request_context()

    assert context == {
        "request_id": "ws-1",
        "company_id": "company-001",
        "user_id": "adm-1",
        "user_role": "company_admin",
    }
    assert get_request_context()["user_role"] is None


def test_unknown_context_field_is_rejected() -> None:
    with pytest.raises(TypeError):
        set_request_context(tenant_id="x")


def test_json_formatter_masks_tokens_and_receipts() -> None:
    formatter = JsonFormatter("%(message)s")

    payload = json.loads(
        formatter.format(_record("validating ORDER-RECEIPT-1700000000000 with Authorization: Bearer abc.def"))
    )

    assert "1700000000000" not in payload["message"]
    assert "abc.def" not in payload["message"]
    assert "ORDER-RECEIPT-***" in payload["message"]


def test_metrics_snapshot_per_company() -> None:
    metrics = InMemoryRequestMetrics()

    metrics.observe(endpoint="/api/orders/{company_id}", method="GET", status_code=200, duration_ms=10, company_id="1")
    metrics.observe(endpoint="/api/orders/{company_id}", method="GET", status_code=500, duration_ms=30, company_id="1")
    metrics.observe(endpoint="/api/receipts/validate", method="POST", status_code=200, duration_ms=20, company_id="2")
    metrics.count_ready_alert("2")
    metrics.count_ready_alert("3")

    snapshot = metrics.snapshot_per_company()

    assert snapshot["1"]["requests"] == 2
    assert snapshot["1"]["errors"] == 1
    assert snapshot["1"]["avg_duration_ms"] == 20.0
    assert snapshot["2"]["ready_alerts"] == 1
    assert snapshot["3"] == {"requests": 0, "errors": 0, "avg_duration_ms": 0.0, "ready_alerts": 1}
