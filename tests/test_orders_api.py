from __future__ import annotations

from tests.fixtures_data import (
    ADMIN_HEADERS,
    COMPANY_ID,
    CUSTOMER_HEADERS,
    CUSTOMER_ID,
    INTERNAL_ORDER_PAYLOAD,
    OTHER_STAFF_HEADERS,
    PLATFORM_ADMIN_HEADERS,
    PUBLIC_ORDER_PAYLOAD,
    STAFF_HEADERS,
)


def _create_public_order(client) -> dict:
    response = client.post(f"/api/orders/{COMPANY_ID}/public", json=PUBLIC_ORDER_PAYLOAD, headers=CUSTOMER_HEADERS)
    assert response.status_code == 201
    return response.json()


def test_public_order_is_created_with_initial_statuses(client) -> None:
    order = _create_public_order(client)

    assert [item["status"] for item in order["items"]] == ["preparing", "ready"]
    assert order["status"] == "accepted"
    assert order["user_id"] == CUSTOMER_ID
    assert order["total"] == 103.8
    assert order["history"][0]["status"] == "Pedido criado pelo cliente"


def test_customer_sees_only_own_orders(client) -> None:
    order = _create_public_order(client)

    own = client.get(f"/api/users/{CUSTOMER_ID}/orders", headers=CUSTOMER_HEADERS)
    other = client.get("/api/users/someone-else/orders", headers=CUSTOMER_HEADERS)

    assert own.status_code == 200
    assert [entry["id"] for entry in own.json()] == [order["id"]]
    assert other.status_code == 403


def test_internal_order_requires_staff_of_the_company(client) -> None:
    anonymous = client.post(f"/api/orders/{COMPANY_ID}/internal", json=INTERNAL_ORDER_PAYLOAD)
    other_company = client.post(
        f"/api/orders/{COMPANY_ID}/internal",
        json=INTERNAL_ORDER_PAYLOAD,
        headers=OTHER_STAFF_HEADERS,
    )
    created = client.post(f"/api/orders/{COMPANY_ID}/internal", json=INTERNAL_ORDER_PAYLOAD, headers=STAFF_HEADERS)

    assert anonymous.status_code == 403
    assert anonymous.json()["detail"] == "Permissão insuficiente"
    assert other_company.status_code == 403
    assert other_company.json()["detail"] == "Empresa não autorizada"
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "pending"
    assert body["waiter_id"] == "emp-7"
    assert body["history"][0]["employee_name"] == "Garçom Pedro"


def test_staff_list_supports_search(client) -> None:
    _create_public_order(client)
    client.post(f"/api/orders/{COMPANY_ID}/internal", json=INTERNAL_ORDER_PAYLOAD, headers=STAFF_HEADERS)

    everything = client.get(f"/api/orders/{COMPANY_ID}", headers=STAFF_HEADERS)
    rooms = client.get(f"/api/orders/{COMPANY_ID}", params={"q": "101"}, headers=STAFF_HEADERS)
    burgers = client.get(f"/api/orders/{COMPANY_ID}", params={"q": "hambúrguer"}, headers=STAFF_HEADERS)

    assert len(everything.json()) == 2
    assert [order["target_number"] for order in rooms.json()] == ["101"]
    assert [order["target_number"] for order in burgers.json()] == ["5"]


def test_item_status_update_flow(client) -> None:
    order = _create_public_order(client)
    url = f"/api/orders/{order['id']}/items/0/status"

    ready = client.patch(url, json={"status": "ready", "expected_version": 1}, headers=STAFF_HEADERS)
    repeated = client.patch(url, json={"status": "ready"}, headers=STAFF_HEADERS)
    stale = client.patch(url, json={"status": "delivered", "expected_version": 1}, headers=STAFF_HEADERS)
    foreign = client.patch(url, json={"status": "delivered"}, headers=OTHER_STAFF_HEADERS)
    missing_item = client.patch(
        f"/api/orders/{order['id']}/items/9/status",
        json={"status": "ready"},
        headers=STAFF_HEADERS,
    )

    assert ready.status_code == 200
    body = ready.json()
    assert body["items"][0]["status"] == "ready"
    assert body["items"][0]["assigned_employee"] == {"id": "emp-7", "name": "Garçom Pedro"}
    assert body["history"][-1] == {
        "status": "Hambúrguer Gourmet: ready",
        "timestamp": body["history"][-1]["timestamp"],
        "employee_name": "Garçom Pedro",
    }
    assert body["version"] == 2
    assert repeated.status_code == 409
    assert repeated.json()["detail"] == "Transição inválida: ready -> ready"
    assert stale.status_code == 409
    assert foreign.status_code == 404
    assert missing_item.status_code == 404


def test_receipt_validation_endpoint(client) -> None:
    order = _create_public_order(client)
    code = f"ORDER-RECEIPT-{order['id']}"

    invalid = client.post("/api/receipts/validate", json={"code": "GARBAGE"}, headers=STAFF_HEADERS)
    unknown = client.post("/api/receipts/validate", json={"code": "ORDER-RECEIPT-1"}, headers=STAFF_HEADERS)
    foreign = client.post("/api/receipts/validate", json={"code": code}, headers=OTHER_STAFF_HEADERS)
    customer = client.post("/api/receipts/validate", json={"code": code}, headers=CUSTOMER_HEADERS)
    validated = client.post("/api/receipts/validate", json={"code": code}, headers=STAFF_HEADERS)

    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "QR Code inválido!"
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "Pedido não encontrado!"
    assert foreign.status_code == 404
    assert customer.status_code == 403
    assert validated.status_code == 200
    body = validated.json()
    assert body["ok"] is True
    assert body["message"] == f"Pedido #{order['id'][-4:]} validado e entregue!"
    assert body["delivered_items"] == [1]
    assert body["dismiss_after_seconds"] == 5.0


def test_receipt_token_and_qr_image(client) -> None:
    order = _create_public_order(client)

    token = client.get(f"/api/orders/{order['id']}/receipt")
    image = client.get(f"/api/orders/{order['id']}/receipt.png")
    missing = client.get("/api/orders/404/receipt.png")

    assert token.status_code == 200
    assert token.json() == {
        "order_id": order["id"],
        "token": f"ORDER-RECEIPT-{order['id']}",
        "qr_code_url": f"/api/orders/{order['id']}/receipt.png",
    }
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert image.content.startswith(b"\x89PNG")
    assert missing.status_code == 404


def test_customer_confirms_receipt_and_staff_archives(client) -> None:
    order = _create_public_order(client)

    stranger = client.post(
        f"/api/orders/{order['id']}/confirm-receipt",
        headers={"X-User-Role": "user", "X-User-ID": "someone-else"},
    )
    confirmed = client.post(f"/api/orders/{order['id']}/confirm-receipt", headers=CUSTOMER_HEADERS)
    again = client.post(f"/api/orders/{order['id']}/confirm-receipt", headers=CUSTOMER_HEADERS)

    assert stranger.status_code == 404
    assert confirmed.status_code == 200
    body = confirmed.json()
    assert {item["status"] for item in body["items"]} == {"received"}
    assert body["status"] == "completed"
    assert body["history"][-1]["status"] == "Pedido recebido e finalizado pelo cliente"
    assert again.status_code == 409

    tabs = client.get(f"/api/orders/{COMPANY_ID}/tabs", headers=STAFF_HEADERS)
    assert tabs.json()[0]["status"] == "ready_to_pay"

    archived = client.post(f"/api/orders/{COMPANY_ID}/archive-completed", headers=STAFF_HEADERS)
    active = client.get(f"/api/orders/{COMPANY_ID}", headers=STAFF_HEADERS)
    with_archived = client.get(
        f"/api/orders/{COMPANY_ID}",
        params={"include_archived": "true"},
        headers=STAFF_HEADERS,
    )

    assert archived.json() == {"archived": 1}
    assert active.json() == []
    assert [entry["is_archived"] for entry in with_archived.json()] == [True]


def test_archive_single_order(client) -> None:
    order = _create_public_order(client)

    foreign = client.post(f"/api/orders/{order['id']}/archive", headers=OTHER_STAFF_HEADERS)
    archived = client.post(f"/api/orders/{order['id']}/archive", headers=STAFF_HEADERS)
    blocked = client.patch(
        f"/api/orders/{order['id']}/items/0/status",
        json={"status": "ready"},
        headers=STAFF_HEADERS,
    )

    assert foreign.status_code == 404
    assert archived.status_code == 200
    assert archived.json()["is_archived"] is True
    assert blocked.status_code == 409


def test_tracking_settings_permissions(client) -> None:
    url = f"/api/companies/{COMPANY_ID}/tracking-settings"

    read = client.get(url, headers=STAFF_HEADERS)
    employee_write = client.put(url, json={"enable_detailed_tracking": True}, headers=STAFF_HEADERS)
    admin_write = client.put(url, json={"enable_detailed_tracking": True}, headers=ADMIN_HEADERS)
    reread = client.get(url, headers=STAFF_HEADERS)

    assert read.json() == {"company_id": COMPANY_ID, "enable_detailed_tracking": False}
    assert employee_write.status_code == 403
    assert admin_write.status_code == 200
    assert reread.json()["enable_detailed_tracking"] is True


def test_tracking_snapshot_lists_ready_items_for_staff(client) -> None:
    order = _create_public_order(client)
    client.patch(f"/api/orders/{order['id']}/items/0/status", json={"status": "ready"}, headers=STAFF_HEADERS)

    staff = client.get("/api/tracking/snapshot", headers=STAFF_HEADERS)
    customer = client.get("/api/tracking/snapshot", headers=CUSTOMER_HEADERS)
    anonymous = client.get("/api/tracking/snapshot")

    assert staff.status_code == 200
    assert staff.json()["ready_items"] == [f"{order['id']}-1"]
    assert customer.json()["ready_items"] == []
    assert [entry["id"] for entry in customer.json()["orders"]] == [order["id"]]
    assert anonymous.status_code == 403


def test_tracking_websocket_pushes_snapshot(client) -> None:
    order = _create_public_order(client)

    with client.websocket_connect(f"/ws/tracking?role=employee&company_id={COMPANY_ID}&name=Pedro") as websocket:
        message = websocket.receive_json()

    assert message["event"] == "snapshot"
    assert [entry["id"] for entry in message["data"]["orders"]] == [order["id"]]


def test_internal_metrics_require_platform_admin(client) -> None:
    _create_public_order(client)

    denied = client.get("/internal/metrics/companies", headers=STAFF_HEADERS)
    allowed = client.get("/internal/metrics/companies", headers=PLATFORM_ADMIN_HEADERS)

    assert denied.status_code == 403
    assert COMPANY_ID in allowed.json()["companies"]
