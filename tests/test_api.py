import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_lock_service, get_notifier, get_payment_gateway
from app.data.database import get_db
from app.main import app
from app.services.payment_gateway import compute_signature

JANE = {"X-User-Id": "1"}
JOHN = {"X-User-Id": "2"}
ADMIN = {"X-User-Id": "99", "X-User-Role": "admin"}


@pytest.fixture
def client(session_factory, catalog, notifier, lock_service, gateway):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def order_id(client):
    assert client.post("/cart/items", json={"product_id": 1, "store_id": 1, "quantity": 2}, headers=JANE).status_code == 201
    resp = client.post("/orders", json={"shipping_address_id": 1, "notes": "leave at door"}, headers=JANE)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_identity_is_required(client):
    resp = client.get("/cart")

    assert resp.status_code == 401
    assert resp.json() == {"status": "fail", "message": "Authentication required"}


def test_admin_cannot_use_customer_cart(client):
    assert client.get("/cart", headers=ADMIN).status_code == 403


def test_cart_flow(client):
    resp = client.post("/cart/items", json={"product_id": 1, "store_id": 1, "quantity": 2}, headers=JANE)
    assert resp.status_code == 201
    line = resp.json()
    assert Decimal(line["price_snapshot"]) == Decimal("20.00")
    assert Decimal(line["line_total"]) == Decimal("40.00")

    cart = client.get("/cart", headers=JANE).json()
    assert cart["summary"]["total_items"] == 2
    assert Decimal(cart["summary"]["subtotal"]) == Decimal("40.00")

    resp = client.put(f"/cart/items/{line['id']}", json={"quantity": 5}, headers=JANE)
    assert resp.json()["quantity"] == 5

    assert client.get("/cart/validate", headers=JANE).json()["valid"] is True

    resp = client.put(f"/cart/items/{line['id']}", json={"quantity": 0}, headers=JANE)
    assert resp.json() == {"message": "Item removed from cart"}
    assert client.get("/cart", headers=JANE).json()["items"] == []


def test_request_validation_is_400(client):
    resp = client.post("/cart/items", json={"product_id": 1, "store_id": 1, "quantity": 0}, headers=JANE)

    assert resp.status_code == 400
    assert resp.json()["status"] == "fail"
    assert "quantity" in resp.json()["message"]


def test_stock_error_carries_available(client):
    resp = client.post("/cart/items", json={"product_id": 2, "store_id": 1, "quantity": 4}, headers=JANE)

    assert resp.status_code == 400
    assert resp.json()["available"] == 3


def test_validate_empty_cart(client):
    resp = client.get("/cart/validate", headers=JANE)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart is empty"


def test_place_order(client, order_id, notifier):
    order = client.get(f"/orders/{order_id}", headers=JANE).json()

    assert order["status"] == "CREATED"
    assert Decimal(order["total_amount"]) == Decimal("53.20")
    assert [i["product_name"] for i in order["items"]] == ["Keyboard"]
    assert order["shipping_address"]["city"] == "Springfield"
    assert client.get("/cart", headers=JANE).json()["items"] == []
    assert "order_created" in notifier.events


def test_orders_are_private(client, order_id):
    assert client.get(f"/orders/{order_id}", headers=JOHN).status_code == 404
    assert client.get(f"/orders/{order_id}", headers=ADMIN).status_code == 200
    assert client.get("/orders", headers=JOHN).json() == []
    assert client.get("/orders/admin/all", headers=JANE).status_code == 403

    listed = client.get("/orders/admin/all", headers=ADMIN).json()
    assert [(o["id"], o["item_count"]) for o in listed] == [(order_id, 1)]


def test_order_detail_fields(client, order_id):
    order = client.get(f"/orders/{order_id}", headers=ADMIN).json()

    assert (order["customer_name"], order["customer_email"]) == ("Jane Doe", "jane@example.com")
    (item,) = order["items"]
    assert (item["store_name"], item["store_code"], item["current_product_status"]) == ("Downtown", "DT", "active")


def test_order_lists_filter_by_date(client, order_id):
    past = {"from_date": "2000-01-01T00:00:00Z"}
    future = {"from_date": "2999-01-01T00:00:00Z"}

    assert [o["id"] for o in client.get("/orders", params=past, headers=JANE).json()] == [order_id]
    assert client.get("/orders", params=future, headers=JANE).json() == []

    listed = client.get("/orders/admin/all", params={**past, "to_date": "2999-01-01T00:00:00Z"}, headers=ADMIN).json()
    assert [(o["id"], o["customer_name"], o["customer_email"]) for o in listed] == [
        (order_id, "Jane Doe", "jane@example.com")
    ]
    assert client.get("/orders/admin/all", params=future, headers=ADMIN).json() == []


def test_inverted_date_range_is_400(client):
    params = {"from_date": "2026-03-01T00:00:00Z", "to_date": "2026-02-01T00:00:00Z"}

    assert client.get("/orders", params=params, headers=JANE).status_code == 400
    assert client.get("/orders/admin/all", params=params, headers=ADMIN).status_code == 400


def test_payment_flow(client, order_id):
    resp = client.post(f"/orders/{order_id}/payment", headers=JANE)
    assert resp.status_code == 200
    init = resp.json()
    assert init["amount"] == 5320
    assert init["key_id"] == "rzp_test_key"
    assert init["order"]["status"] == "PAYMENT_PENDING"

    signature = compute_signature("test_secret", f"{init['gateway_order_id']}|pay_123")
    resp = client.post(
        f"/orders/{order_id}/payment/verify",
        json={"gateway_payment_id": "pay_123", "signature": signature},
        headers=JANE,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "PAID"
    assert resp.json()["payment_completed_at"] is not None


def test_forged_payment(client, order_id):
    client.post(f"/orders/{order_id}/payment", headers=JANE)

    resp = client.post(
        f"/orders/{order_id}/payment/verify",
        json={"gateway_payment_id": "pay_123", "signature": "forged"},
        headers=JANE,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Payment verification failed"
    assert client.get(f"/orders/{order_id}", headers=JANE).json()["status"] == "FAILED"


def test_admin_status_updates(client, order_id):
    assert client.patch(f"/orders/{order_id}/status", json={"status": "PAYMENT_PENDING"}, headers=JANE).status_code == 403

    resp = client.patch(f"/orders/{order_id}/status", json={"status": "DELIVERED"}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json() == {
        "status": "fail",
        "message": "Cannot transition from CREATED to DELIVERED",
        "current_status": "CREATED",
        "requested_status": "DELIVERED",
    }

    resp = client.patch(f"/orders/{order_id}/status", json={"status": "SHIPPING"}, headers=ADMIN)
    assert resp.status_code == 400


def test_cancel(client, order_id):
    resp = client.post(f"/orders/{order_id}/cancel", json={"reason": "changed my mind"}, headers=JANE)

    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["notes"].endswith("Cancellation reason: changed my mind")

    again = client.post(f"/orders/{order_id}/cancel", headers=JANE)
    assert again.status_code == 400


def test_webhook_signature_checks(client, order_id):
    body = json.dumps({"event": "payment.captured", "payload": {}}).encode()

    resp = client.post("/webhooks/payment", content=body)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Missing signature"

    resp = client.post("/webhooks/payment", content=body, headers={"X-Razorpay-Signature": "0" * 64})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid signature"


def test_webhook_settles_order(client, order_id):
    gateway_order_id = client.post(f"/orders/{order_id}/payment", headers=JANE).json()["gateway_order_id"]

    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_42", "order_id": gateway_order_id}}},
        }
    ).encode()
    signature = compute_signature("whsec_test", body)

    resp = client.post("/webhooks/payment", content=body, headers={"X-Razorpay-Signature": signature})
    assert resp.status_code == 200
    assert resp.json() == {"status": "processed"}
    assert client.get(f"/orders/{order_id}", headers=JANE).json()["status"] == "PAID"

    unknown = json.dumps({"event": "invoice.paid", "payload": {}}).encode()
    resp = client.post(
        "/webhooks/payment",
        content=unknown,
        headers={"X-Razorpay-Signature": compute_signature("whsec_test", unknown)},
    )
    assert resp.json() == {"status": "ignored"}
