from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.services import notification_service
from app.services.notification_service import NotificationService, mask_recipient


@pytest.fixture
def order():
    return SimpleNamespace(
        id=7,
        order_number="ORD-12345678-ABC123",
        total_amount=Decimal("53.20"),
        currency="USD",
        refund_required=False,
        items=[SimpleNamespace(product_name="Keyboard", quantity=2, unit_price=Decimal("20.00"))],
    )


@pytest.fixture
def customer():
    return SimpleNamespace(name="Jane Doe", email="jane@example.com", push_token="tok-abcdef")


def test_mask_recipient():
    assert mask_recipient("jane@example.com") == "ja***@example.com"
    assert mask_recipient("tok-abcdef") == "tok-***"


def test_both_channels_are_queued(order, customer):
    assert NotificationService().notify_order_created(order, customer) == 2


def test_email_only_customer(order, customer):
    customer.push_token = None
    assert NotificationService().notify_payment_success(order, customer, "pay_1") == 1


@pytest.mark.parametrize(
    "method",
    [
        "notify_order_created",
        "notify_payment_failed",
        "notify_order_shipped",
        "notify_order_delivered",
        "notify_order_cancelled",
    ],
)
def test_missing_customer_is_skipped(order, method, monkeypatch):
    queued = []
    monkeypatch.setattr(
        notification_service.deliver_notification_task, "delay", lambda *args: queued.append(args)
    )

    assert getattr(NotificationService(), method)(order, None) == 0
    assert NotificationService().notify_payment_success(order, None, "pay_1") == 0
    assert queued == []


def test_queue_failure_is_absorbed(order, customer, monkeypatch):
    def broken_delay(*args, **kwargs):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(notification_service.deliver_notification_task, "delay", broken_delay)

    assert NotificationService().notify_order_cancelled(order, customer, "too slow") == 0


def test_payloads(order, customer, monkeypatch):
    queued = []
    monkeypatch.setattr(
        notification_service.deliver_notification_task,
        "delay",
        lambda *args: queued.append(args),
    )

    NotificationService().notify_order_created(order, customer)

    (email_channel, template, recipient, email), (push_channel, _, token, push) = queued
    assert (email_channel, template, recipient) == ("email", "order-created", "jane@example.com")
    assert email["items"] == [{"productName": "Keyboard", "quantity": 2, "unitPrice": "20.00"}]
    assert email["orderUrl"].endswith("/orders/7")
    assert (push_channel, token) == ("push", "tok-abcdef")
    assert push["orderId"] == 7


def test_deliver_task_runs():
    result = notification_service.deliver_notification_task.apply(
        args=("email", "order-shipped", "jane@example.com", {"orderNumber": "ORD-1"})
    ).get()
    assert result == {"channel": "email", "template": "order-shipped", "status": "sent"}
