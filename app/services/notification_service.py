# app/services/notification_service.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from app.celery_worker import celery_app
from app.utils.settings import FRONTEND_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATES = {
    "order_created": "order-created",
    "payment_success": "payment-success",
    "payment_failed": "payment-failed",
    "order_shipped": "order-shipped",
    "order_delivered": "order-delivered",
    "order_cancelled": "order-cancelled",
}


def mask_recipient(recipient: str) -> str:
    if "@" in recipient:
        username, domain = recipient.split("@", 1)
        return f"{username[:2]}***@{domain}"
    return f"{recipient[:4]}***"


class NotificationService:
    """
    Wysylka powiadomien o cyklu zycia zamowienia.
    Best effort: blad kolejki/providera jest logowany, nigdy nie wraca do wywolujacego,
    zeby zepsuty kanal powiadomien nie blokowal koszyka/zamowienia/platnosci.
    """

    def notify_order_created(self, order, customer) -> int:
        if customer is None:
            return self._skip("order_created")
        return self._notify(
            "order_created",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "totalAmount": str(order.total_amount),
                "currency": order.currency,
                "items": [
                    {
                        "productName": i.product_name,
                        "quantity": i.quantity,
                        "unitPrice": str(i.unit_price),
                    }
                    for i in order.items
                ],
                "orderUrl": self._order_url(order),
            },
            push_data={
                "title": "Order Confirmed",
                "body": f"Your order {order.order_number} has been confirmed",
                "orderNumber": order.order_number,
                "orderId": order.id,
            },
        )

    def notify_payment_success(self, order, customer, payment_id: str | None) -> int:
        if customer is None:
            return self._skip("payment_success")
        return self._notify(
            "payment_success",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "totalAmount": str(order.total_amount),
                "currency": order.currency,
                "paymentId": payment_id,
                "paymentMethod": "Online",
                "orderUrl": self._order_url(order),
            },
            push_data={
                "title": "Payment Successful",
                "body": f"Payment for order {order.order_number} was successful",
                "orderNumber": order.order_number,
                "orderId": order.id,
            },
        )

    def notify_payment_failed(self, order, customer, message: str = "Payment processing failed") -> int:
        if customer is None:
            return self._skip("payment_failed")
        return self._notify(
            "payment_failed",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "totalAmount": str(order.total_amount),
                "currency": order.currency,
                "errorMessage": message,
                "retryUrl": f"{self._order_url(order)}/payment",
            },
            push_data={
                "title": "Payment Failed",
                "body": f"Payment for order {order.order_number} failed. Please try again.",
                "orderNumber": order.order_number,
                "orderId": order.id,
            },
        )

    def notify_order_shipped(self, order, customer) -> int:
        if customer is None:
            return self._skip("order_shipped")
        now = datetime.now(timezone.utc)
        tracking_number = f"TRK{int(now.timestamp() * 1000)}"
        return self._notify(
            "order_shipped",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "trackingNumber": tracking_number,
                "carrier": "Standard Shipping",
                "estimatedDelivery": (now + timedelta(days=3)).date().isoformat(),
                "orderUrl": self._order_url(order),
            },
            push_data={
                "title": "Order Shipped",
                "body": f"Your order {order.order_number} has been shipped",
                "orderNumber": order.order_number,
                "orderId": order.id,
                "trackingNumber": tracking_number,
            },
        )

    def notify_order_delivered(self, order, customer) -> int:
        if customer is None:
            return self._skip("order_delivered")
        return self._notify(
            "order_delivered",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "deliveredAt": datetime.now(timezone.utc).isoformat(),
                "orderUrl": self._order_url(order),
                "reviewUrl": f"{self._order_url(order)}/review",
            },
            push_data={
                "title": "Order Delivered",
                "body": f"Your order {order.order_number} has been delivered",
                "orderNumber": order.order_number,
                "orderId": order.id,
            },
        )

    def notify_order_cancelled(self, order, customer, reason: str | None = None) -> int:
        if customer is None:
            return self._skip("order_cancelled")
        return self._notify(
            "order_cancelled",
            customer,
            email_data={
                "customerName": customer.name,
                "orderNumber": order.order_number,
                "totalAmount": str(order.total_amount),
                "currency": order.currency,
                "reason": reason or "Order cancelled as requested",
                "refundInfo": (
                    "Refund will be processed within 5-7 business days"
                    if order.refund_required
                    else None
                ),
            },
            push_data={
                "title": "Order Cancelled",
                "body": f"Your order {order.order_number} has been cancelled",
                "orderNumber": order.order_number,
                "orderId": order.id,
            },
        )

    # -------------------------------------------------

    @staticmethod
    def _skip(event: str) -> int:
        logger.warning(f"Skipping {event} notification - customer not found")
        return 0

    @staticmethod
    def _order_url(order) -> str:
        return f"{FRONTEND_URL}/orders/{order.id}"

    def _notify(self, event: str, customer, email_data: Dict[str, Any], push_data: Dict[str, Any]) -> int:
        """Zwraca ile wiadomosci udalo sie wrzucic do kolejki."""
        messages: List[tuple] = []
        if customer.email:
            messages.append(("email", customer.email, email_data))
        if customer.push_token:
            messages.append(("push", customer.push_token, push_data))

        template = TEMPLATES[event]
        queued = 0
        for channel, recipient, data in messages:
            try:
                deliver_notification_task.delay(channel, template, recipient, data)
                queued += 1
            except Exception as e:
                logger.warning(
                    f"Failed to queue {event} notification via {channel} "
                    f"for {mask_recipient(recipient)}: {e}"
                )
        return queued


@celery_app.task(name="app.services.notification_service.deliver_notification_task")
def deliver_notification_task(channel: str, template: str, recipient: str, data: dict):
    """
    Celery task - w prawdziwym systemie provider email (SES/SendGrid) albo push (FCM).
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] {channel}:{template} -> {mask_recipient(recipient)}")
    return {"channel": channel, "template": template, "status": "sent"}
