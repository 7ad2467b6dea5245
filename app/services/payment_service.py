# app/services/payment_service.py
import json
from typing import Any, Callable, Dict

from app.data.database import transaction
from app.data.models.order import OrderModel
from app.domain.errors import (
    InvalidSignatureError,
    InvalidStateError,
    PaymentVerificationFailedError,
    ValidationFailedError,
)
from app.domain.money import to_minor_units
from app.domain.order_status import OrderStatus, PAYABLE_STATUSES
from app.repos.order_repo import OrderRepo
from app.services.order_service import OrderService
from app.services.payment_gateway import PaymentGatewayClient
from app.utils.logging import get_logger

logger = get_logger(__name__)

PROCESSED = {"status": "processed"}
IGNORED = {"status": "ignored"}


class PaymentService:
    """
    Przeplyw platnosci:
    CREATED -(initiate)-> PAYMENT_PENDING -(verify ok)-> PAID
                                          -(verify zly podpis)-> FAILED -(initiate)-> PAYMENT_PENDING
    plus webhooki bramki (at-least-once, wiec handlery sa idempotentne).
    """

    def __init__(self, order_service: OrderService, gateway: PaymentGatewayClient):
        self.orders = order_service
        self.repo = OrderRepo(order_service.db)
        self.gateway = gateway

    def initiate_payment(self, order_id: int, customer_id: int) -> Dict[str, Any]:
        order = self.orders.get_order(order_id, customer_id)

        if OrderStatus(order.status) not in PAYABLE_STATUSES:
            raise InvalidStateError("Order is not in a state that allows payment initiation")

        amount = to_minor_units(order.total_amount)
        gateway_order = self.gateway.create_order(
            amount=amount,
            currency=order.currency,
            receipt=order.order_number,
            notes={"order_id": order.id, "customer_id": customer_id},
        )

        #ponowna proba po FAILED dostaje nowe zamowienie w bramce
        order = self.orders.transition(
            order,
            OrderStatus.PAYMENT_PENDING,
            gateway_order_id=gateway_order["id"],
            gateway_payment_id=None,
            gateway_signature=None,
        )
        logger.info(f"Payment initiated for order {order.id}, gateway order {gateway_order['id']}")

        #sekret nigdy nie wychodzi do klienta, tylko publiczny key id
        return {
            "order": order,
            "key_id": self.gateway.key_id,
            "gateway_order_id": gateway_order["id"],
            "amount": gateway_order.get("amount", amount),
            "currency": gateway_order.get("currency", order.currency),
        }

    def verify_payment(self, order_id: int, customer_id: int, gateway_payment_id: str, signature: str) -> OrderModel:
        order = self.orders.get_order(order_id, customer_id)

        #ponowna weryfikacja oplaconego zamowienia jest odrzucana
        if order.status != OrderStatus.PAYMENT_PENDING.value:
            raise InvalidStateError("Order is not awaiting payment")

        if not order.gateway_order_id:
            raise InvalidStateError("No gateway order found for this order")

        is_valid = self.gateway.verify_payment_signature(
            gateway_order_id=order.gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            signature=signature,
        )

        if not is_valid:
            failed = self.orders.transition(order, OrderStatus.FAILED)
            self.orders.notify_status(failed)
            raise PaymentVerificationFailedError()

        return self._mark_paid(order, gateway_payment_id, signature)

    def _mark_paid(self, order: OrderModel, gateway_payment_id: str | None, signature: str | None = None) -> OrderModel:
        fields = {"gateway_payment_id": gateway_payment_id}
        if signature is not None:
            fields["gateway_signature"] = signature

        paid = self.orders.transition(order, OrderStatus.PAID, **fields)
        self.orders.notify("payment_success", paid, gateway_payment_id)
        return paid

    # =====================================================
    # WEBHOOK
    # =====================================================
    def handle_webhook(self, body: bytes, signature: str | None) -> Dict[str, str]:
        #podpis sprawdzany na surowym body, przed parsowaniem i logika
        if not signature:
            raise InvalidSignatureError("Missing signature")

        if not self.gateway.verify_webhook_signature(body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise InvalidSignatureError("Invalid signature")

        try:
            event = json.loads(body)
        except ValueError as e:
            raise ValidationFailedError("Malformed webhook payload") from e

        if not isinstance(event, dict):
            raise ValidationFailedError("Malformed webhook payload")

        event_type = event.get("event")
        handlers: Dict[str, Callable[[dict], Dict[str, str]]] = {
            "payment.captured": self._on_payment_captured,
            "payment.failed": self._on_payment_failed,
            "order.paid": self._on_order_paid,
            "refund.created": self._on_refund_created,
        }

        #typ spoza slownika (lista, liczba) traktujemy jak nieznany event
        handler = handlers.get(event_type) if isinstance(event_type, str) else None
        if handler is None:
            #zestaw eventow bramki zmienia sie niezaleznie od nas
            logger.info(f"Unhandled webhook event: {event_type}")
            return IGNORED

        payload = event.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValidationFailedError("Malformed webhook payload")

        logger.info(f"Processing webhook {event_type}")
        return handler(payload)

    @staticmethod
    def _entity(payload: dict, kind: str) -> dict:
        try:
            entity = payload[kind]["entity"]
        except (KeyError, TypeError) as e:
            raise ValidationFailedError(f"Malformed webhook payload: missing {kind} entity") from e
        if not isinstance(entity, dict):
            raise ValidationFailedError(f"Malformed webhook payload: missing {kind} entity")
        return entity

    def _order_for_gateway_order(self, gateway_order_id: str | None) -> OrderModel | None:
        if not gateway_order_id:
            return None
        order = self.repo.get_by_gateway_order_id(gateway_order_id)
        if order is None:
            logger.info(f"Webhook for unknown gateway order {gateway_order_id}")
        return order

    def _settle_paid(self, order: OrderModel, gateway_payment_id: str | None) -> Dict[str, str]:
        status = OrderStatus(order.status)
        if status is OrderStatus.PAYMENT_PENDING:
            self._mark_paid(order, gateway_payment_id)
        else:
            #powtorzona dostawa albo verify byl pierwszy
            logger.info(f"Order {order.id} already {status.value}, paid webhook is a no-op")
        return PROCESSED

    def _on_payment_captured(self, payload: dict) -> Dict[str, str]:
        payment = self._entity(payload, "payment")
        order = self._order_for_gateway_order(payment.get("order_id"))
        if order is None:
            return IGNORED

        logger.info(f"Payment captured: {payment.get('id')}")
        return self._settle_paid(order, payment.get("id"))

    def _on_order_paid(self, payload: dict) -> Dict[str, str]:
        gateway_order = self._entity(payload, "order")
        order = self._order_for_gateway_order(gateway_order.get("id"))
        if order is None:
            return IGNORED

        #payment jest opcjonalny, ale jak przyszedl to musi miec entity
        payment = self._entity(payload, "payment") if payload.get("payment") is not None else {}
        logger.info(f"Order paid: {gateway_order.get('id')}")
        return self._settle_paid(order, payment.get("id"))

    def _on_payment_failed(self, payload: dict) -> Dict[str, str]:
        payment = self._entity(payload, "payment")
        order = self._order_for_gateway_order(payment.get("order_id"))
        if order is None:
            return IGNORED

        logger.info(f"Payment failed: {payment.get('id')}")
        if order.status == OrderStatus.PAYMENT_PENDING.value:
            failed = self.orders.transition(order, OrderStatus.FAILED)
            self.orders.notify_status(failed)
        return PROCESSED

    def _on_refund_created(self, payload: dict) -> Dict[str, str]:
        refund = self._entity(payload, "refund")
        payment_id = refund.get("payment_id")
        order = self.repo.get_by_gateway_payment_id(payment_id) if payment_id else None
        if order is None:
            logger.info(f"Refund {refund.get('id')} for unknown payment {payment_id}")
            return IGNORED

        logger.info(f"Refund created: {refund.get('id')} for order {order.id}")
        if order.refund_required:
            with transaction(self.orders.db):
                self.repo.set_refund_required(order.id, False)
            logger.info(f"Order {order.id} manual refund flag cleared")
        return PROCESSED
