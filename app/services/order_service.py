# app/services/order_service.py
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain.errors import (
    CheckoutBlockedError,
    ConcurrencyConflictError,
    EmptyCartError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.domain.money import compute_order_totals, line_total
from app.domain.order_status import CANCELLABLE_STATUSES, OrderStatus, ensure_transition
from app.repos.cart_repo import CartRepo
from app.repos.customer_repo import CustomerRepo
from app.repos.order_repo import OrderRepo
from app.services.cart_service import CartService
from app.services.checkout_validator import CheckoutValidator
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.utils.settings import DEFAULT_CURRENCY
from app.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    timestamp = str(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"ORD-{timestamp[-8:]}-{suffix}"


def _as_utc(value: datetime | None) -> datetime | None:
    #naive z query stringa traktujemy jak UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.
    Checkout (koszyk -> zamowienie), zapytania, przejscia statusu wg maszyny stanow.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationService,
        lock_service: LockService,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.customers = CustomerRepo(db)
        self.cart_service = CartService(db, currency=currency)
        self.validator = CheckoutValidator(self.cart_service)
        self.notifier = notifier
        self.lock_service = lock_service
        self.currency = currency

    # =====================================================
    # CHECKOUT
    # =====================================================
    def create_order_from_cart(self, customer_id: int, shipping_address_id: int, notes: str | None = None) -> OrderModel:
        """
        Use Case: Tworzenie zamówienia z koszyka.

        1. Adres dostawy musi nalezec do klienta
        2. Walidacja koszyka (aktywnosc, stan, dryf ceny)
        3. Jedna transakcja: order + snapshot pozycji + oproznienie koszyka
        4. Powiadomienie (best effort)
        """
        address = self.customers.get_address(shipping_address_id, customer_id)
        if not address:
            raise NotFoundError("Shipping address not found")

        cart = self.cart_service.get_or_create_cart(customer_id)

        with self.lock_service.hold(LockService.checkout_key(cart.id)):
            validation = self.validator.validate(customer_id)
            if not validation.valid:
                raise CheckoutBlockedError(validation.issues)

            lines = validation.cart["items"]
            totals = compute_order_totals(validation.cart["summary"]["subtotal"])

            try:
                with transaction(self.db):
                    order_id = self._materialize_order(
                        customer_id, shipping_address_id, notes, cart.id, lines, totals
                    )
            except IntegrityError as e:
                logger.warning(f"Checkout for customer {customer_id} hit a constraint: {e.orig}")
                raise ConcurrencyConflictError(
                    "Checkout conflicted with a concurrent update, please retry"
                ) from e

        order = self.get_order(order_id, customer_id)
        logger.info(f"Order {order.order_number} ({order.id}) created from cart {cart.id}")

        self.notify("order_created", order)
        return order

    def _materialize_order(self, customer_id, shipping_address_id, notes, cart_id, lines, totals) -> int:
        #row lock na koszyku, drugi checkout czeka az ten skonczy
        self.cart_repo.get_cart_by_customer(customer_id, for_update=True)

        #koszyk mogl sie zmienic od walidacji
        current = {(i.id, i.quantity) for i in self.cart_repo.get_items(cart_id)}
        validated = {(l["id"], l["quantity"]) for l in lines}
        if not current:
            raise EmptyCartError()
        if current != validated:
            raise ConcurrencyConflictError("Cart changed during checkout, please retry")

        order = self.repo.create_order(
            OrderModel(
                order_number=self._allocate_order_number(),
                customer_id=customer_id,
                shipping_address_id=shipping_address_id,
                status=OrderStatus.CREATED.value,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                shipping_amount=totals.shipping_amount,
                discount_amount=totals.discount_amount,
                total_amount=totals.total_amount,
                currency=self.currency,
                notes=notes,
            )
        )

        self.repo.add_items(
            OrderItemModel(
                order_id=order.id,
                product_id=l["product_id"],
                store_id=l["store_id"],
                product_name=l["product_name"],
                product_sku=l["product_sku"],
                quantity=l["quantity"],
                unit_price=l["price_snapshot"],
                total_price=line_total(l["price_snapshot"], l["quantity"]),
            )
            for l in lines
        )

        self.cart_repo.delete_items(cart_id)
        self.cart_repo.touch_cart(cart_id)
        return order.id

    def _allocate_order_number(self) -> str:
        #unique constraint i tak pilnuje, to tylko zeby kolizja nie konczyla checkoutu
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            if not self.repo.order_number_exists(number):
                return number
            logger.warning(f"Order number collision on {number}, regenerating")
        raise ConcurrencyConflictError("Could not allocate a unique order number, please retry")

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int, customer_id: int | None = None) -> OrderModel:
        """customer_id=None - widok admina, bez sprawdzania wlasciciela."""
        order = self.repo.get_order(order_id, customer_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_orders(
        self,
        customer_id: int | None = None,
        status: OrderStatus | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Filtr dat po created_at, obie granice wlacznie."""
        from_date, to_date = _as_utc(from_date), _as_utc(to_date)
        if from_date and to_date and to_date < from_date:
            raise ValidationFailedError("to_date must not be earlier than from_date")

        rows = self.repo.list_orders(
            customer_id=customer_id,
            status=status.value if status else None,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
        return [
            {
                "id": order.id,
                "order_number": order.order_number,
                "customer_id": order.customer_id,
                "customer_name": customer_name,
                "customer_email": customer_email,
                "status": order.status,
                "total_amount": order.total_amount,
                "currency": order.currency,
                "item_count": item_count or 0,
                "created_at": order.created_at,
                "updated_at": order.updated_at,
            }
            for order, item_count, customer_name, customer_email in rows
        ]

    # =====================================================
    # STATE MACHINE
    # =====================================================
    def transition(self, order: OrderModel, target: OrderStatus, **fields) -> OrderModel:
        """
        Jedyne miejsce ktore zmienia status.
        fields - jawna lista dodatkowych kolumn (gateway ids, notes, refund_required).
        """
        current = OrderStatus(order.status)
        target = ensure_transition(current, target)

        now = datetime.now(timezone.utc)
        new_data = {
            "status": target.value,
            "version": order.version + 1,
            "updated_at": now,
        }
        if target is OrderStatus.PAID and order.payment_completed_at is None:
            new_data["payment_completed_at"] = now
        if target is OrderStatus.CANCELLED:
            #zaplacone = trzeba zwrocic recznie, automatycznego refundu nie ma
            new_data["refund_required"] = order.payment_completed_at is not None
            if new_data["refund_required"]:
                logger.warning(
                    f"Refund needed for order {order.id}, payment {order.gateway_payment_id} "
                    f"- flagged for manual processing"
                )
        new_data.update(fields)

        order_id = order.id
        with transaction(self.db):
            rowcount = self.repo.update_order_version(
                order_id=order_id,
                expected_status=current.value,
                old_version=order.version,
                new_data=new_data,
            )
            if rowcount == 0:
                raise ConcurrencyConflictError(
                    f"Order {order_id} was modified by another operation, please retry"
                )

        logger.info(f"Order {order_id} status {current.value} -> {target.value}")
        return self.get_order(order_id)

    def update_status(self, order_id: int, status: OrderStatus) -> OrderModel:
        """Use Case: zmiana statusu przez admina."""
        order = self.get_order(order_id)
        updated = self.transition(order, OrderStatus(status))
        self.notify_status(updated, reason="Order cancelled by admin")
        return updated

    def cancel_order(self, order_id: int, customer_id: int, reason: str | None = None) -> OrderModel:
        """Use Case: anulowanie przez klienta."""
        order = self.get_order(order_id, customer_id)
        current = OrderStatus(order.status)

        if current not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(current.value, OrderStatus.CANCELLED.value)

        notes = order.notes
        if reason:
            notes = f"{order.notes or ''}\nCancellation reason: {reason}".strip()

        cancelled = self.transition(order, OrderStatus.CANCELLED, notes=notes)
        self.notify_status(cancelled, reason=reason)
        return cancelled

    def notify_status(self, order: OrderModel, reason: str | None = None):
        """Powiadomienie pasujace do nowego statusu (SHIPPED, DELIVERED, CANCELLED, FAILED)."""
        status = OrderStatus(order.status)

        if status is OrderStatus.SHIPPED:
            self.notify("order_shipped", order)
        elif status is OrderStatus.DELIVERED:
            self.notify("order_delivered", order)
        elif status is OrderStatus.CANCELLED:
            self.notify("order_cancelled", order, reason)
        elif status is OrderStatus.FAILED:
            self.notify("payment_failed", order)

    def notify(self, event: str, order: OrderModel, *args) -> None:
        """Best effort - blad powiadomienia nie moze wywrocic operacji na zamowieniu."""
        try:
            customer = self.customers.get_customer(order.customer_id)
            getattr(self.notifier, f"notify_{event}")(order, customer, *args)
        except Exception as e:
            logger.warning(f"Failed to send {event} notification for order {order.id}: {e}")
