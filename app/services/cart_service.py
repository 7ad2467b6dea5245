from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    ProductUnavailableError,
    ValidationFailedError,
)
from app.domain.money import MAX_LINE_QUANTITY, line_total, to_money
from app.repos.cart_repo import CartRepo, CartLineRow
from app.repos.catalog_repo import CatalogRepo
from app.utils.retry import unique_conflict_retry
from app.utils.settings import DEFAULT_CURRENCY
from app.utils.logging import get_logger

logger = get_logger(__name__)


def live_price(product_store, product) -> Decimal:
    #cena sklepu jesli ustawiona, inaczej cena bazowa produktu
    if product_store is not None and product_store.price is not None:
        return to_money(product_store.price)
    return to_money(product.price)


class CartService:
    """
    Prosta implementacja cqrs i proste use case dla domeny cart
    commands (add, update, remove, clear) modyfikuja stan
    query (get) tylko odczyt, zlaczone z aktualnym katalogiem
    """

    def __init__(self, db: Session, currency: str = DEFAULT_CURRENCY):
        self.db = db
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.currency = currency

    #query - odczyt
    def get_cart(self, customer_id: int) -> Dict[str, Any]:
        cart = self.get_or_create_cart(customer_id)
        lines = [self._line_view(row) for row in self.repo.get_lines(cart.id)]

        return {
            "id": cart.id,
            "customer_id": cart.customer_id,
            "items": lines,
            "summary": self._summary(lines),
            "created_at": cart.created_at,
            "updated_at": cart.updated_at,
        }

    def get_line(self, cart_id: int, item_id: int) -> Dict[str, Any]:
        rows = self.repo.get_lines(cart_id, item_id=item_id)
        if not rows:
            raise NotFoundError("Cart item not found")
        return self._line_view(rows[0])

    #commands
    def get_or_create_cart(self, customer_id: int) -> CartModel:
        existing = self.repo.get_cart_by_customer(customer_id)
        if existing:
            return existing

        try:
            with transaction(self.db):
                created = self.repo.create_cart(CartModel(customer_id=customer_id))
        except IntegrityError:
            #ktos rownolegle utworzyl koszyk, unique(customer_id) wygral
            logger.info(f"Cart for customer {customer_id} created concurrently, re-reading")
            return self.repo.get_cart_by_customer(customer_id)

        logger.info(f"Created cart {created.id} for customer {customer_id}")
        return created

    @unique_conflict_retry()
    def add_item(
        self,
        customer_id: int,
        product_id: int,
        store_id: int,
        quantity: int = 1,
    ) -> Dict[str, Any]:

        # Walidacje
        if quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise ValidationFailedError(f"Quantity must be between 1 and {MAX_LINE_QUANTITY}")

        product = self.catalog.get_active_product(product_id)
        if not product:
            raise NotFoundError("Product not found or inactive")

        store = self.catalog.get_store(store_id)
        if not store:
            raise NotFoundError("Store not found")

        product_store = self.catalog.get_product_store(product_id, store_id)
        if not product_store:
            raise ProductUnavailableError("Product not available in this store")

        if product_store.stock < quantity:
            raise InsufficientStockError(product_store.stock)

        cart = self.get_or_create_cart(customer_id)
        price = live_price(product_store, product)

        with transaction(self.db):
            existing_item = self.repo.get_item_by_product_store(cart.id, product_id, store_id)

            if existing_item:
                new_quantity = existing_item.quantity + quantity

                if new_quantity > MAX_LINE_QUANTITY:
                    raise ValidationFailedError(
                        f"Cannot add {quantity} items. Line quantity is limited to {MAX_LINE_QUANTITY}"
                    )
                if new_quantity > product_store.stock:
                    raise InsufficientStockError(
                        product_store.stock,
                        f"Cannot add {quantity} items. Total would exceed available stock "
                        f"({product_store.stock})",
                    )

                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing_item.quantity} -> {new_quantity}"
                )
                existing_item.quantity = new_quantity
                #refresh on merge - snapshot dostaje aktualna cene
                existing_item.price_snapshot = price
                item = existing_item
            else:
                logger.info(f"Adding product {product_id} from store {store_id} to cart {cart.id}")
                item = self.repo.add_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        store_id=store_id,
                        quantity=quantity,
                        price_snapshot=price,
                    )
                )

            self.repo.touch_cart(cart.id)
            item_id = item.id

        return self.get_line(cart.id, item_id)

    def update_item(self, customer_id: int, item_id: int, quantity: int) -> Dict[str, Any] | None:
        """quantity 0 = usuniecie, wtedy zwraca None."""
        if quantity <= 0:
            self.remove_item(customer_id, item_id)
            return None

        if quantity > MAX_LINE_QUANTITY:
            raise ValidationFailedError(f"Quantity must be between 0 and {MAX_LINE_QUANTITY}")

        cart = self.get_or_create_cart(customer_id)

        with transaction(self.db):
            item = self.repo.get_item(item_id, cart.id)
            if not item:
                raise NotFoundError("Cart item not found")

            product_store = self.catalog.get_product_store(item.product_id, item.store_id)
            available = product_store.stock if product_store else 0
            if available < quantity:
                raise InsufficientStockError(available)

            item.quantity = quantity
            self.repo.touch_cart(cart.id)

        logger.info(f"Cart item {item_id} quantity set to {quantity}")
        return self.get_line(cart.id, item_id)

    def remove_item(self, customer_id: int, item_id: int) -> None:
        cart = self.get_or_create_cart(customer_id)

        with transaction(self.db):
            deleted = self.repo.delete_item(item_id, cart.id)
            if not deleted:
                raise NotFoundError("Cart item not found")
            self.repo.touch_cart(cart.id)

        logger.info(f"Cart item {item_id} removed from cart {cart.id}")

    def clear_cart(self, customer_id: int) -> int:
        cart = self.get_or_create_cart(customer_id)

        with transaction(self.db):
            deleted = self.repo.delete_items(cart.id)
            self.repo.touch_cart(cart.id)

        logger.info(f"Cart {cart.id} cleared ({deleted} items)")
        return deleted

    # -------------------------------------------------

    @staticmethod
    def _line_view(row: CartLineRow) -> Dict[str, Any]:
        item, product, store, product_store = row
        price_snapshot = to_money(item.price_snapshot)

        return {
            "id": item.id,
            "cart_id": item.cart_id,
            "product_id": item.product_id,
            "store_id": item.store_id,
            "quantity": item.quantity,
            "price_snapshot": price_snapshot,
            "line_total": line_total(price_snapshot, item.quantity),
            "product_name": product.name,
            "product_sku": product.sku,
            "product_status": product.status,
            "store_name": store.name,
            "store_code": store.code,
            "available_stock": product_store.stock if product_store else 0,
            "current_price": live_price(product_store, product),
            "created_at": item.created_at,
            "updated_at": item.updated_at,
        }

    def _summary(self, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        subtotal = sum((l["price_snapshot"] * l["quantity"] for l in lines), Decimal("0.00"))
        return {
            "total_items": sum(l["quantity"] for l in lines),
            "subtotal": to_money(subtotal),
            "currency": self.currency,
        }
