# app/services/checkout_validator.py
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.domain.errors import EmptyCartError
from app.domain.money import price_drift_exceeded
from app.services.cart_service import CartService
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CartValidation:
    valid: bool
    issues: List[str] = field(default_factory=list)
    cart: Dict[str, Any] = field(default_factory=dict)


class CheckoutValidator:
    """
    Sprawdza koszyk wzgledem aktualnego katalogu przed checkoutem:
    produkt aktywny, stan magazynowy, dryf ceny wzgledem snapshotu (> 10% blokuje).
    Sprawdza wszystkie pozycje, nie konczy na pierwszym problemie.
    """

    def __init__(self, cart_service: CartService):
        self.cart_service = cart_service

    def validate(self, customer_id: int) -> CartValidation:
        cart = self.cart_service.get_cart(customer_id)

        if not cart["items"]:
            raise EmptyCartError()

        issues = []
        for item in cart["items"]:
            issues.extend(self.check_line(item))

        if issues:
            logger.info(f"Cart {cart['id']} failed checkout validation: {len(issues)} issue(s)")

        return CartValidation(valid=not issues, issues=issues, cart=cart)

    @staticmethod
    def check_line(item: Dict[str, Any]) -> List[str]:
        name = item["product_name"]

        #niedostepny produkt - stan i cena nie maja juz znaczenia
        if item["product_status"] != "active":
            return [f'Product "{name}" is no longer available']

        issues = []
        available = item["available_stock"] or 0
        if available < item["quantity"]:
            issues.append(
                f'Insufficient stock for "{name}" in {item["store_name"]}. Available: {available}'
            )

        if price_drift_exceeded(item["current_price"], item["price_snapshot"]):
            issues.append(
                f'Price changed for "{name}". Current: ${item["current_price"]}, '
                f'Cart: ${item["price_snapshot"]}'
            )
        return issues
