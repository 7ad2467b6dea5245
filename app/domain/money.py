# app/domain/money.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

#stale polityki, nie konfiguracja
TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("100.00")
FLAT_SHIPPING = Decimal("10.00")
PRICE_DRIFT_TOLERANCE = Decimal("0.10")
MAX_LINE_QUANTITY = 100


def to_money(value) -> Decimal:
    """Zaokragla do 2 miejsc (half up). float idzie przez str zeby nie ciagnac bledu binarnego."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return to_money(to_money(unit_price) * quantity)


def to_minor_units(amount) -> int:
    # 12.34 -> 1234 (centy / paise)
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(units: int) -> Decimal:
    return to_money(Decimal(units) / 100)


def price_drift(current, snapshot) -> Decimal:
    current = to_money(current)
    snapshot = to_money(snapshot)
    if snapshot == ZERO:
        return ZERO if current == ZERO else Decimal("Infinity")
    return abs(current - snapshot) / snapshot


def price_drift_exceeded(current, snapshot, tolerance: Decimal = PRICE_DRIFT_TOLERANCE) -> bool:
    return price_drift(current, snapshot) > tolerance


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def compute_order_totals(subtotal) -> OrderTotals:
    subtotal = to_money(subtotal)
    tax = to_money(subtotal * TAX_RATE)
    shipping = ZERO if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    total = to_money(subtotal + tax + shipping)

    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax,
        shipping_amount=shipping,
        discount_amount=ZERO,
        total_amount=total,
    )
