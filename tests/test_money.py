from decimal import Decimal

import pytest

from app.domain.money import (
    compute_order_totals,
    from_minor_units,
    line_total,
    price_drift,
    price_drift_exceeded,
    to_minor_units,
    to_money,
)


@pytest.mark.parametrize(
    "subtotal, tax, shipping, total",
    [
        ("0.01", "0.00", "10.00", "10.01"),
        ("100.00", "8.00", "10.00", "118.00"),
        ("100.01", "8.00", "0.00", "108.01"),
        ("999.99", "80.00", "0.00", "1079.99"),
    ],
)
def test_order_totals_around_free_shipping_threshold(subtotal, tax, shipping, total):
    totals = compute_order_totals(Decimal(subtotal))

    assert totals.subtotal == Decimal(subtotal)
    assert totals.tax_amount == Decimal(tax)
    assert totals.shipping_amount == Decimal(shipping)
    assert totals.discount_amount == Decimal("0.00")
    assert totals.total_amount == Decimal(total)


def test_totals_add_up():
    totals = compute_order_totals("180.00")
    assert totals.total_amount == (
        totals.subtotal + totals.tax_amount + totals.shipping_amount - totals.discount_amount
    )


def test_to_money_rounds_half_up_and_handles_floats():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money("2.344") == Decimal("2.34")
    assert to_money(0.1 + 0.2) == Decimal("0.30")
    assert to_money(7) == Decimal("7.00")


def test_line_total():
    assert line_total(Decimal("19.99"), 3) == Decimal("59.97")


def test_minor_units():
    assert to_minor_units(Decimal("53.20")) == 5320
    assert to_minor_units("0.01") == 1
    assert to_minor_units(0.29) == 29
    assert from_minor_units(1079_99) == Decimal("1079.99")


def test_price_drift_boundary():
    # dokladnie 10% nie blokuje
    assert price_drift("22.00", "20.00") == Decimal("0.1")
    assert not price_drift_exceeded("22.00", "20.00")
    assert not price_drift_exceeded("18.00", "20.00")
    assert price_drift_exceeded("22.01", "20.00")
    assert price_drift_exceeded("17.99", "20.00")


def test_price_drift_from_zero_snapshot():
    assert not price_drift_exceeded("0.00", "0.00")
    assert price_drift_exceeded("0.01", "0.00")
