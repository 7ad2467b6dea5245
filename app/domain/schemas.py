# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from app.domain.money import MAX_LINE_QUANTITY
from app.domain.order_status import OrderStatus


class MessageOut(BaseModel):
    message: str


# ---------- cart ----------

class CartItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0)
    store_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1, le=MAX_LINE_QUANTITY)


class CartItemUpdate(BaseModel):
    """quantity 0 usuwa pozycje."""

    quantity: int = Field(..., ge=0, le=MAX_LINE_QUANTITY)


class CartLineOut(BaseModel):
    id: int
    cart_id: int
    product_id: int
    store_id: int
    quantity: int
    price_snapshot: Decimal
    line_total: Decimal
    product_name: str
    product_sku: str | None = None
    product_status: str
    store_name: str
    store_code: str
    available_stock: int
    current_price: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartSummaryOut(BaseModel):
    total_items: int
    subtotal: Decimal
    currency: str


class CartOut(BaseModel):
    id: int
    customer_id: int
    items: List[CartLineOut]
    summary: CartSummaryOut
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartValidationOut(BaseModel):
    valid: bool
    issues: List[str]
    cart_summary: CartSummaryOut


# ---------- orders ----------

class OrderCreate(BaseModel):
    """Schema dla tworzenia zamówienia."""

    shipping_address_id: int = Field(..., gt=0)
    notes: str | None = Field(None, max_length=500)


class OrderCancelIn(BaseModel):
    reason: str | None = Field(None, max_length=255)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    store_id: int
    product_name: str
    product_sku: str | None = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    store_name: str | None = None
    store_code: str | None = None
    #stan produktu w katalogu teraz, nie w chwili zamowienia
    current_product_status: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ShippingAddressOut(BaseModel):
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str | None = None
    country: str
    postal_code: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    customer_id: int
    customer_name: str | None = None
    customer_email: str | None = None
    shipping_address_id: int
    status: OrderStatus
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    currency: str
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    payment_completed_at: datetime | None = None
    refund_required: bool = False
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []
    shipping_address: ShippingAddressOut | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderSummaryOut(BaseModel):
    id: int
    order_number: str
    customer_id: int
    customer_name: str | None = None
    customer_email: str | None = None
    status: OrderStatus
    total_amount: Decimal
    currency: str
    item_count: int
    created_at: datetime
    updated_at: datetime


# ---------- payments ----------

class PaymentInitOut(BaseModel):
    order: OrderOut
    key_id: str
    gateway_order_id: str
    amount: int
    currency: str

    model_config = ConfigDict(from_attributes=True)


class PaymentVerifyIn(BaseModel):
    gateway_payment_id: str = Field(..., min_length=1, max_length=100)
    signature: str = Field(..., min_length=1, max_length=255)


class WebhookOut(BaseModel):
    status: str
