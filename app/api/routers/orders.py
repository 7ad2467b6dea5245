# app/api/routers/orders.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import (
    CurrentUser,
    get_lock_service,
    get_notifier,
    get_payment_gateway,
    require_admin,
    require_customer,
    require_customer_or_admin,
)
from app.data.database import get_db
from app.domain.order_status import OrderStatus
from app.domain.schemas import (
    OrderCancelIn,
    OrderCreate,
    OrderOut,
    OrderStatusUpdate,
    OrderSummaryOut,
    PaymentInitOut,
    PaymentVerifyIn,
)
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_gateway import PaymentGatewayClient
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    lock_service: LockService = Depends(get_lock_service),
) -> OrderService:
    return OrderService(db, notifier=notifier, lock_service=lock_service)


def get_payment_service(
    orders: OrderService = Depends(get_service),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
) -> PaymentService:
    return PaymentService(orders, gateway)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(require_customer),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie z koszyka klienta.
    Wysyła powiadomienie asynchronicznie.
    """
    return svc.create_order_from_cart(user.id, payload.shipping_address_id, payload.notes)


@router.get("", response_model=List[OrderSummaryOut])
def list_orders(
    status: OrderStatus | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(require_customer),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(
        customer_id=user.id,
        status=status,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )


@router.get("/admin/all", response_model=List[OrderSummaryOut])
def list_all_orders(
    status: OrderStatus | None = None,
    customer_id: int | None = Query(None, gt=0),
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _: CurrentUser = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(
        customer_id=customer_id,
        status=status,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(require_customer_or_admin),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia. Admin widzi wszystkie, klient tylko swoje.
    """
    return svc.get_order(order_id, None if user.is_admin else user.id)


@router.post("/{order_id}/payment", response_model=PaymentInitOut)
def initiate_payment(
    order_id: int,
    user: CurrentUser = Depends(require_customer),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.initiate_payment(order_id, user.id)


@router.post("/{order_id}/payment/verify", response_model=OrderOut)
def verify_payment(
    order_id: int,
    payload: PaymentVerifyIn,
    user: CurrentUser = Depends(require_customer),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.verify_payment(order_id, user.id, payload.gateway_payment_id, payload.signature)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: OrderCancelIn | None = None,
    user: CurrentUser = Depends(require_customer),
    svc: OrderService = Depends(get_service),
):
    reason = payload.reason if payload else None
    return svc.cancel_order(order_id, user.id, reason)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    _: CurrentUser = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    return svc.update_status(order_id, payload.status)
