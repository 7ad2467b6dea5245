# app/api/deps.py
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header

from app.domain.errors import ForbiddenError, UnauthorizedError
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.payment_gateway import PaymentGatewayClient

ADMIN_ROLES = {"admin", "superadmin"}


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


#tozsamosc ustala gateway auth przed nami i przekazuje w naglowkach
def get_current_user(
    x_user_id: int | None = Header(None),
    x_user_role: str = Header("customer"),
) -> CurrentUser:
    if x_user_id is None:
        raise UnauthorizedError("Authentication required")
    return CurrentUser(id=x_user_id, role=x_user_role.lower())


def require_customer(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "customer":
        raise ForbiddenError("Customer access required")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def require_customer_or_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "customer" and not user.is_admin:
        raise ForbiddenError("Access denied")
    return user


#wspolne zaleznosci tworzone raz na proces, serwisy per request
@lru_cache
def get_notifier() -> NotificationService:
    return NotificationService()


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient()
