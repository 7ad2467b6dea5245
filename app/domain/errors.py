# app/domain/errors.py
from typing import Any, Dict, List


class AppError(Exception):
    """
    Blad operacyjny - komunikat mozna bezpiecznie pokazac klientowi.
    Wszystko inne (baza, bug) leci jako generyczne 500.
    """

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

    def extra(self) -> Dict[str, Any]:
        return {}


class NotFoundError(AppError):
    status_code = 404


class ValidationFailedError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class ConcurrencyConflictError(AppError):
    status_code = 409


class InsufficientStockError(AppError):
    status_code = 400

    def __init__(self, available: int, message: str | None = None):
        super().__init__(message or f"Insufficient stock. Available: {available}")
        self.available = available

    def extra(self):
        return {"available": self.available}


class ProductUnavailableError(AppError):
    status_code = 400


class EmptyCartError(AppError):
    status_code = 400

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class CheckoutBlockedError(AppError):
    status_code = 400

    def __init__(self, issues: List[str]):
        super().__init__(f"Cart validation failed: {', '.join(issues)}")
        self.issues = list(issues)

    def extra(self):
        return {"issues": self.issues}


class InvalidTransitionError(AppError):
    status_code = 400

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot transition from {current} to {requested}")
        self.current = current
        self.requested = requested

    def extra(self):
        return {"current_status": self.current, "requested_status": self.requested}


class InvalidStateError(AppError):
    status_code = 400


class InvalidSignatureError(AppError):
    status_code = 400


class PaymentVerificationFailedError(AppError):
    status_code = 400

    def __init__(self, message: str = "Payment verification failed"):
        super().__init__(message)


class GatewayUnavailableError(AppError):
    status_code = 500

    def __init__(self, message: str = "Payment service not configured"):
        super().__init__(message)


class GatewayError(AppError):
    status_code = 502
