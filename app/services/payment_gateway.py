# app/services/payment_gateway.py
import hashlib
import hmac
from typing import Any, Dict

import requests
from requests import RequestException

from app.domain.errors import GatewayError, GatewayUnavailableError
from app.utils.retry import http_retry
from app.utils.settings import (
    PAYMENT_GATEWAY_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
    GATEWAY_TIMEOUT_SECONDS,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)


def compute_signature(secret: str, message: bytes | str) -> str:
    """HMAC-SHA256 hex, tak jak liczy bramka."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _same_signature(expected: str, received: str | None) -> bool:
    #compare_digest na bajtach - str z nie-ascii rzuca TypeError
    return hmac.compare_digest(expected.encode("utf-8"), (received or "").encode("utf-8"))


class PaymentGatewayClient:
    """
    Klient bramki platnosci (api zgodne z razorpay).
    Brak kluczy nie blokuje startu - blad leci dopiero przy pierwszym uzyciu.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        timeout: int = GATEWAY_TIMEOUT_SECONDS,
    ):
        self.key_id = RAZORPAY_KEY_ID if key_id is None else key_id
        self.key_secret = RAZORPAY_KEY_SECRET if key_secret is None else key_secret
        self.webhook_secret = RAZORPAY_WEBHOOK_SECRET if webhook_secret is None else webhook_secret
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout

        if not self.configured:
            logger.warning("Payment gateway credentials not configured. Payment functionality will not work.")

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _require_configured(self):
        if not self.configured:
            raise GatewayUnavailableError()

    def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, Any] | None = None) -> dict:
        """amount w jednostkach minor (centy/paise)."""
        self._require_configured()

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            gateway_order = self._post("/orders", payload)
        except RequestException as e:
            logger.error(f"Gateway order creation failed for receipt {receipt}: {e}")
            raise GatewayError(f"Failed to create payment order: {e}") from e

        logger.info(
            f"Gateway order created: id={gateway_order.get('id')} amount={gateway_order.get('amount')} "
            f"currency={gateway_order.get('currency')} receipt={gateway_order.get('receipt')}"
        )
        return gateway_order

    @http_retry()
    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"PaymentGatewayClient POST {url}")

        resp = requests.post(
            url,
            json=payload,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def verify_payment_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        self._require_configured()

        expected = compute_signature(self.key_secret, f"{gateway_order_id}|{gateway_payment_id}")
        is_valid = _same_signature(expected, signature)

        logger.info(
            f"Payment signature verification: order={gateway_order_id} "
            f"payment={gateway_payment_id} valid={is_valid}"
        )
        return is_valid

    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        self._require_configured()

        #brak dedykowanego sekretu webhooka = sekret klucza
        secret = self.webhook_secret or self.key_secret
        expected = compute_signature(secret, body)
        return _same_signature(expected, signature)
