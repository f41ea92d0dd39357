from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

import httpx

from ..config import PayPalSettings
from ..entities import (
    PaymentIntent,
    PaymentIntentRequest,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    RefundResponse,
)
from .vendor import USER_AGENT, VendorClient

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds before the vendor says so.
TOKEN_EXPIRY_MARGIN = 60


def format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class PayPalProvider(VendorClient):
    """Payment adapter for a PayPal-style REST API.

    Calls authenticate with a client-credentials OAuth token that is cached
    and refreshed transparently. A payment is two calls: create the checkout
    order, then capture it.
    """

    vendor = "paypal"

    def __init__(
        self,
        settings: PayPalSettings,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(settings.base_url, settings.timeout, client)
        self._client_id = settings.client_id
        self._client_secret = settings.client_secret
        self._clock = clock
        self._token_lock = threading.Lock()
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/json"
        headers["Authorization"] = f"Bearer {self._ensure_token()}"
        return headers

    def _ensure_token(self) -> str:
        with self._token_lock:
            if self._access_token and self._clock() < self._token_expires_at:
                return self._access_token

        # The exchange runs outside the lock; concurrent callers may refresh redundantly.
        token, expires_in = self._request_token()
        with self._token_lock:
            self._access_token = token
            self._token_expires_at = self._clock() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        return token

    def _request_token(self) -> tuple[str, int]:
        operation = "token_refresh"
        logger.info("Requesting access token provider=paypal")
        payload = self._call(
            operation,
            "POST",
            "/v1/oauth2/token",
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
        )
        token = self._field(payload, "access_token", operation=operation)
        expires_in = self._field(payload, "expires_in", (int, float), operation=operation)
        return token, int(expires_in)

    def process_payment(self, request: PaymentRequest) -> PaymentResponse:
        logger.info(
            "Processing payment provider=paypal order_id=%s amount=%s currency=%s",
            request.order_id,
            request.amount,
            request.currency,
        )
        purchase_unit = self._purchase_unit(request.amount, request.currency, request.description)
        purchase_unit["reference_id"] = request.order_id
        order = self._call(
            "create_order",
            "POST",
            "/v2/checkout/orders",
            expected=(201,),
            json={"intent": "CAPTURE", "purchase_units": [purchase_unit]},
        )
        order_id = self._field(order, "id", operation="create_order")
        # Captured immediately; there is no buyer-approval step in between.
        return self._capture_order(order_id)

    def _capture_order(self, order_id: str) -> PaymentResponse:
        operation = "capture_order"
        payload = self._call(
            operation,
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            expected=(201,),
            json={},
        )
        unit = self._first(payload, "purchase_units", operation)
        payments = self._field(unit, "payments", dict, operation=operation)
        capture = self._first(payments, "captures", operation)
        amount = self._field(capture, "amount", dict, operation=operation)
        response = PaymentResponse(
            id=self._field(capture, "id", operation=operation),
            status=self._field(capture, "status", operation=operation),
            amount=self._decimal(self._field(amount, "value", operation=operation), operation=operation),
            currency=self._field(amount, "currency_code", operation=operation),
            transaction_id=self._field(payload, "id", operation=operation),
            created_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Payment captured payment_id=%s status=%s amount=%s",
            response.id,
            response.status,
            response.amount,
        )
        return response

    def refund_payment(self, payment_id: str) -> RefundResponse:
        logger.info("Processing refund provider=paypal payment_id=%s", payment_id)
        operation = "refund_payment"
        payload = self._call(
            operation,
            "POST",
            f"/v2/payments/captures/{payment_id}/refund",
            expected=(201,),
            json={},
        )
        amount = self._field(payload, "amount", dict, operation=operation)
        return RefundResponse(
            id=self._field(payload, "id", operation=operation),
            payment_id=payment_id,
            amount=self._decimal(self._field(amount, "value", operation=operation), operation=operation),
            status=self._field(payload, "status", operation=operation),
            created_at=datetime.now(timezone.utc),
        )

    def get_payment_status(self, payment_id: str) -> PaymentStatus:
        logger.info("Getting payment status provider=paypal payment_id=%s", payment_id)
        operation = "get_payment_status"
        payload = self._call(operation, "GET", f"/v2/payments/captures/{payment_id}")
        amount = self._field(payload, "amount", dict, operation=operation)
        return PaymentStatus(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            amount=self._decimal(self._field(amount, "value", operation=operation), operation=operation),
            updated_at=datetime.now(timezone.utc),
        )

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent:
        logger.info(
            "Creating payment intent provider=paypal customer_id=%s amount=%s currency=%s",
            request.customer_id,
            request.amount,
            request.currency,
        )
        operation = "create_payment_intent"
        payload = self._call(
            operation,
            "POST",
            "/v2/checkout/orders",
            expected=(201,),
            json={
                "intent": "CAPTURE",
                "purchase_units": [
                    self._purchase_unit(request.amount, request.currency, request.description)
                ],
            },
        )
        approval_url = None
        for link in payload.get("links") or []:
            if isinstance(link, dict) and link.get("rel") == "approve":
                approval_url = link.get("href")
                break
        if not isinstance(approval_url, str):
            raise self._error(operation, "malformed response: no approval link")
        return PaymentIntent(
            id=self._field(payload, "id", operation=operation),
            client_secret=approval_url,
            status=self._field(payload, "status", operation=operation),
        )

    @staticmethod
    def _purchase_unit(amount: Decimal, currency: str, description: str) -> dict:
        return {
            "amount": {"currency_code": currency, "value": format_amount(amount)},
            "description": description,
        }

    def _first(self, payload: dict, key: str, operation: str) -> dict:
        items = self._field(payload, key, list, operation=operation)
        if not items or not isinstance(items[0], dict):
            raise self._error(operation, f"malformed response: {key!r} is empty")
        return items[0]
