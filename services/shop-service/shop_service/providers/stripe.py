from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import httpx

from ..config import StripeSettings
from ..entities import (
    PaymentIntent,
    PaymentIntentRequest,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    RefundResponse,
)
from .vendor import VendorClient

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return Decimal(amount) / 100


class StripeProvider(VendorClient):
    """Payment adapter for a Stripe-style REST API.

    Amounts travel as integer minor units and every call authenticates with a
    static bearer key. A charge is a single synchronous call.
    """

    vendor = "stripe"

    def __init__(self, settings: StripeSettings, client: httpx.Client | None = None):
        super().__init__(settings.base_url, settings.timeout, client)
        self._api_key = settings.api_key

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def process_payment(self, request: PaymentRequest) -> PaymentResponse:
        logger.info(
            "Processing payment provider=stripe order_id=%s amount=%s currency=%s",
            request.order_id,
            request.amount,
            request.currency,
        )
        body = {
            "amount": to_minor_units(request.amount),
            "currency": request.currency,
            "description": request.description,
            "metadata": request.metadata,
        }
        if request.customer_id:
            body["customer"] = request.customer_id

        operation = "process_payment"
        payload = self._call(operation, "POST", "/charges", json=body)
        metadata = payload.get("metadata")
        response = PaymentResponse(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            amount=from_minor_units(self._field(payload, "amount", int, operation=operation)),
            currency=self._field(payload, "currency", operation=operation),
            transaction_id=self._field(payload, "balance_transaction", operation=operation),
            created_at=self._timestamp(payload, operation),
            metadata=metadata if isinstance(metadata, dict) else None,
        )
        logger.info(
            "Payment processed payment_id=%s status=%s amount=%s",
            response.id,
            response.status,
            response.amount,
        )
        return response

    def refund_payment(self, payment_id: str) -> RefundResponse:
        logger.info("Processing refund provider=stripe payment_id=%s", payment_id)
        operation = "refund_payment"
        payload = self._call(operation, "POST", "/refunds", json={"charge": payment_id})
        return RefundResponse(
            id=self._field(payload, "id", operation=operation),
            payment_id=self._field(payload, "charge", operation=operation),
            amount=from_minor_units(self._field(payload, "amount", int, operation=operation)),
            status=self._field(payload, "status", operation=operation),
            created_at=self._timestamp(payload, operation),
        )

    def get_payment_status(self, payment_id: str) -> PaymentStatus:
        logger.info("Getting payment status provider=stripe payment_id=%s", payment_id)
        operation = "get_payment_status"
        payload = self._call(operation, "GET", f"/charges/{payment_id}")
        return PaymentStatus(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            amount=from_minor_units(self._field(payload, "amount", int, operation=operation)),
            updated_at=datetime.now(timezone.utc),
        )

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent:
        logger.info(
            "Creating payment intent provider=stripe customer_id=%s amount=%s currency=%s",
            request.customer_id,
            request.amount,
            request.currency,
        )
        body = {
            "amount": to_minor_units(request.amount),
            "currency": request.currency,
            "description": request.description,
        }
        if request.customer_id:
            body["customer"] = request.customer_id

        operation = "create_payment_intent"
        payload = self._call(operation, "POST", "/payment_intents", json=body)
        return PaymentIntent(
            id=self._field(payload, "id", operation=operation),
            client_secret=self._field(payload, "client_secret", operation=operation),
            status=self._field(payload, "status", operation=operation),
        )

    def _timestamp(self, payload: dict, operation: str) -> datetime:
        created = self._field(payload, "created", (int, float), operation=operation)
        return datetime.fromtimestamp(created, tz=timezone.utc)
