from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .errors import ValidationError


def _validate_amount(amount: Decimal) -> None:
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"amount must be greater than zero, got {amount}")
    if amount.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"amount must have at most two decimal places, got {amount}")


@dataclass(frozen=True)
class User:
    id: int
    username: str
    email: str
    password_hash: str
    created_at: str
    updated_at: str


# Payment capability


@dataclass(frozen=True)
class PaymentRequest:
    order_id: str
    amount: Decimal
    currency: str
    description: str = ""
    customer_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _validate_amount(self.amount)


@dataclass(frozen=True)
class PaymentResponse:
    id: str
    status: str
    amount: Decimal
    currency: str
    transaction_id: str
    created_at: datetime
    metadata: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class PaymentIntentRequest:
    amount: Decimal
    currency: str
    customer_id: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        _validate_amount(self.amount)


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    # Opaque to callers: a client secret for Stripe, an approval URL for PayPal.
    client_secret: str
    status: str


@dataclass(frozen=True)
class RefundResponse:
    id: str
    payment_id: str
    amount: Decimal
    status: str
    created_at: datetime


@dataclass(frozen=True)
class PaymentStatus:
    id: str
    status: str
    amount: Decimal
    updated_at: datetime


# Notification capability


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    mime_type: str


@dataclass(frozen=True)
class EmailRequest:
    to: list[str]
    subject: str
    body: str
    body_html: str = ""
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    attachments: list[EmailAttachment] = field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class EmailResponse:
    id: str
    status: str
    sent_at: datetime
    message_id: str


@dataclass(frozen=True)
class BulkEmailRequest:
    emails: list[EmailRequest]


@dataclass(frozen=True)
class BulkEmailResponse:
    id: str
    status: str
    total_emails: int
    sent_emails: int
    failed_emails: int
    created_at: datetime


@dataclass(frozen=True)
class EmailStatus:
    id: str
    status: str
    delivered_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None


@dataclass(frozen=True)
class SMSRequest:
    to: str
    message: str
    from_number: str = ""


@dataclass(frozen=True)
class SMSResponse:
    id: str
    status: str
    sent_at: datetime
    message_id: str


@dataclass(frozen=True)
class PushNotificationRequest:
    device_tokens: list[str]
    title: str
    body: str
    data: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class PushNotificationResponse:
    id: str
    status: str
    sent_at: datetime
    success_count: int
    failure_count: int


# Order workflow


@dataclass(frozen=True)
class CreateOrderRequest:
    order_id: str
    user_id: int
    amount: Decimal
    currency: str
    user_email: str = ""

    def __post_init__(self) -> None:
        _validate_amount(self.amount)


@dataclass(frozen=True)
class RefundOrderRequest:
    payment_id: str
    user_id: int
    reason: str = ""


@dataclass(frozen=True)
class OrderResponse:
    order_id: str
    payment_id: str
    payment_intent_id: str
    status: str
    amount: Decimal
    currency: str
    processed_at: datetime
    user: User
