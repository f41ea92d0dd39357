from __future__ import annotations

from typing import Protocol

from ..entities import (
    BulkEmailRequest,
    BulkEmailResponse,
    EmailRequest,
    EmailResponse,
    EmailStatus,
    PaymentIntent,
    PaymentIntentRequest,
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    PushNotificationRequest,
    PushNotificationResponse,
    RefundResponse,
    SMSRequest,
    SMSResponse,
)


class PaymentProvider(Protocol):
    def process_payment(self, request: PaymentRequest) -> PaymentResponse: ...

    def refund_payment(self, payment_id: str) -> RefundResponse: ...

    def get_payment_status(self, payment_id: str) -> PaymentStatus: ...

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntent: ...

    def close(self) -> None: ...


class NotificationProvider(Protocol):
    def send_email(self, request: EmailRequest) -> EmailResponse: ...

    def send_sms(self, request: SMSRequest) -> SMSResponse: ...

    def send_push_notification(self, request: PushNotificationRequest) -> PushNotificationResponse: ...

    def close(self) -> None: ...


class EmailProvider(Protocol):
    def send_email(self, request: EmailRequest) -> EmailResponse: ...

    def send_bulk_email(self, request: BulkEmailRequest) -> BulkEmailResponse: ...

    def get_email_status(self, email_id: str) -> EmailStatus: ...

    def close(self) -> None: ...


class SMSProvider(Protocol):
    def send_sms(self, request: SMSRequest) -> SMSResponse: ...

    def close(self) -> None: ...
