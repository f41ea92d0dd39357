"""Order orchestration: user lookup, payment intent, charge and notifications.

Every vendor call is attempted exactly once. Notifications are handed to the
dispatcher and never influence the outcome reported to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .context import RequestContext
from .dispatch import NotificationDispatcher
from .entities import (
    CreateOrderRequest,
    EmailRequest,
    OrderResponse,
    PaymentIntent,
    PaymentIntentRequest,
    PaymentRequest,
    PaymentStatus,
    RefundOrderRequest,
    RefundResponse,
    User,
)
from .errors import VendorError
from .providers.base import NotificationProvider, PaymentProvider
from .repository import UserRepository

logger = logging.getLogger(__name__)

ORDER_COMPLETED = "completed"


class OrderWorkflow:
    def __init__(
        self,
        users: UserRepository,
        payment: PaymentProvider,
        notification: NotificationProvider,
        dispatcher: NotificationDispatcher,
    ):
        self._users = users
        self._payment = payment
        self._notification = notification
        self._dispatcher = dispatcher

    def process_order(
        self, request: CreateOrderRequest, ctx: Optional[RequestContext] = None
    ) -> OrderResponse:
        ctx = ctx or RequestContext(user_id=request.user_id)
        logger.info(
            "Processing order order_id=%s user_id=%s amount=%s %s",
            request.order_id,
            request.user_id,
            request.amount,
            request.currency,
            extra=ctx.log_extra(order_id=request.order_id),
        )

        user = self._users.get_by_id(request.user_id)

        try:
            intent = self._payment.create_payment_intent(
                PaymentIntentRequest(
                    amount=request.amount,
                    currency=request.currency,
                    customer_id=str(user.id),
                    description=f"Order for user {user.username}",
                )
            )
        except VendorError as exc:
            logger.error(
                "Failed to create payment intent order_id=%s: %s",
                request.order_id,
                exc,
                extra=ctx.log_extra(order_id=request.order_id, **exc.log_fields()),
            )
            raise

        try:
            payment = self._payment.process_payment(
                PaymentRequest(
                    order_id=request.order_id,
                    amount=request.amount,
                    currency=request.currency,
                    description=f"Order {request.order_id} for {user.username}",
                    customer_id=str(user.id),
                    metadata={
                        "user_id": user.id,
                        "username": user.username,
                        "order_id": request.order_id,
                    },
                )
            )
        except VendorError as exc:
            logger.error(
                "Payment processing failed order_id=%s: %s",
                request.order_id,
                exc,
                extra=ctx.log_extra(order_id=request.order_id, **exc.log_fields()),
            )
            self._dispatcher.submit(
                f"payment_failure order_id={request.order_id}",
                self._notification.send_email,
                payment_failure_email(user, request.order_id, exc),
            )
            raise

        self._dispatcher.submit(
            f"order_confirmation order_id={request.order_id}",
            self._notification.send_email,
            order_confirmation_email(user, request.order_id, payment.id, request),
        )

        logger.info(
            "Order processed order_id=%s payment_id=%s",
            request.order_id,
            payment.id,
            extra=ctx.log_extra(order_id=request.order_id, payment_id=payment.id),
        )
        return OrderResponse(
            order_id=request.order_id,
            payment_id=payment.id,
            payment_intent_id=intent.id,
            status=ORDER_COMPLETED,
            amount=request.amount,
            currency=request.currency,
            processed_at=datetime.now(timezone.utc),
            user=user,
        )

    def refund_order(
        self, request: RefundOrderRequest, ctx: Optional[RequestContext] = None
    ) -> RefundResponse:
        ctx = ctx or RequestContext(user_id=request.user_id)
        logger.info(
            "Processing refund payment_id=%s user_id=%s reason=%r",
            request.payment_id,
            request.user_id,
            request.reason,
            extra=ctx.log_extra(payment_id=request.payment_id),
        )

        user = self._users.get_by_id(request.user_id)

        try:
            refund = self._payment.refund_payment(request.payment_id)
        except VendorError as exc:
            logger.error(
                "Refund processing failed payment_id=%s: %s",
                request.payment_id,
                exc,
                extra=ctx.log_extra(payment_id=request.payment_id, **exc.log_fields()),
            )
            raise

        self._dispatcher.submit(
            f"refund_confirmation payment_id={request.payment_id}",
            self._notification.send_email,
            refund_email(user, request.payment_id, refund.id),
        )
        logger.info(
            "Refund processed payment_id=%s refund_id=%s",
            request.payment_id,
            refund.id,
            extra=ctx.log_extra(payment_id=request.payment_id, refund_id=refund.id),
        )
        return refund

    def get_payment_status(
        self, payment_id: str, ctx: Optional[RequestContext] = None
    ) -> PaymentStatus:
        ctx = ctx or RequestContext()
        try:
            return self._payment.get_payment_status(payment_id)
        except VendorError as exc:
            logger.error(
                "Failed to get payment status payment_id=%s: %s",
                payment_id,
                exc,
                extra=ctx.log_extra(payment_id=payment_id, **exc.log_fields()),
            )
            raise

    def create_payment_intent(
        self, request: PaymentIntentRequest, ctx: Optional[RequestContext] = None
    ) -> PaymentIntent:
        ctx = ctx or RequestContext()
        try:
            return self._payment.create_payment_intent(request)
        except VendorError as exc:
            logger.error(
                "Failed to create payment intent customer_id=%s: %s",
                request.customer_id,
                exc,
                extra=ctx.log_extra(**exc.log_fields()),
            )
            raise


def order_confirmation_email(
    user: User, order_id: str, payment_id: str, request: CreateOrderRequest
) -> EmailRequest:
    return EmailRequest(
        to=[user.email],
        subject="Order Confirmation",
        body=(
            f"Hello {user.username},\n\n"
            "Your order has been confirmed!\n\n"
            "Order Details:\n"
            f"- Order ID: {order_id}\n"
            f"- Payment ID: {payment_id}\n"
            f"- Amount: {request.amount:.2f} {request.currency}\n"
            "- Status: Completed\n\n"
            "Thank you for your business!\n"
        ),
        metadata={
            "user_id": user.id,
            "order_id": order_id,
            "payment_id": payment_id,
            "type": "order_confirmation",
        },
    )


def payment_failure_email(user: User, order_id: str, error: Exception) -> EmailRequest:
    return EmailRequest(
        to=[user.email],
        subject="Payment Failed",
        body=(
            f"Hello {user.username},\n\n"
            f"We encountered an issue processing your payment for order {order_id}.\n\n"
            "Please try again or contact our support team.\n"
        ),
        metadata={
            "user_id": user.id,
            "order_id": order_id,
            "type": "payment_failure",
            "error": str(error),
        },
    )


def refund_email(user: User, payment_id: str, refund_id: str) -> EmailRequest:
    return EmailRequest(
        to=[user.email],
        subject="Refund Processed",
        body=(
            f"Hello {user.username},\n\n"
            "Your refund has been processed successfully.\n\n"
            "Refund Details:\n"
            f"- Original Payment ID: {payment_id}\n"
            f"- Refund ID: {refund_id}\n\n"
            "The refund will appear in your account within 3-5 business days.\n"
        ),
        metadata={
            "user_id": user.id,
            "payment_id": payment_id,
            "refund_id": refund_id,
            "type": "refund_confirmation",
        },
    )
