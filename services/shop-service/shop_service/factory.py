from __future__ import annotations

import logging

from .config import Settings
from .errors import ConfigurationError
from .providers.base import NotificationProvider, PaymentProvider
from .providers.email import EmailServiceProvider
from .providers.paypal import PayPalProvider
from .providers.sms import SMSServiceProvider
from .providers.stripe import StripeProvider
from .providers.unified import UnifiedNotificationProvider

logger = logging.getLogger(__name__)

PAYMENT_PROVIDERS = ("stripe", "paypal")


class ProviderFactory:
    """Builds the vendor adapters selected by configuration, once per process."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def validate(self) -> None:
        payment = self._settings.payment
        if payment.provider == "stripe":
            if not payment.stripe.api_key:
                raise ConfigurationError("Stripe API key is required")
        elif payment.provider == "paypal":
            if not payment.paypal.client_id or not payment.paypal.client_secret:
                raise ConfigurationError("PayPal client ID and secret are required")
        else:
            raise ConfigurationError(f"unsupported payment provider: {payment.provider!r}")

        notification = self._settings.notification
        if not notification.email.api_key:
            logger.warning("Email API key not configured, email notifications will fail")
        if not notification.sms.api_key:
            logger.warning("SMS API key not configured, SMS notifications will fail")

    def create_payment_provider(self) -> PaymentProvider:
        payment = self._settings.payment
        if payment.provider == "stripe":
            logger.info(
                "Initializing Stripe payment provider base_url=%s timeout=%ss",
                payment.stripe.base_url,
                payment.stripe.timeout,
            )
            return StripeProvider(payment.stripe)
        if payment.provider == "paypal":
            logger.info(
                "Initializing PayPal payment provider base_url=%s timeout=%ss",
                payment.paypal.base_url,
                payment.paypal.timeout,
            )
            return PayPalProvider(payment.paypal)
        raise ConfigurationError(f"unsupported payment provider: {payment.provider!r}")

    def create_notification_provider(self) -> NotificationProvider:
        notification = self._settings.notification
        return UnifiedNotificationProvider(
            EmailServiceProvider(notification.email),
            SMSServiceProvider(notification.sms),
        )
