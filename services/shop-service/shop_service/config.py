from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _env(key: str, default: str) -> str:
    return os.environ.get(key) or default


def _env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid value for %s=%r, using default %s", key, value, default)
        return default


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid value for %s=%r, using default %s", key, value, default)
        return default


@dataclass
class StripeSettings:
    base_url: str = "https://api.stripe.com/v1"
    api_key: str = ""
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class PayPalSettings:
    base_url: str = "https://api.paypal.com"
    client_id: str = ""
    client_secret: str = ""
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class PaymentSettings:
    provider: str = "stripe"
    stripe: StripeSettings = field(default_factory=StripeSettings)
    paypal: PayPalSettings = field(default_factory=PayPalSettings)


@dataclass
class EmailSettings:
    base_url: str = "https://api.mailgun.net/v3"
    api_key: str = ""
    from_address: str = "noreply@shop.local"
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class SMSSettings:
    base_url: str = "https://api.twilio.com/2010-04-01"
    api_key: str = ""
    from_number: str = "+1234567890"
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class NotificationSettings:
    email: EmailSettings = field(default_factory=EmailSettings)
    sms: SMSSettings = field(default_factory=SMSSettings)
    workers: int = 4


@dataclass
class JWTSettings:
    secret_key: str = "change-me"
    expiry_seconds: int = 24 * 60 * 60


@dataclass
class Settings:
    jwt: JWTSettings = field(default_factory=JWTSettings)
    payment: PaymentSettings = field(default_factory=PaymentSettings)
    notification: NotificationSettings = field(default_factory=NotificationSettings)
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            jwt=JWTSettings(
                secret_key=_env("JWT_SECRET", "change-me"),
                expiry_seconds=_env_int("JWT_EXPIRY_SECONDS", 24 * 60 * 60),
            ),
            payment=PaymentSettings(
                provider=_env("PAYMENT_PROVIDER", "stripe").lower(),
                stripe=StripeSettings(
                    base_url=_env("STRIPE_BASE_URL", "https://api.stripe.com/v1"),
                    api_key=_env("STRIPE_API_KEY", ""),
                    timeout=_env_float("STRIPE_TIMEOUT", DEFAULT_TIMEOUT),
                ),
                paypal=PayPalSettings(
                    base_url=_env("PAYPAL_BASE_URL", "https://api.paypal.com"),
                    client_id=_env("PAYPAL_CLIENT_ID", ""),
                    client_secret=_env("PAYPAL_CLIENT_SECRET", ""),
                    timeout=_env_float("PAYPAL_TIMEOUT", DEFAULT_TIMEOUT),
                ),
            ),
            notification=NotificationSettings(
                email=EmailSettings(
                    base_url=_env("EMAIL_SERVICE_URL", "https://api.mailgun.net/v3"),
                    api_key=_env("EMAIL_API_KEY", ""),
                    from_address=_env("EMAIL_FROM", "noreply@shop.local"),
                    timeout=_env_float("EMAIL_TIMEOUT", DEFAULT_TIMEOUT),
                ),
                sms=SMSSettings(
                    base_url=_env("SMS_SERVICE_URL", "https://api.twilio.com/2010-04-01"),
                    api_key=_env("SMS_API_KEY", ""),
                    from_number=_env("SMS_FROM", "+1234567890"),
                    timeout=_env_float("SMS_TIMEOUT", DEFAULT_TIMEOUT),
                ),
                workers=_env_int("NOTIFICATION_WORKERS", 4),
            ),
            allowed_origins=[
                origin.strip() for origin in _env("ALLOWED_ORIGINS", "*").split(",")
            ],
        )
