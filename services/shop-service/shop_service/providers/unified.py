from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from ..entities import (
    EmailRequest,
    EmailResponse,
    PushNotificationRequest,
    PushNotificationResponse,
    SMSRequest,
    SMSResponse,
)
from .base import EmailProvider, SMSProvider

logger = logging.getLogger(__name__)


class UnifiedNotificationProvider:
    """Routes each notification channel to its own adapter."""

    def __init__(self, email_provider: EmailProvider, sms_provider: SMSProvider):
        self._email = email_provider
        self._sms = sms_provider

    def send_email(self, request: EmailRequest) -> EmailResponse:
        logger.debug("Routing email through unified provider")
        return self._email.send_email(request)

    def send_sms(self, request: SMSRequest) -> SMSResponse:
        logger.debug("Routing SMS through unified provider")
        return self._sms.send_sms(request)

    def send_push_notification(self, request: PushNotificationRequest) -> PushNotificationResponse:
        # No push vendor is wired up; report every device as failed without raising.
        logger.info("Push notification not implemented device_count=%d", len(request.device_tokens))
        return PushNotificationResponse(
            id=f"push-{uuid.uuid4()}",
            status="not_implemented",
            sent_at=datetime.now(timezone.utc),
            success_count=0,
            failure_count=len(request.device_tokens),
        )

    def close(self) -> None:
        self._email.close()
        self._sms.close()
