from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from ..config import SMSSettings
from ..entities import SMSRequest, SMSResponse
from .vendor import VendorClient

logger = logging.getLogger(__name__)


class SMSServiceProvider(VendorClient):
    vendor = "sms_service"

    def __init__(self, settings: SMSSettings, client: httpx.Client | None = None):
        super().__init__(settings.base_url, settings.timeout, client)
        self._api_key = settings.api_key
        self._from_number = settings.from_number

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def send_sms(self, request: SMSRequest) -> SMSResponse:
        logger.info("Sending SMS to=%s", request.to)
        operation = "send_sms"
        payload = self._call(
            operation,
            "POST",
            "/send",
            expected=(200, 202),
            json={
                "to": request.to,
                "message": request.message,
                "from": request.from_number or self._from_number,
            },
        )
        response = SMSResponse(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            sent_at=datetime.now(timezone.utc),
            message_id=self._field(payload, "message_id", operation=operation),
        )
        logger.info(
            "SMS sent sms_id=%s status=%s message_id=%s",
            response.id,
            response.status,
            response.message_id,
        )
        return response
