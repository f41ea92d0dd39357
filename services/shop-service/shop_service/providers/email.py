from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..config import EmailSettings
from ..entities import (
    BulkEmailRequest,
    BulkEmailResponse,
    EmailRequest,
    EmailResponse,
    EmailStatus,
)
from .vendor import VendorClient

logger = logging.getLogger(__name__)

_SEND_ACCEPTED = (200, 202)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, returning None for anything else."""
    if not isinstance(value, str) or not value:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


class EmailServiceProvider(VendorClient):
    vendor = "email_service"

    def __init__(self, settings: EmailSettings, client: httpx.Client | None = None):
        super().__init__(settings.base_url, settings.timeout, client)
        self._api_key = settings.api_key
        self._from_address = settings.from_address

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def send_email(self, request: EmailRequest) -> EmailResponse:
        logger.info("Sending email to_count=%d subject=%r", len(request.to), request.subject)
        operation = "send_email"
        payload = self._call(
            operation,
            "POST",
            "/send",
            expected=_SEND_ACCEPTED,
            json=self._message(request, with_attachments=True),
        )
        response = EmailResponse(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            sent_at=datetime.now(timezone.utc),
            message_id=self._field(payload, "message_id", operation=operation),
        )
        logger.info(
            "Email sent email_id=%s status=%s message_id=%s",
            response.id,
            response.status,
            response.message_id,
        )
        return response

    def send_bulk_email(self, request: BulkEmailRequest) -> BulkEmailResponse:
        logger.info("Sending bulk emails email_count=%d", len(request.emails))
        operation = "send_bulk_email"
        payload = self._call(
            operation,
            "POST",
            "/send-bulk",
            expected=_SEND_ACCEPTED,
            json={"emails": [self._message(email) for email in request.emails]},
        )
        return BulkEmailResponse(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            total_emails=int(self._field(payload, "total_emails", (int, float), operation=operation)),
            sent_emails=int(self._field(payload, "sent_emails", (int, float), operation=operation)),
            failed_emails=int(self._field(payload, "failed_emails", (int, float), operation=operation)),
            created_at=datetime.now(timezone.utc),
        )

    def get_email_status(self, email_id: str) -> EmailStatus:
        logger.info("Getting email status email_id=%s", email_id)
        operation = "get_email_status"
        payload = self._call(operation, "GET", f"/status/{email_id}")
        return EmailStatus(
            id=self._field(payload, "id", operation=operation),
            status=self._field(payload, "status", operation=operation),
            delivered_at=parse_timestamp(payload.get("delivered_at")),
            opened_at=parse_timestamp(payload.get("opened_at")),
            clicked_at=parse_timestamp(payload.get("clicked_at")),
        )

    def _message(self, request: EmailRequest, with_attachments: bool = False) -> dict:
        message = {
            "from": self._from_address,
            "to": list(request.to),
            "subject": request.subject,
            "text": request.body,
        }
        if request.cc:
            message["cc"] = list(request.cc)
        if request.bcc:
            message["bcc"] = list(request.bcc)
        if request.body_html:
            message["html"] = request.body_html
        if with_attachments and request.attachments:
            message["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "type": attachment.mime_type,
                }
                for attachment in request.attachments
            ]
        if request.metadata is not None:
            message["metadata"] = request.metadata
        return message
