from __future__ import annotations

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from shop_service.config import EmailSettings, SMSSettings
from shop_service.entities import (
    BulkEmailRequest,
    EmailAttachment,
    EmailRequest,
    PushNotificationRequest,
    SMSRequest,
)
from shop_service.errors import VendorError
from shop_service.providers.email import EmailServiceProvider, parse_timestamp
from shop_service.providers.sms import SMSServiceProvider
from shop_service.providers.unified import UnifiedNotificationProvider


def _email_provider(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    settings = EmailSettings(base_url="https://mail.test", api_key="mail-key", from_address="shop@test")
    return EmailServiceProvider(settings, client=client)


def _sms_provider(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    settings = SMSSettings(base_url="https://sms.test", api_key="sms-key", from_number="+15550000")
    return SMSServiceProvider(settings, client=client)


def test_send_email_builds_vendor_payload():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(202, json={"id": "em_1", "status": "queued", "message_id": "<m1@test>"})

    response = _email_provider(handler).send_email(
        EmailRequest(
            to=["alice@example.com"],
            cc=["ops@example.com"],
            subject="Hello",
            body="plain",
            body_html="<p>rich</p>",
            attachments=[EmailAttachment(filename="a.txt", content=b"hi", mime_type="text/plain")],
            metadata={"type": "test"},
        )
    )

    body = seen["body"]
    assert seen["path"] == "/send"
    assert seen["auth"] == "Bearer mail-key"
    assert body["from"] == "shop@test"
    assert body["to"] == ["alice@example.com"]
    assert body["cc"] == ["ops@example.com"]
    assert "bcc" not in body
    assert body["text"] == "plain"
    assert body["html"] == "<p>rich</p>"
    assert body["attachments"] == [
        {"filename": "a.txt", "content": base64.b64encode(b"hi").decode(), "type": "text/plain"}
    ]
    assert body["metadata"] == {"type": "test"}
    assert response.id == "em_1"
    assert response.message_id == "<m1@test>"


def test_send_email_rejection_raises_vendor_error():
    def handler(request):
        return httpx.Response(400, json={"error": "bad recipient"})

    with pytest.raises(VendorError) as excinfo:
        _email_provider(handler).send_email(EmailRequest(to=["x"], subject="s", body="b"))

    assert excinfo.value.vendor == "email_service"
    assert excinfo.value.status_code == 400


def test_bulk_email_reports_counts():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"id": "bulk_1", "status": "processing", "total_emails": 2, "sent_emails": 1, "failed_emails": 1},
        )

    response = _email_provider(handler).send_bulk_email(
        BulkEmailRequest(
            emails=[
                EmailRequest(to=["a@example.com"], subject="one", body="1"),
                EmailRequest(to=["b@example.com"], subject="two", body="2", body_html="<b>2</b>"),
            ]
        )
    )

    assert seen["path"] == "/send-bulk"
    assert [email["subject"] for email in seen["body"]["emails"]] == ["one", "two"]
    assert seen["body"]["emails"][1]["html"] == "<b>2</b>"
    assert (response.total_emails, response.sent_emails, response.failed_emails) == (2, 1, 1)


def test_email_status_parses_only_well_formed_timestamps():
    def handler(request):
        assert request.url.path == "/status/em_1"
        return httpx.Response(
            200,
            json={
                "id": "em_1",
                "status": "opened",
                "delivered_at": "2024-05-01T10:00:00Z",
                "opened_at": "yesterday",
                "clicked_at": None,
            },
        )

    status = _email_provider(handler).get_email_status("em_1")

    assert status.delivered_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert status.opened_at is None
    assert status.clicked_at is None


@pytest.mark.parametrize("value", [None, "", 42, "2024-05-01T10:00:00", "not a date"])
def test_parse_timestamp_ignores_invalid_values(value):
    assert parse_timestamp(value) is None


def test_sms_uses_configured_sender_by_default():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "sms_1", "status": "sent", "message_id": "SM1"})

    provider = _sms_provider(handler)
    provider.send_sms(SMSRequest(to="+15551111", message="hi"))
    provider.send_sms(SMSRequest(to="+15551111", message="hi", from_number="+15559999"))

    assert bodies[0] == {"to": "+15551111", "message": "hi", "from": "+15550000"}
    assert bodies[1]["from"] == "+15559999"


class RecordingChannel:
    def __init__(self):
        self.received = []
        self.closed = False

    def send_email(self, request):
        self.received.append(("email", request))
        return "email-response"

    def send_bulk_email(self, request):
        raise AssertionError("not routed")

    def get_email_status(self, email_id):
        raise AssertionError("not routed")

    def send_sms(self, request):
        self.received.append(("sms", request))
        return "sms-response"

    def close(self):
        self.closed = True


def test_unified_provider_routes_channels():
    email, sms = RecordingChannel(), RecordingChannel()
    unified = UnifiedNotificationProvider(email, sms)

    assert unified.send_email(EmailRequest(to=["a"], subject="s", body="b")) == "email-response"
    assert unified.send_sms(SMSRequest(to="+1", message="m")) == "sms-response"
    assert [channel for channel, _ in email.received] == ["email"]
    assert [channel for channel, _ in sms.received] == ["sms"]


def test_push_notification_is_a_no_op():
    email, sms = RecordingChannel(), RecordingChannel()
    unified = UnifiedNotificationProvider(email, sms)

    response = unified.send_push_notification(
        PushNotificationRequest(device_tokens=["t1", "t2", "t3"], title="t", body="b")
    )

    assert response.status == "not_implemented"
    assert response.success_count == 0
    assert response.failure_count == 3
    assert email.received == [] and sms.received == []


def test_unified_provider_closes_both_channels():
    email, sms = RecordingChannel(), RecordingChannel()

    UnifiedNotificationProvider(email, sms).close()

    assert email.closed and sms.closed
