from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shop_service.app import create_app
from shop_service.config import JWTSettings, Settings
from shop_service.dispatch import NotificationDispatcher

from test_workflow import DecliningPaymentProvider, RecordingNotifier, SuccessfulPaymentProvider


def _client(repo, payment, notifier, dispatcher):
    settings = Settings(jwt=JWTSettings(secret_key="test-secret"))
    app = create_app(settings, users=repo, payment=payment, notification=notifier, dispatcher=dispatcher)
    return TestClient(app)


@pytest.fixture()
def dispatcher():
    dispatcher = NotificationDispatcher(max_workers=1)
    yield dispatcher
    dispatcher.shutdown(wait=True)


def _login(client, username="alice", email="alice@example.com", password="secret123"):
    registered = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert registered.status_code == 201
    login = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert login.status_code == 200
    return login.json()


def test_register_login_profile_round_trip(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)

    session = _login(client)
    assert session["user"]["id"] == 1
    assert session["token"]

    profile = client.get(
        "/api/v1/user/profile", headers={"Authorization": f"Bearer {session['token']}"}
    )

    assert profile.status_code == 200
    body = profile.json()
    assert body["username"] == "alice"
    assert "password" not in body
    assert "password_hash" not in body
    assert "password_hash" not in session["user"]


def test_duplicate_registration_conflicts(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)
    _login(client)

    response = client.post(
        "/api/v1/auth/register",
        json={"username": "alice", "email": "alice@example.com", "password": "secret123"},
    )

    assert response.status_code == 409


def test_short_password_is_rejected(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)

    response = client.post(
        "/api/v1/auth/register",
        json={"username": "alice", "email": "alice@example.com", "password": "123"},
    )

    assert response.status_code == 422


def test_protected_routes_require_token(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)

    assert client.get("/api/v1/user/profile").status_code == 401
    assert client.post("/orders", json={}).status_code == 401
    response = client.get("/api/v1/user/profile", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_create_order_uses_token_user(repo, dispatcher):
    payment = SuccessfulPaymentProvider()
    notifier = RecordingNotifier()
    client = _client(repo, payment, notifier, dispatcher)
    token = _login(client)["token"]

    response = client.post(
        "/orders",
        json={"order_id": "order-1", "amount": "99.99", "currency": "usd", "user_email": "alice@example.com"},
        headers={"Authorization": f"Bearer {token}", "X-Request-ID": "req-1"},
    )
    dispatcher.shutdown(wait=True)

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-1"
    body = response.json()
    assert body["status"] == "completed"
    assert body["payment_id"] == "ch_123"
    assert body["payment_intent_id"] == "pi_123"
    assert Decimal(str(body["amount"])) == Decimal("99.99")
    assert body["user"]["username"] == "alice"
    assert "password_hash" not in body["user"]
    assert [email.subject for email in notifier.emails] == ["Order Confirmation"]


def test_declined_order_maps_to_bad_gateway(repo, dispatcher):
    notifier = RecordingNotifier()
    client = _client(repo, DecliningPaymentProvider(), notifier, dispatcher)
    token = _login(client)["token"]

    response = client.post(
        "/orders",
        json={"order_id": "order-2", "amount": "10", "currency": "usd"},
        headers={"Authorization": f"Bearer {token}"},
    )
    dispatcher.shutdown(wait=True)

    assert response.status_code == 502
    assert "card declined" in response.json()["detail"]
    assert [email.subject for email in notifier.emails] == ["Payment Failed"]


def test_order_amount_must_be_positive_whole_cents(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)
    token = _login(client)["token"]

    for amount in ("0", "0.004", "99.999"):
        response = client.post(
            "/orders",
            json={"order_id": "order-3", "amount": amount, "currency": "usd"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 422

    intent = client.post(
        "/orders/payment-intent",
        json={"amount": "0.004", "currency": "usd"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert intent.status_code == 422


def test_refund_status_and_intent_endpoints(repo, dispatcher):
    payment = SuccessfulPaymentProvider()
    client = _client(repo, payment, RecordingNotifier(), dispatcher)
    headers = {"Authorization": f"Bearer {_login(client)['token']}"}

    refund = client.post("/orders/refund", json={"payment_id": "ch_123", "reason": "damaged"}, headers=headers)
    status = client.get("/orders/payment/ch_123/status", headers=headers)
    intent = client.post(
        "/orders/payment-intent", json={"amount": "15.00", "currency": "usd"}, headers=headers
    )

    assert refund.status_code == 200
    assert refund.json()["id"] == "re_123"
    assert status.status_code == 200
    assert status.json()["status"] == "succeeded"
    assert intent.status_code == 200
    assert intent.json()["client_secret"] == "pi_123_secret"
    assert payment.calls[-1][1].customer_id == "1"


def test_healthz(repo, dispatcher):
    client = _client(repo, SuccessfulPaymentProvider(), RecordingNotifier(), dispatcher)

    assert client.get("/healthz").json() == {"status": "ok"}


def test_shutdown_releases_vendor_clients(repo):
    payment = SuccessfulPaymentProvider()
    notifier = RecordingNotifier()
    dispatcher = NotificationDispatcher(max_workers=1)
    app = create_app(
        Settings(jwt=JWTSettings(secret_key="test-secret")),
        users=repo,
        payment=payment,
        notification=notifier,
        dispatcher=dispatcher,
    )

    with TestClient(app) as client:
        assert client.get("/healthz").status_code == 200
        assert not payment.closed

    assert payment.closed
    assert notifier.closed
