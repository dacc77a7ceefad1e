"""
E-mail Verification Route Tests

The auth provider admin API and the e-mail webhook are replaced with
httpx.MockTransport handlers.

Tests:
1. Sending a verification e-mail (pending token -> 429, already verified -> 400)
2. Verifying a token (invalid / expired / used tokens, unknown account)
3. Link verification redirects to the app

Run with: pytest tests/test_auth_routes.py -v
"""
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import text

from prepcoach.db.postgres import get_db_session, utcnow
from prepcoach.services import auth_admin_client, email_service
from prepcoach.services.auth_admin_client import AuthAdminClient
from prepcoach.services.email_service import EmailVerificationService

EMAIL = "candidate@example.com"


class FakeAuthProvider:
    """Minimal /auth/v1/admin/users endpoint."""

    def __init__(self, users=None, fail=False):
        self.users = users if users is not None else []
        self.fail = fail
        self.confirmed = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(500, json={"msg": "down"})
        assert request.headers["apikey"] == "test-service-key"
        if request.method == "GET" and request.url.path == "/auth/v1/admin/users":
            return httpx.Response(200, json={"users": self.users})
        if request.method == "PUT":
            user_id = request.url.path.rsplit("/", 1)[-1]
            self.confirmed.append(user_id)
            return httpx.Response(200, json={"id": user_id})
        return httpx.Response(404)


def install_provider(monkeypatch, provider: FakeAuthProvider) -> FakeAuthProvider:
    monkeypatch.setattr(
        auth_admin_client, "_auth_admin_client", AuthAdminClient(transport=httpx.MockTransport(provider))
    )
    return provider


@pytest.fixture
def provider(monkeypatch):
    return install_provider(monkeypatch, FakeAuthProvider(users=[{"id": "user-1", "email": "Candidate@Example.com"}]))


def latest_token(email: str = EMAIL) -> str:
    with get_db_session() as db:
        return db.execute(
            text("SELECT token FROM email_verification_tokens WHERE email = :email ORDER BY created_at DESC"),
            {"email": email}
        ).scalar()


def send(client, email: str = EMAIL):
    return client.post("/api/auth/send-verification", json={"email": email})


def test_send_verification(client, provider):
    response = send(client)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert len(latest_token()) == 32


def test_send_rejects_invalid_email(client):
    assert send(client, "not-an-email").status_code == 400


def test_second_request_while_pending_is_rate_limited(client, provider):
    send(client)
    response = send(client)
    assert response.status_code == 429


def test_already_verified_account(client, monkeypatch):
    install_provider(monkeypatch, FakeAuthProvider(users=[
        {"id": "user-1", "email": EMAIL, "email_confirmed_at": "2026-01-01T00:00:00Z"},
    ]))

    response = send(client)

    assert response.status_code == 400
    assert response.json()["detail"] == "Email is already verified. You can sign in directly."


def test_provider_outage_does_not_block_sending(client, monkeypatch):
    install_provider(monkeypatch, FakeAuthProvider(fail=True))
    assert send(client).status_code == 200


def test_webhook_delivery(client, provider, monkeypatch):
    sent = []

    def webhook(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(202)

    monkeypatch.setattr(email_service.settings, "email_webhook_url", "https://mail.test/send")
    monkeypatch.setattr(
        email_service, "_email_service", EmailVerificationService(transport=httpx.MockTransport(webhook))
    )

    assert send(client).status_code == 200
    assert sent[0].url == "https://mail.test/send"
    assert latest_token() in sent[0].content.decode()


def test_webhook_failure_is_500(client, provider, monkeypatch):
    monkeypatch.setattr(email_service.settings, "email_webhook_url", "https://mail.test/send")
    monkeypatch.setattr(
        email_service, "_email_service",
        EmailVerificationService(transport=httpx.MockTransport(lambda r: httpx.Response(502)))
    )

    response = send(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to send verification email. Please try again."


def test_verify_email_confirms_account(client, provider):
    send(client)

    response = client.post("/api/auth/verify-email", json={"token": latest_token()})

    assert response.status_code == 200
    assert response.json()["email"] == EMAIL
    assert provider.confirmed == ["user-1"]


def test_token_is_single_use(client, provider):
    send(client)
    token = latest_token()
    client.post("/api/auth/verify-email", json={"token": token})

    again = client.post("/api/auth/verify-email", json={"token": token})

    assert again.status_code == 400
    assert again.json()["detail"] == "Verification token has already been used"


def test_expired_token(client, provider):
    send(client)
    with get_db_session() as db:
        db.execute(
            text("UPDATE email_verification_tokens SET expires_at = :past"),
            {"past": utcnow() - timedelta(minutes=1)}
        )

    response = client.post("/api/auth/verify-email", json={"token": latest_token()})

    assert response.json()["detail"] == "Verification token has expired"


def test_unknown_token(client):
    response = client.post("/api/auth/verify-email", json={"token": "nope"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid verification token"


def test_unknown_account(client, monkeypatch):
    install_provider(monkeypatch, FakeAuthProvider(users=[]))
    send(client)

    response = client.post("/api/auth/verify-email", json={"token": latest_token()})

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found. Please register first."


def test_link_redirects_on_success(client, provider):
    send(client)

    response = client.get(
        "/api/auth/verify-email", params={"token": latest_token()}, follow_redirects=False
    )

    assert response.status_code == 307
    assert response.headers["location"] == "https://app.test/auth/verify?success=true"


def test_link_redirects_with_errors(client, monkeypatch):
    missing = client.get("/api/auth/verify-email", follow_redirects=False)
    assert missing.headers["location"].endswith("error=missing-token")

    invalid = client.get("/api/auth/verify-email", params={"token": "nope"}, follow_redirects=False)
    assert invalid.headers["location"].endswith("error=Invalid%20verification%20token")

    install_provider(monkeypatch, FakeAuthProvider(users=[]))
    send(client)
    unknown = client.get("/api/auth/verify-email", params={"token": latest_token()}, follow_redirects=False)
    assert unknown.headers["location"].endswith("error=user-not-found")
