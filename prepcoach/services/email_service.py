"""
E-mail Verification Service - short-lived verification tokens.

Tokens are 32 URL-safe characters, valid for `verification_token_ttl_minutes`
(2 minutes by default) and single-use. Only one pending token per address is
allowed; requesting a new one while a token is pending is rate limited by the
route (429).

Delivery posts {to, from, subject, html} to `email_webhook_url` when set;
otherwise the verification URL is logged (development mode).
"""

import secrets
from datetime import timedelta
from typing import Optional

import httpx
from sqlalchemy import text

from prepcoach.core.config import get_settings
from prepcoach.db.postgres import get_db_session, new_id, utcnow
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

TOKEN_LENGTH = 32


class TokenVerificationError(Exception):
    """Raised when a token is unknown, expired or already used."""


def build_verification_email_html(email: str, verification_url: str) -> str:
    ttl = settings.verification_token_ttl_minutes
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #1f2937;">
    <h2>Verify your email address</h2>
    <p>Hi {email},</p>
    <p>Click the button below to verify your email address for PrepCoach.</p>
    <p><a href="{verification_url}" style="background:#2563eb;color:#fff;padding:12px 20px;border-radius:6px;text-decoration:none;">Verify Email</a></p>
    <p>This link expires in {ttl} minute{'s' if ttl != 1 else ''}.</p>
    <p>If you didn't create an account, you can ignore this email.</p>
  </body>
</html>"""


class EmailVerificationService:

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.http = httpx.Client(timeout=settings.http_timeout_seconds, transport=transport)

    def generate_verification_token(self, email: str) -> str:
        token = secrets.token_urlsafe(24)[:TOKEN_LENGTH]
        now = utcnow()
        with get_db_session() as db:
            db.execute(
                text("""
                    INSERT INTO email_verification_tokens (id, email, token, expires_at, created_at, updated_at)
                    VALUES (:id, :email, :token, :expires_at, :now, :now)
                """),
                {
                    "id": new_id(), "email": email, "token": token,
                    "expires_at": now + timedelta(minutes=settings.verification_token_ttl_minutes),
                    "now": now,
                }
            )
        return token

    def has_pending_verification(self, email: str) -> bool:
        """An unused, unexpired token exists for this address."""
        with get_db_session() as db:
            row = db.execute(
                text("""
                    SELECT id FROM email_verification_tokens
                    WHERE email = :email AND used_at IS NULL AND expires_at >= :now
                    ORDER BY created_at DESC LIMIT 1
                """),
                {"email": email, "now": utcnow()}
            ).fetchone()
        return row is not None

    def invalidate_existing_tokens(self, email: str) -> None:
        now = utcnow()
        with get_db_session() as db:
            db.execute(
                text("""
                    UPDATE email_verification_tokens SET used_at = :now, updated_at = :now
                    WHERE email = :email AND used_at IS NULL
                """),
                {"email": email, "now": now}
            )

    def verify_token(self, token: str) -> str:
        """
        Mark the token used and return its e-mail.
        Raises TokenVerificationError with a user-facing message otherwise.
        """
        now = utcnow()
        with get_db_session() as db:
            row = db.execute(
                text("""
                    SELECT email, used_at, CASE WHEN expires_at < :now THEN 1 ELSE 0 END AS expired
                    FROM email_verification_tokens WHERE token = :token
                """),
                {"token": token, "now": now}
            ).mappings().fetchone()

            if not row:
                raise TokenVerificationError("Invalid verification token")
            if row["expired"]:
                raise TokenVerificationError("Verification token has expired")
            if row["used_at"] is not None:
                raise TokenVerificationError("Verification token has already been used")

            db.execute(
                text("UPDATE email_verification_tokens SET used_at = :now, updated_at = :now WHERE token = :token"),
                {"token": token, "now": now}
            )
        return row["email"]

    def send_verification_email(self, email: str, token: str) -> bool:
        verification_url = f"{settings.app_url.rstrip('/')}/auth/verify?token={token}"

        if not settings.email_webhook_url:
            logger.info(f"Verification URL for {email}: {verification_url}")
            return True

        try:
            response = self.http.post(
                settings.email_webhook_url,
                json={
                    "to": email,
                    "from": settings.email_from,
                    "subject": "Verify your email address",
                    "html": build_verification_email_html(email, verification_url),
                }
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to send verification email to {email}: {e}")
            return False


# Singleton
_email_service = None


def get_email_service() -> EmailVerificationService:
    global _email_service
    if _email_service is None:
        _email_service = EmailVerificationService()
    return _email_service
