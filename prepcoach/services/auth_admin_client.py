"""
Auth Admin Client - the hosted auth provider's admin REST API.

Only two operations are needed: look up a user by e-mail and mark a user's
e-mail as confirmed. Requests authenticate with the service-role key.
"""

from typing import Optional

import httpx

from prepcoach.core.config import get_settings
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

USERS_PAGE_SIZE = 1000


class AuthAdminClient:

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(
            base_url=f"{settings.auth_url.rstrip('/')}/auth/v1",
            headers={
                "apikey": settings.auth_service_key,
                "Authorization": f"Bearer {settings.auth_service_key}",
            },
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def find_user_by_email(self, email: str) -> Optional[dict]:
        """Scan admin user pages for a case-insensitive e-mail match."""
        email = email.lower()
        page = 1
        while True:
            response = self.client.get(
                "/admin/users", params={"page": page, "per_page": USERS_PAGE_SIZE}
            )
            response.raise_for_status()
            users = response.json().get("users", [])
            for user in users:
                if (user.get("email") or "").lower() == email:
                    return user
            if len(users) < USERS_PAGE_SIZE:
                return None
            page += 1

    def is_email_confirmed(self, email: str) -> bool:
        user = self.find_user_by_email(email)
        return bool(user and user.get("email_confirmed_at"))

    def confirm_email(self, user_id: str) -> dict:
        response = self.client.put(f"/admin/users/{user_id}", json={"email_confirm": True})
        response.raise_for_status()
        logger.info(f"Confirmed e-mail for user {user_id}")
        return response.json()


# Singleton
_auth_admin_client = None


def get_auth_admin_client() -> AuthAdminClient:
    global _auth_admin_client
    if _auth_admin_client is None:
        _auth_admin_client = AuthAdminClient()
    return _auth_admin_client
