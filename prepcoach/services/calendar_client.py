"""
Calendar Client - Google Calendar REST API for scheduled sessions.

OAuth tokens are stored on the user's profile row. Access tokens are refreshed
through the Google token endpoint once they expire. Event operations return
None/False on upstream failures (logged), so callers never fail because the
calendar is unavailable.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy import text

from prepcoach.core.config import get_settings
from prepcoach.db.postgres import get_db_session, utcnow, as_datetime
from prepcoach.services.profile_service import get_profile_service
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
DEFAULT_CALENDAR_ID = "primary"


def _event_time(value: datetime) -> dict:
    return {"dateTime": value.replace(tzinfo=None).isoformat() + "Z", "timeZone": settings.calendar_time_zone}


class CalendarClient:

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(timeout=settings.http_timeout_seconds, transport=transport)

    # ========================================================
    # Token storage
    # ========================================================

    def _get_token_row(self, user_id: str) -> Optional[dict]:
        with get_db_session() as db:
            row = db.execute(
                text("""
                    SELECT google_calendar_connected, google_calendar_access_token,
                           google_calendar_refresh_token, google_calendar_token_expires_at
                    FROM user_profiles WHERE user_id = :uid
                """),
                {"uid": user_id}
            ).mappings().fetchone()
        return dict(row) if row else None

    def is_calendar_connected(self, user_id: str) -> bool:
        row = self._get_token_row(user_id)
        return bool(row and row["google_calendar_connected"] and row["google_calendar_access_token"])

    def store_calendar_tokens(self, user_id: str, access_token: str, refresh_token: Optional[str],
                              expires_in: int, email: Optional[str] = None) -> None:
        get_profile_service().ensure_profile(user_id)
        now = utcnow()
        with get_db_session() as db:
            db.execute(
                text("""
                    UPDATE user_profiles SET
                        google_calendar_connected = TRUE,
                        google_calendar_access_token = :access,
                        google_calendar_refresh_token = COALESCE(:refresh, google_calendar_refresh_token),
                        google_calendar_token_expires_at = :expires_at,
                        google_calendar_email = COALESCE(:email, google_calendar_email),
                        updated_at = :now
                    WHERE user_id = :uid
                """),
                {
                    "uid": user_id, "access": access_token, "refresh": refresh_token,
                    "expires_at": now + timedelta(seconds=expires_in), "email": email, "now": now,
                }
            )
        logger.info(f"Stored calendar tokens for user {user_id}")

    def disconnect_calendar(self, user_id: str) -> None:
        with get_db_session() as db:
            db.execute(
                text("""
                    UPDATE user_profiles SET
                        google_calendar_connected = FALSE,
                        google_calendar_access_token = NULL,
                        google_calendar_refresh_token = NULL,
                        google_calendar_token_expires_at = NULL,
                        google_calendar_email = NULL,
                        updated_at = :now
                    WHERE user_id = :uid
                """),
                {"uid": user_id, "now": utcnow()}
            )
        logger.info(f"Disconnected calendar for user {user_id}")

    def refresh_access_token(self, user_id: str, refresh_token: str) -> Optional[str]:
        try:
            response = self.client.post(TOKEN_ENDPOINT, data={
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            })
            response.raise_for_status()
            data = response.json()
            access_token = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to refresh calendar token for user {user_id}: {e}")
            return None

        now = utcnow()
        with get_db_session() as db:
            db.execute(
                text("""
                    UPDATE user_profiles SET google_calendar_access_token = :access,
                        google_calendar_token_expires_at = :expires_at, updated_at = :now
                    WHERE user_id = :uid
                """),
                {
                    "uid": user_id, "access": access_token,
                    "expires_at": now + timedelta(seconds=expires_in), "now": now,
                }
            )
        return access_token

    def get_valid_access_token(self, user_id: str) -> Optional[str]:
        row = self._get_token_row(user_id)
        if not row or not row["google_calendar_access_token"]:
            return None

        expires_at = as_datetime(row["google_calendar_token_expires_at"])
        if expires_at and expires_at <= utcnow() and row["google_calendar_refresh_token"]:
            return self.refresh_access_token(user_id, row["google_calendar_refresh_token"])
        return row["google_calendar_access_token"]

    # ========================================================
    # Events
    # ========================================================

    def _request(self, user_id: str, method: str, path: str, **kwargs) -> Optional[httpx.Response]:
        token = self.get_valid_access_token(user_id)
        if not token:
            logger.warning(f"No valid calendar access token for user {user_id}")
            return None
        try:
            response = self.client.request(
                method, f"{CALENDAR_API_BASE}{path}",
                headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"Calendar {method} {path} failed: {e}")
            return None
        return response

    def create_event(self, user_id: str, title: str, description: str, start_time: datetime,
                     end_time: datetime, session_id: Optional[str] = None,
                     calendar_id: str = DEFAULT_CALENDAR_ID) -> Optional[dict]:
        body = {
            "summary": title,
            "description": description,
            "start": _event_time(start_time),
            "end": _event_time(end_time),
            "conferenceData": {
                "createRequest": {
                    "requestId": f"session-{session_id or uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        response = self._request(
            user_id, "POST", f"/calendars/{calendar_id}/events",
            params={"conferenceDataVersion": 1}, json=body
        )
        if response is None or response.is_error:
            if response is not None:
                logger.error(f"Failed to create calendar event: HTTP {response.status_code}")
            return None
        return response.json()

    def update_event(self, user_id: str, event_id: str, title: Optional[str] = None,
                     description: Optional[str] = None, start_time: Optional[datetime] = None,
                     end_time: Optional[datetime] = None,
                     calendar_id: str = DEFAULT_CALENDAR_ID) -> Optional[dict]:
        patch = {}
        if title:
            patch["summary"] = title
        if description:
            patch["description"] = description
        if start_time:
            patch["start"] = _event_time(start_time)
        if end_time:
            patch["end"] = _event_time(end_time)

        response = self._request(user_id, "PATCH", f"/calendars/{calendar_id}/events/{event_id}", json=patch)
        if response is None or response.is_error:
            if response is not None:
                logger.error(f"Failed to update calendar event {event_id}: HTTP {response.status_code}")
            return None
        return response.json()

    def delete_event(self, user_id: str, event_id: str, calendar_id: str = DEFAULT_CALENDAR_ID) -> bool:
        response = self._request(user_id, "DELETE", f"/calendars/{calendar_id}/events/{event_id}")
        if response is None:
            return False
        # Already gone counts as deleted
        if response.status_code in (404, 410):
            return True
        if response.is_error:
            logger.error(f"Failed to delete calendar event {event_id}: HTTP {response.status_code}")
            return False
        return True


# Singleton
_calendar_client = None


def get_calendar_client() -> CalendarClient:
    global _calendar_client
    if _calendar_client is None:
        _calendar_client = CalendarClient()
    return _calendar_client
