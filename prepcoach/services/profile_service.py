"""
Profile Service - user_profiles rows keyed by the auth provider's user id.
"""

from typing import Optional

from sqlalchemy import text

from prepcoach.db.postgres import get_db_session, utcnow
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

PROFILE_COLUMNS = (
    "user_id, username, full_name, avatar_url, bio, google_id, "
    "google_calendar_connected, google_calendar_email, created_at, updated_at"
)


class UsernameTakenError(Exception):
    pass


class ProfileService:

    def get_profile(self, user_id: str) -> Optional[dict]:
        with get_db_session() as db:
            row = db.execute(
                text(f"SELECT {PROFILE_COLUMNS} FROM user_profiles WHERE user_id = :uid"),
                {"uid": user_id}
            ).mappings().fetchone()
        return dict(row) if row else None

    def ensure_profile(self, user_id: str) -> dict:
        """Return the profile, creating an empty one on first access."""
        profile = self.get_profile(user_id)
        if profile:
            return profile
        now = utcnow()
        with get_db_session() as db:
            db.execute(
                text("""
                    INSERT INTO user_profiles (user_id, google_calendar_connected, created_at, updated_at)
                    VALUES (:uid, FALSE, :now, :now)
                    ON CONFLICT (user_id) DO NOTHING
                """),
                {"uid": user_id, "now": now}
            )
        logger.info(f"Created profile for user {user_id}")
        return self.get_profile(user_id)

    def is_username_available(self, username: str, exclude_user_id: Optional[str] = None) -> bool:
        """Case-insensitive check."""
        with get_db_session() as db:
            row = db.execute(
                text("""
                    SELECT user_id FROM user_profiles
                    WHERE LOWER(username) = LOWER(:username)
                      AND (:exclude IS NULL OR user_id <> :exclude)
                """),
                {"username": username, "exclude": exclude_user_id}
            ).fetchone()
        return row is None

    def update_profile(self, user_id: str, updates: dict) -> dict:
        self.ensure_profile(user_id)
        updates = {
            k: v for k, v in updates.items()
            if k in ("username", "full_name", "avatar_url", "bio")
        }
        if updates.get("username") and not self.is_username_available(updates["username"], user_id):
            raise UsernameTakenError(updates["username"])

        if updates:
            assignments = ", ".join(f"{k} = :{k}" for k in updates)
            with get_db_session() as db:
                db.execute(
                    text(f"UPDATE user_profiles SET {assignments}, updated_at = :now WHERE user_id = :uid"),
                    {**updates, "now": utcnow(), "uid": user_id}
                )
        return self.get_profile(user_id)


# Singleton
_profile_service = None


def get_profile_service() -> ProfileService:
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service
