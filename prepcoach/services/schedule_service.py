"""
Schedule Service - scheduled practice sessions, optionally mirrored to Google Calendar.

Rows live in scheduled_sessions; session_config is stored as JSON text.
Calendar mirroring is best effort: the row is the source of truth and a
calendar failure only means `calendar_synced` stays false.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import text

from prepcoach.db.postgres import (
    get_db_session, new_id, utcnow, to_utc_naive, as_datetime, to_json, from_json
)
from prepcoach.services.calendar_client import get_calendar_client, DEFAULT_CALENDAR_ID
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

COLUMNS = (
    "id, user_id, session_config, start_time, end_time, status, "
    "calendar_event_id, google_calendar_id, created_at, updated_at"
)


def event_title(config: dict) -> str:
    return f"Interview Practice - {config['type']} ({config['difficulty']})"


def event_description(config: dict) -> str:
    return (
        "Interview practice session\n"
        f"Type: {config['type']}\n"
        f"Difficulty: {config['difficulty']}\n"
        f"Duration: {config['duration']} minutes"
    )


def _to_response(row) -> dict:
    session = dict(row)
    session["session_config"] = from_json(session["session_config"], {})
    session["calendar_synced"] = bool(session.get("calendar_event_id"))
    return session


class ScheduleService:

    def list_sessions(self, user_id: str, status: Optional[str] = None,
                      limit: int = 50, offset: int = 0) -> List[dict]:
        sql = f"SELECT {COLUMNS} FROM scheduled_sessions WHERE user_id = :uid"
        params = {"uid": user_id, "limit": limit, "offset": offset}
        if status:
            sql += " AND status = :status"
            params["status"] = status
        sql += " ORDER BY start_time DESC LIMIT :limit OFFSET :offset"

        with get_db_session() as db:
            rows = db.execute(text(sql), params).mappings().fetchall()
        return [_to_response(r) for r in rows]

    def get_session(self, user_id: str, session_id: str) -> Optional[dict]:
        with get_db_session() as db:
            row = db.execute(
                text(f"SELECT {COLUMNS} FROM scheduled_sessions WHERE id = :id AND user_id = :uid"),
                {"id": session_id, "uid": user_id}
            ).mappings().fetchone()
        return _to_response(row) if row else None

    def create_session(self, user_id: str, session_config: dict, start_time: datetime,
                       end_time: Optional[datetime] = None, sync_to_calendar: bool = True) -> dict:
        now = utcnow()
        session_id = new_id()
        start_time = to_utc_naive(start_time)
        end_time = to_utc_naive(end_time)

        with get_db_session() as db:
            db.execute(
                text(f"""
                    INSERT INTO scheduled_sessions ({COLUMNS})
                    VALUES (:id, :uid, :config, :start_time, :end_time, 'scheduled', NULL, NULL, :now, :now)
                """),
                {
                    "id": session_id, "uid": user_id, "config": to_json(session_config),
                    "start_time": start_time, "end_time": end_time, "now": now,
                }
            )

        if sync_to_calendar:
            self._create_calendar_event(user_id, session_id, session_config, start_time, end_time)

        logger.info(f"Scheduled session {session_id} for user {user_id} at {start_time.isoformat()}")
        return self.get_session(user_id, session_id)

    def _create_calendar_event(self, user_id: str, session_id: str, config: dict,
                               start_time: datetime, end_time: Optional[datetime]) -> None:
        calendar = get_calendar_client()
        if not calendar.is_calendar_connected(user_id):
            return

        event = calendar.create_event(
            user_id,
            title=event_title(config),
            description=event_description(config),
            start_time=start_time,
            end_time=end_time or start_time + timedelta(minutes=config["duration"]),
            session_id=session_id,
        )
        if not event or not event.get("id"):
            return

        with get_db_session() as db:
            db.execute(
                text("""
                    UPDATE scheduled_sessions SET calendar_event_id = :event_id,
                        google_calendar_id = :calendar_id, updated_at = :now
                    WHERE id = :id
                """),
                {"event_id": event["id"], "calendar_id": DEFAULT_CALENDAR_ID, "now": utcnow(), "id": session_id}
            )

    def update_session(self, user_id: str, session_id: str, updates: dict,
                       sync_to_calendar: bool = False) -> Optional[dict]:
        """
        updates may hold session_config (partial, merged), start_time, end_time, status.
        Raises ValueError when the merged end_time is not after start_time.
        """
        current = self.get_session(user_id, session_id)
        if not current:
            return None

        config_patch = updates.get("session_config") or {}
        assignments = {}
        if config_patch:
            assignments["session_config"] = to_json({**current["session_config"], **config_patch})
        if updates.get("start_time"):
            assignments["start_time"] = to_utc_naive(updates["start_time"])
        if updates.get("end_time"):
            assignments["end_time"] = to_utc_naive(updates["end_time"])
        if updates.get("status"):
            assignments["status"] = updates["status"]

        start_time = assignments.get("start_time") or as_datetime(current["start_time"])
        end_time = assignments.get("end_time") or as_datetime(current["end_time"])
        if end_time is not None and end_time <= start_time:
            raise ValueError("end_time must be after start_time")

        if assignments:
            sql = ", ".join(f"{k} = :{k}" for k in assignments)
            with get_db_session() as db:
                db.execute(
                    text(f"UPDATE scheduled_sessions SET {sql}, updated_at = :now WHERE id = :id AND user_id = :uid"),
                    {**assignments, "now": utcnow(), "id": session_id, "uid": user_id}
                )

        if sync_to_calendar and current["calendar_event_id"]:
            self._sync_calendar_update(user_id, current, config_patch, assignments)

        return self.get_session(user_id, session_id)

    def _sync_calendar_update(self, user_id: str, current: dict, config_patch: dict, assignments: dict) -> None:
        calendar = get_calendar_client()
        if not calendar.is_calendar_connected(user_id):
            return

        title = None
        if config_patch.get("type") or config_patch.get("difficulty"):
            title = event_title({**current["session_config"], **config_patch})

        start_time = assignments.get("start_time")
        end_time = assignments.get("end_time")
        if title is None and start_time is None and end_time is None:
            return

        calendar.update_event(
            user_id, current["calendar_event_id"],
            title=title, start_time=start_time, end_time=end_time,
            calendar_id=current["google_calendar_id"] or DEFAULT_CALENDAR_ID,
        )

    def delete_session(self, user_id: str, session_id: str) -> bool:
        current = self.get_session(user_id, session_id)
        if not current:
            return False

        if current["calendar_event_id"]:
            calendar = get_calendar_client()
            if calendar.is_calendar_connected(user_id):
                calendar.delete_event(
                    user_id, current["calendar_event_id"],
                    calendar_id=current["google_calendar_id"] or DEFAULT_CALENDAR_ID,
                )

        with get_db_session() as db:
            db.execute(
                text("DELETE FROM scheduled_sessions WHERE id = :id AND user_id = :uid"),
                {"id": session_id, "uid": user_id}
            )
        logger.info(f"Deleted scheduled session {session_id}")
        return True


# Singleton
_schedule_service = None


def get_schedule_service() -> ScheduleService:
    global _schedule_service
    if _schedule_service is None:
        _schedule_service = ScheduleService()
    return _schedule_service
