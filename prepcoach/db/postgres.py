"""
PostgreSQL Connection Utility

The hosted Postgres database holds the relational rows:
- user_profiles, email_verification_tokens
- question_banks, questions
- scheduled_sessions, job_feeds, user_scoring_weights

Queries are plain SQL through SQLAlchemy `text()`; schema.sql is kept to
portable SQL so the same statements run against a local SQLite file.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager

from prepcoach.core.config import get_settings
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def _build_engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.debug
        )
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.debug  # Log SQL queries in debug mode
    )


engine = _build_engine(settings.sqlalchemy_url)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM question_banks"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        if not result.returns_rows:
            return []
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def init_schema() -> None:
    """Create tables and indexes from schema.sql (idempotent)."""
    statements = [
        s.strip() for s in SCHEMA_PATH.read_text(encoding="utf-8").split(";")
        if s.strip()
    ]
    with get_db_session() as db:
        for statement in statements:
            db.execute(text(statement))
    logger.info(f"Database schema ensured ({len(statements)} statements)")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; all TIMESTAMP columns are stored in UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_datetime(value) -> Optional[datetime]:
    """TIMESTAMP values come back as datetime (psycopg2) or ISO text (sqlite)."""
    if value is None or isinstance(value, datetime):
        return to_utc_naive(value)
    return to_utc_naive(datetime.fromisoformat(str(value)))


def to_json(value) -> str:
    """Serialize a list/dict for a JSON text column."""
    return json.dumps(value if value is not None else [])


def from_json(value, default=None):
    """Read a JSON text column. Drivers that already decode JSON pass through."""
    if value is None or value == "":
        return default
    if isinstance(value, (list, dict)):
        return value
    return json.loads(value)
