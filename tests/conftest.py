"""
Shared pytest fixtures.

Postgres is replaced by a SQLite file (schema.sql is portable SQL) and MongoDB
by mongomock. Outbound HTTP clients are swapped per test for instances built
on httpx.MockTransport.

Run with: pytest tests -v
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="prepcoach-tests-"))

# Settings are read once, so the environment must be in place before importing prepcoach
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'prepcoach.db'}"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["AUTH_SERVICE_KEY"] = "test-service-key"
os.environ["AUTH_URL"] = "https://auth.test"
os.environ["APP_URL"] = "https://app.test"
os.environ["OPENAI_API_KEY"] = ""
os.environ["RAPIDAPI_KEY"] = "test-rapidapi-key"
os.environ["ELEVENLABS_API_KEY"] = "test-elevenlabs-key"
os.environ["EMAIL_WEBHOOK_URL"] = ""
os.environ["GOOGLE_CLIENT_ID"] = "test-google-client"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-google-secret"
os.environ["LOG_LEVEL"] = "WARNING"

import mongomock
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import text

from prepcoach.db import mongodb

mongodb._db = mongomock.MongoClient()["prepcoach_test"]

from prepcoach.db.postgres import init_schema, get_db_session
from prepcoach.main import app
from prepcoach.api.routes import job_routes
from prepcoach.services import (
    auth_admin_client, calendar_client, email_service, job_service, tts_client, ai_client
)

SQL_TABLES = [
    "questions",
    "question_banks",
    "scheduled_sessions",
    "job_feeds",
    "email_verification_tokens",
    "user_scoring_weights",
    "user_profiles",
]

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


def make_token(user_id: str = USER_ID, email: str = "candidate@example.com", expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {
            "sub": user_id,
            "email": email,
            "aud": "authenticated",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        },
        os.environ["AUTH_JWT_SECRET"],
        algorithm="HS256",
    )


def auth_header(user_id: str = USER_ID) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture(scope="session", autouse=True)
def database_schema():
    init_schema()
    yield


@pytest.fixture(autouse=True)
def clean_state():
    """Empty every table and collection and drop cached HTTP clients."""
    with get_db_session() as db:
        for table in SQL_TABLES:
            db.execute(text(f"DELETE FROM {table}"))
    for name in mongodb.COLLECTIONS.values():
        mongodb._db[name].delete_many({})

    job_routes.rate_limiter.reset()
    auth_admin_client._auth_admin_client = None
    calendar_client._calendar_client = None
    email_service._email_service = None
    job_service._job_service = None
    tts_client._tts_client = None
    ai_client._ai_client = None
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def headers():
    return auth_header(USER_ID)


@pytest.fixture
def other_headers():
    return auth_header(OTHER_USER_ID)
