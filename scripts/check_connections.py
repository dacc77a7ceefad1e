#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the databases and external services are reachable.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

import httpx

from prepcoach.db.postgres import test_postgres_connection, execute_raw_sql
from prepcoach.db.mongodb import test_mongo_connection
from prepcoach.services.ai_client import get_ai_client, is_ai_configured
from prepcoach.services.tts_client import get_tts_client
from prepcoach.core.config import get_settings

SQL_TABLES = [
    "user_profiles",
    "question_banks",
    "questions",
    "scheduled_sessions",
    "job_feeds",
    "email_verification_tokens",
    "user_scoring_weights",
]


def main():
    settings = get_settings()
    print("=" * 50)
    print("PREPCOACH - CONNECTION CHECK")
    print("=" * 50)

    # PostgreSQL (or the SQLite file from DATABASE_URL)
    print("\n[1] Checking SQL database...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    sql_ok = test_postgres_connection()
    if sql_ok:
        print("    ✅ SQL database: CONNECTED")
        for table in SQL_TABLES:
            rows = execute_raw_sql(f"SELECT COUNT(*) AS n FROM {table}")
            print(f"    {table}: {rows[0]['n']} rows")
    else:
        print("    ❌ SQL database: FAILED")

    # MongoDB
    print("\n[2] Checking MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")

    # AI question generation
    print("\n[3] Checking AI provider...")
    if is_ai_configured():
        print(f"    Base URL: {settings.openai_base_url} ({settings.openai_model})")
        try:
            questions = get_ai_client().generate_questions("Software Engineer", "technical", "easy", 1)
            print(f"    ✅ AI: CONNECTED ({len(questions)} question generated)")
        except Exception as e:
            print(f"    ❌ AI: FAILED ({e})")
    else:
        print("    ⚠️  AI: API key not configured (sessions use the fallback pool)")

    # ElevenLabs
    print("\n[4] Checking text-to-speech...")
    if settings.elevenlabs_api_key:
        try:
            audio = get_tts_client().synthesize("Connection check.")
            print(f"    ✅ ElevenLabs: CONNECTED ({len(audio)} bytes)")
        except (httpx.HTTPError, RuntimeError) as e:
            print(f"    ❌ ElevenLabs: FAILED ({e})")
    else:
        print("    ⚠️  ElevenLabs: API key not configured")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
