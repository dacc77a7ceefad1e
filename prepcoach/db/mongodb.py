"""
MongoDB Connection Utility

MongoDB stores:
- Interview sessions (questions, responses, status transitions)
- Per-session performance metrics (rolling window per user)
- Recommendation choice records (what was suggested vs what the user picked)
- Cached AI-generated questions (fallback pool for new sessions)

WHY MongoDB for these?
- Session documents nest questions and responses
- Score breakdowns and recommendations are schema-flexible
- Each document is self-contained, no joins needed
"""
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection

from prepcoach.core.config import get_settings
from prepcoach.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the prepcoach_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning(f"MongoDB connection failed: {e}")
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "sessions": "interview_sessions",
    "metrics": "performance_metrics",
    "choices": "recommendation_choices",
    "question_cache": "question_cache"
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    db[COLLECTIONS["sessions"]].create_index("session_id", unique=True)
    db[COLLECTIONS["sessions"]].create_index([("user_id", 1), ("created_at", -1)])

    db[COLLECTIONS["metrics"]].create_index([("user_id", 1), ("timestamp", -1)])

    db[COLLECTIONS["choices"]].create_index([("user_id", 1), ("timestamp", -1)])

    db[COLLECTIONS["question_cache"]].create_index([
        ("type", 1),
        ("difficulty", 1)
    ])
    db[COLLECTIONS["question_cache"]].create_index("question", unique=True)

    logger.info("MongoDB indexes created successfully")
