"""
MongoDB Connection Utility

MongoDB stores:
- Notifications (flexible `data` payloads per notification type)
- Wishlist items (user-assigned notes, tags, reminders)
- Notification preferences
- Conversations and messages
- Extracted resume text

WHY MongoDB for these?
- Schema-flexible: payloads vary by type
- Document-oriented: each record is self-contained
- High write volume (notification fan-out) with simple per-user reads
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from internhub.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

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
    """Get the internhub_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def use_client(client: MongoClient, db_name: str = None) -> None:
    """Point the module at an already-built client (tests, scripts)."""
    global _client, _db
    _client = client
    _db = client[db_name or settings.mongodb_db]


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
    "notifications": "notifications",
    "wishlist": "wishlist_items",
    "preferences": "notification_preferences",
    "conversations": "conversations",
    "messages": "messages",
    "resumes": "resume_documents"
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    notifications = db[COLLECTIONS["notifications"]]
    notifications.create_index([("recipient_id", ASCENDING), ("read", ASCENDING), ("created_at", DESCENDING)])
    notifications.create_index([("type", ASCENDING), ("created_at", DESCENDING)])

    wishlist = db[COLLECTIONS["wishlist"]]
    # One item per student per internship
    wishlist.create_index([("user_id", ASCENDING), ("internship_id", ASCENDING)], unique=True)
    wishlist.create_index([("user_id", ASCENDING), ("is_active", ASCENDING), ("priority_rank", DESCENDING)])
    wishlist.create_index([("reminder_date", ASCENDING), ("is_active", ASCENDING)])

    db[COLLECTIONS["preferences"]].create_index("user_id", unique=True)

    db[COLLECTIONS["conversations"]].create_index([("participants", ASCENDING), ("last_message_at", DESCENDING)])
    db[COLLECTIONS["messages"]].create_index([("conversation_id", ASCENDING), ("created_at", ASCENDING)])

    db[COLLECTIONS["resumes"]].create_index([("student_id", ASCENDING), ("uploaded_at", DESCENDING)])

    logger.info("MongoDB indexes created successfully")
