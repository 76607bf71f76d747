"""
Messaging Service - conversations and messages stored in MongoDB.

conversations: {participants: [user_id, ...], subject, last_message,
                last_message_at, last_activity, is_active, created_at}
messages:      {conversation_id, sender_id, content, attachments: [...],
                read_by: [user_id, ...], is_deleted, created_at}
"""

from typing import Optional, List, Tuple

from pymongo.collection import Collection

from internhub.db.mongodb import get_collection, COLLECTIONS
from internhub.services.mongo_service import serialize_doc, serialize_docs, parse_object_id
from internhub.utils.dates import utcnow

PREVIEW_LENGTH = 100


class ConversationService:
    """Handles the conversations collection."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["conversations"])

    def find_direct(self, user_a: int, user_b: int) -> Optional[dict]:
        """Existing two-party conversation between the two users."""
        doc = self.collection.find_one({
            "participants": {"$all": [user_a, user_b], "$size": 2},
            "is_active": True,
        })
        return serialize_doc(doc)

    def create(self, participants: List[int], subject: str = None) -> dict:
        now = utcnow()
        doc = {
            "participants": sorted(set(participants)),
            "subject": subject,
            "last_message": None,
            "last_message_at": None,
            "last_activity": now,
            "is_active": True,
            "created_at": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get_for_user(self, conversation_id: str, user_id: int) -> Optional[dict]:
        """Conversation if `user_id` takes part in it."""
        oid = parse_object_id(conversation_id)
        if oid is None:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid, "participants": user_id, "is_active": True}))

    def list_for_user(self, user_id: int, page: int = 1, limit: int = 20) -> Tuple[List[dict], int]:
        query = {"participants": user_id, "is_active": True}
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("last_activity", -1)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return serialize_docs(cursor), total

    def ids_for_user(self, user_id: int) -> List[str]:
        return [str(oid) for oid in self.collection.distinct("_id", {"participants": user_id, "is_active": True})]

    def touch(self, conversation_id: str, preview: str) -> None:
        now = utcnow()
        self.collection.update_one(
            {"_id": parse_object_id(conversation_id)},
            {"$set": {
                "last_message": preview[:PREVIEW_LENGTH],
                "last_message_at": now,
                "last_activity": now,
            }}
        )


class ChatMessageService:
    """Handles the messages collection."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["messages"])

    def create(self, conversation_id: str, sender_id: int, content: str, attachments: List[dict] = None) -> dict:
        doc = {
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "attachments": attachments or [],
            "read_by": [sender_id],
            "is_deleted": False,
            "created_at": utcnow(),
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get(self, message_id: str) -> Optional[dict]:
        oid = parse_object_id(message_id)
        if oid is None:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid, "is_deleted": False}))

    def list(self, conversation_id: str, page: int = 1, limit: int = 50) -> Tuple[List[dict], int]:
        """A page of messages, newest page first, oldest-first within the page."""
        query = {"conversation_id": conversation_id, "is_deleted": False}
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("created_at", -1)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        messages = serialize_docs(cursor)
        messages.reverse()
        return messages, total

    def mark_read(self, conversation_id: str, user_id: int) -> int:
        result = self.collection.update_many(
            {"conversation_id": conversation_id, "read_by": {"$nin": [user_id]}},
            {"$addToSet": {"read_by": user_id}}
        )
        return result.modified_count

    def unread_count(self, user_id: int, conversation_ids: List[str]) -> int:
        if not conversation_ids:
            return 0
        return self.collection.count_documents({
            "conversation_id": {"$in": conversation_ids},
            "read_by": {"$nin": [user_id]},
            "is_deleted": False,
        })

    def soft_delete(self, message_id: str) -> None:
        self.collection.update_one(
            {"_id": parse_object_id(message_id)},
            {"$set": {"is_deleted": True, "deleted_at": utcnow()}}
        )
