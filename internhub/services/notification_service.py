"""
Notification Service - persisted notifications plus live delivery.

Provides:
- NotificationService: CRUD over the notifications collection
- PreferenceService: per-user notification preferences
- notify_user / notify_users / notify_role: persist, then push over WebSocket
- Notifiers for posting events (new posting fan-out, posting updates)

A notification is always persisted. It is pushed live only when the
recipient has an open socket and `push_notifications` is on. Failures while
notifying are logged and never propagate to the request that caused them.
"""

import logging
from datetime import timedelta
from typing import Optional, List, Tuple

from pymongo.collection import Collection

from internhub.db.mongodb import get_collection, COLLECTIONS
from internhub.db.postgres import execute_raw_sql
from internhub.services.mongo_service import serialize_doc, serialize_docs, parse_object_id
from internhub.services.realtime import manager
from internhub.services.wishlist_service import PRIORITY_RANK, WishlistService
from internhub.utils.dates import as_datetime, utcnow

logger = logging.getLogger(__name__)

TITLE_MAX = 100
MESSAGE_MAX = 500

DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "push_notifications": True,
    "wishlist_reminders": True,
    "deadline_alerts": True,
    "new_match_alerts": True,
    "profile_visibility": "public",
}


def build_data(**fields) -> dict:
    data = {
        "internship_id": None,
        "application_id": None,
        "wishlist_id": None,
        "conversation_id": None,
        "url": None,
        "action_required": False,
        "metadata": {},
    }
    data.update({k: v for k, v in fields.items() if v is not None})
    return data


# ============================================================
# NOTIFICATIONS COLLECTION
# ============================================================

class NotificationService:
    """Handles notification storage and per-user queries."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["notifications"])

    @staticmethod
    def build(
        recipient_id: int,
        type: str,
        title: str,
        message: str,
        sender_id: int = None,
        data: dict = None,
        priority: str = "medium"
    ) -> dict:
        return {
            "recipient_id": recipient_id,
            "sender_id": sender_id,
            "type": type,
            "title": title[:TITLE_MAX],
            "message": message[:MESSAGE_MAX],
            "data": data or build_data(),
            "read": False,
            "read_at": None,
            "priority": priority,
            "priority_rank": PRIORITY_RANK.get(priority, 2),
            "created_at": utcnow(),
        }

    def create(self, recipient_id: int, type: str, title: str, message: str, **kwargs) -> dict:
        doc = self.build(recipient_id, type, title, message, **kwargs)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def create_many(self, docs: List[dict]) -> List[dict]:
        if not docs:
            return []
        result = self.collection.insert_many(docs)
        for doc, oid in zip(docs, result.inserted_ids):
            doc["_id"] = oid
        return serialize_docs(docs)

    def list_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        type: str = None,
        priority: str = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[dict], int, int]:
        """Returns (notifications, total matching, unread overall)."""
        query = {"recipient_id": user_id}
        if unread_only:
            query["read"] = False
        if type:
            query["type"] = type
        if priority:
            query["priority"] = priority

        total = self.collection.count_documents(query)
        unread = self.collection.count_documents({"recipient_id": user_id, "read": False})
        cursor = (
            self.collection.find(query)
            .sort([("priority_rank", -1), ("created_at", -1)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return serialize_docs(cursor), total, unread

    def unread_count(self, user_id: int) -> int:
        return self.collection.count_documents({"recipient_id": user_id, "read": False})

    def stats(self, user_id: int) -> dict:
        by_type = {}
        by_priority = {}
        for group_field, target in (("type", by_type), ("priority", by_priority)):
            pipeline = [
                {"$match": {"recipient_id": user_id}},
                {"$group": {"_id": f"${group_field}", "count": {"$sum": 1}}},
            ]
            for row in self.collection.aggregate(pipeline):
                target[row["_id"]] = row["count"]

        return {
            "total": self.collection.count_documents({"recipient_id": user_id}),
            "unread": self.unread_count(user_id),
            "by_type": by_type,
            "by_priority": by_priority,
        }

    def mark_read(self, user_id: int, notification_id: str) -> Optional[dict]:
        oid = parse_object_id(notification_id)
        if oid is None:
            return None
        doc = self.collection.find_one({"_id": oid, "recipient_id": user_id})
        if doc is None:
            return None
        if not doc["read"]:
            now = utcnow()
            self.collection.update_one({"_id": oid}, {"$set": {"read": True, "read_at": now}})
            doc.update({"read": True, "read_at": now})
        return serialize_doc(doc)

    def mark_all_read(self, user_id: int) -> int:
        result = self.collection.update_many(
            {"recipient_id": user_id, "read": False},
            {"$set": {"read": True, "read_at": utcnow()}}
        )
        return result.modified_count

    def mark_many_read(self, user_id: int, notification_ids: List[str]) -> int:
        oids = [oid for oid in map(parse_object_id, notification_ids) if oid is not None]
        if not oids:
            return 0
        result = self.collection.update_many(
            {"_id": {"$in": oids}, "recipient_id": user_id, "read": False},
            {"$set": {"read": True, "read_at": utcnow()}}
        )
        return result.modified_count

    def delete(self, user_id: int, notification_id: str) -> bool:
        oid = parse_object_id(notification_id)
        if oid is None:
            return False
        result = self.collection.delete_one({"_id": oid, "recipient_id": user_id})
        return result.deleted_count > 0

    def delete_many(self, user_id: int, notification_ids: List[str]) -> int:
        oids = [oid for oid in map(parse_object_id, notification_ids) if oid is not None]
        if not oids:
            return 0
        result = self.collection.delete_many({"_id": {"$in": oids}, "recipient_id": user_id})
        return result.deleted_count

    def cleanup(self, older_than_days: int) -> int:
        """Delete read notifications older than the retention window."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        result = self.collection.delete_many({"read": True, "created_at": {"$lt": cutoff}})
        return result.deleted_count


# ============================================================
# NOTIFICATION PREFERENCES COLLECTION
# ============================================================

class PreferenceService:
    """One preferences document per user; defaults apply until first saved."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["preferences"])

    def get(self, user_id: int) -> dict:
        doc = self.collection.find_one({"user_id": user_id}) or {}
        return {key: doc.get(key, default) for key, default in DEFAULT_PREFERENCES.items()}

    def update(self, user_id: int, changes: dict) -> dict:
        updates = {k: v for k, v in changes.items() if k in DEFAULT_PREFERENCES and v is not None}
        if updates:
            updates["updated_at"] = utcnow()
            self.collection.update_one({"user_id": user_id}, {"$set": updates}, upsert=True)
        return self.get(user_id)

    def wants(self, user_id: int, key: str) -> bool:
        return bool(self.get(user_id)[key])


# ============================================================
# DELIVERY
# ============================================================

async def push_if_wanted(recipient_id: int, notification: dict) -> bool:
    """Push a stored notification over the socket when the user can get it."""
    if not manager.is_online(recipient_id):
        return False
    if not PreferenceService().wants(recipient_id, "push_notifications"):
        return False
    return await manager.emit_to_user(recipient_id, "notification", notification) > 0


async def notify_user(
    recipient_id: int,
    type: str,
    title: str,
    message: str,
    sender_id: int = None,
    data: dict = None,
    priority: str = "medium"
) -> Optional[dict]:
    """Persist one notification and push it live. Never raises."""
    try:
        notification = NotificationService().create(
            recipient_id, type, title, message,
            sender_id=sender_id, data=data, priority=priority
        )
        await push_if_wanted(recipient_id, notification)
        return notification
    except Exception:
        logger.exception(f"Failed to notify user {recipient_id} ({type})")
        return None


async def notify_users(recipient_ids: List[int], type: str, title: str, message: str, **kwargs) -> int:
    sent = 0
    for recipient_id in recipient_ids:
        if await notify_user(recipient_id, type, title, message, **kwargs) is not None:
            sent += 1
    return sent


def active_user_ids(role: str) -> List[int]:
    rows = execute_raw_sql(
        "SELECT user_id FROM users WHERE role = :role AND is_active = TRUE ORDER BY user_id",
        {"role": role}
    )
    return [row["user_id"] for row in rows]


async def notify_role(
    role: str,
    type: str,
    title: str,
    message: str,
    event: str = "notification",
    payload=None,
    sender_id: int = None,
    data: dict = None,
    priority: str = "medium"
) -> int:
    """
    Persist one notification per active user of `role`, then emit `event`
    once to the role room. Returns the number of notifications stored.
    """
    try:
        service = NotificationService()
        docs = [
            service.build(user_id, type, title, message, sender_id=sender_id, data=data, priority=priority)
            for user_id in active_user_ids(role)
        ]
        stored = service.create_many(docs)
        await manager.emit_to_role(role, event, payload if payload is not None else {
            "type": type, "title": title, "message": message, "data": data, "priority": priority,
        })
        logger.info(f"Notified {len(stored)} {role} user(s): {type}")
        return len(stored)
    except Exception:
        logger.exception(f"Failed to notify role {role} ({type})")
        return 0


# ============================================================
# POSTING NOTIFIERS
# ============================================================

async def notify_new_internship(internship: dict) -> None:
    """
    Fan-out for a newly published posting.

    Every student gets `new_internship`; students whose active wishlist
    already holds a posting of the same category also get one
    `new_similar_internship` (if they opted into match alerts).
    """
    data = build_data(
        internship_id=internship["internship_id"],
        url=f"/internships/{internship['internship_id']}",
        metadata={"category": internship["category"], "company_name": internship["company_name"]},
    )
    await notify_role(
        "student",
        "new_internship",
        "New Internship Posted",
        f"{internship['company_name']} posted a new {internship['category']} internship: {internship['title']}",
        event="internship:created",
        payload=internship,
        data=data,
    )

    try:
        rows = execute_raw_sql(
            "SELECT internship_id FROM internships WHERE category = :category AND internship_id != :id",
            {"category": internship["category"], "id": internship["internship_id"]}
        )
        same_category = [row["internship_id"] for row in rows]
        if not same_category:
            return
        user_ids = sorted({item["user_id"] for item in WishlistService().holders(same_category)})
    except Exception:
        logger.exception("Failed to find wishlist matches for new internship")
        return

    preferences = PreferenceService()
    await notify_users(
        [user_id for user_id in user_ids if preferences.wants(user_id, "new_match_alerts")],
        "new_similar_internship",
        "Similar Internship Available",
        f"A new {internship['category']} internship matches your wishlist: {internship['title']}",
        data=data,
    )


def detect_changes(before: dict, after: dict) -> List[dict]:
    """Compare two posting rows and list changes wishlist holders care about."""
    changes = []
    if as_datetime(after["application_deadline"]) > as_datetime(before["application_deadline"]):
        changes.append({
            "kind": "deadline_extended",
            "message": "The application deadline for {title} has been extended",
            "priority": "high",
            "action_required": True,
        })
    if (before["stipend_amount"], before["stipend_currency"], before["stipend_period"]) != \
            (after["stipend_amount"], after["stipend_currency"], after["stipend_period"]):
        changes.append({
            "kind": "stipend_updated",
            "message": "The stipend for {title} has been updated",
            "priority": "medium",
            "action_required": False,
        })
    location_keys = ("location_type", "city", "state", "country")
    if any(before[k] != after[k] for k in location_keys):
        changes.append({
            "kind": "location_changed",
            "message": "The location for {title} has changed",
            "priority": "medium",
            "action_required": False,
        })
    if sorted(before["skills"]) != sorted(after["skills"]):
        changes.append({
            "kind": "requirements_changed",
            "message": "The required skills for {title} have changed",
            "priority": "medium",
            "action_required": False,
        })
    return changes


async def notify_internship_updated(internship: dict, changes: List[dict]) -> None:
    """Tell wishlist holders about each relevant change, then broadcast the update."""
    if changes:
        try:
            holders = WishlistService().holders([internship["internship_id"]])
        except Exception:
            logger.exception("Failed to load wishlist holders")
            holders = []

        for item in holders:
            for change in changes:
                await notify_user(
                    item["user_id"],
                    "wishlist_internship_updated",
                    "Wishlist Internship Updated",
                    change["message"].format(title=internship["title"]),
                    data=build_data(
                        internship_id=internship["internship_id"],
                        wishlist_id=item["id"],
                        url=f"/internships/{internship['internship_id']}",
                        action_required=change["action_required"],
                        metadata={"change_type": change["kind"]},
                    ),
                    priority=change["priority"],
                )

    await manager.broadcast("internship:updated", internship)
