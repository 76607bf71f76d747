"""
Wishlist Service - saved postings stored in MongoDB.

One document per (user, internship). Removal only clears `is_active`, so
re-adding the same posting reactivates the old document and keeps its notes,
tags and reminder unless the new request overrides them.

Document shape:
{
    "user_id": 12,
    "internship_id": 40,
    "notes": "Ask about remote Fridays",
    "priority": "high",
    "priority_rank": 3,           # numeric copy of priority for sorting
    "tags": ["backend"],
    "reminder_date": datetime,    # naive UTC, None when no reminder
    "application_status": "not_applied",
    "category": "dream_job",
    "is_active": True,
    "created_at": datetime,
    "updated_at": datetime
}
"""

import math
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Tuple

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from internhub.db.mongodb import get_collection, COLLECTIONS
from internhub.db.postgres import execute_raw_sql, in_clause
from internhub.services.mongo_service import serialize_doc, serialize_docs, parse_object_id
from internhub.utils.dates import as_datetime, utcnow

PRIORITY_RANK = {"low": 1, "medium": 2, "high": 3}

DEFAULTS = {
    "notes": None,
    "priority": "medium",
    "tags": [],
    "reminder_date": None,
    "application_status": "not_applied",
    "category": "interested",
}

CLOSING_SOON_DAYS = 7


# ============================================================
# DEADLINE / REMINDER MATH
# ============================================================

def days_until(deadline, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until `deadline`, rounded up (negative once it has passed)."""
    deadline = as_datetime(deadline)
    if deadline is None:
        return None
    now = now or utcnow()
    return math.ceil((deadline - now).total_seconds() / 86400)


def deadline_urgency(days: Optional[int]) -> Optional[str]:
    if days is None:
        return None
    if days <= 1:
        return "high"
    if days <= 3:
        return "medium"
    return "low"


def is_reminder_due(item: dict, now: Optional[datetime] = None) -> bool:
    reminder = as_datetime(item.get("reminder_date"))
    if not item.get("is_active") or reminder is None:
        return False
    return reminder <= (now or utcnow())


def _clean_changes(changes: dict) -> dict:
    """Normalize a partial update before it goes to MongoDB."""
    updates = dict(changes)
    if "priority" in updates:
        if updates["priority"] is None:
            updates["priority"] = DEFAULTS["priority"]
        updates["priority_rank"] = PRIORITY_RANK[updates["priority"]]
    if "reminder_date" in updates:
        updates["reminder_date"] = as_datetime(updates["reminder_date"])
    if updates.get("application_status") == "applied":
        updates["category"] = "applied"
    for key in ("category", "application_status"):
        if key in updates and updates[key] is None:
            updates.pop(key)
    if "tags" in updates and updates["tags"] is None:
        updates["tags"] = []
    return updates


def internship_summaries(internship_ids) -> Dict[int, dict]:
    """Posting summaries keyed by internship_id (missing postings are absent)."""
    ids = sorted(set(internship_ids))
    if not ids:
        return {}
    fragment, params = in_clause("id", ids)
    rows = execute_raw_sql(
        f"""
        SELECT i.internship_id, i.title, c.company_name, i.category, i.location_type,
               i.city, i.stipend_amount, i.stipend_currency, i.application_deadline, i.status
        FROM internships i
        JOIN companies c ON i.company_id = c.company_id
        WHERE i.internship_id IN {fragment}
        """,
        params
    )
    return {row["internship_id"]: row for row in rows}


def decorate(items: List[dict], now: Optional[datetime] = None) -> List[dict]:
    """Embed the posting summary and the computed deadline fields."""
    now = now or utcnow()
    summaries = internship_summaries(item["internship_id"] for item in items)
    for item in items:
        summary = summaries.get(item["internship_id"])
        item["internship"] = summary
        days = days_until(summary["application_deadline"], now) if summary else None
        item["days_until_deadline"] = days
        item["deadline_urgency"] = deadline_urgency(days)
        item["reminder_due"] = is_reminder_due(item, now)
    return items


# ============================================================
# WISHLIST COLLECTION
# ============================================================

class WishlistService:
    """CRUD and queries over the wishlist_items collection."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["wishlist"])

    def find_item(self, user_id: int, internship_id: int) -> Optional[dict]:
        """Item for this posting, active or not."""
        return serialize_doc(self.collection.find_one({"user_id": user_id, "internship_id": internship_id}))

    def get(self, user_id: int, item_id: str) -> Optional[dict]:
        """Active item owned by user_id."""
        oid = parse_object_id(item_id)
        if oid is None:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid, "user_id": user_id, "is_active": True}))

    def add(self, user_id: int, internship_id: int, **fields) -> dict:
        """
        Add a posting, reactivating a previously removed item if one exists.

        Fields left as None keep their stored (or default) value.
        """
        now = utcnow()
        given = _clean_changes({k: v for k, v in fields.items() if v is not None})
        existing = self.collection.find_one({"user_id": user_id, "internship_id": internship_id})

        if existing:
            given.update({"is_active": True, "updated_at": now})
            self.collection.update_one({"_id": existing["_id"]}, {"$set": given})
            return serialize_doc(self.collection.find_one({"_id": existing["_id"]}))

        doc = {**DEFAULTS, "tags": [], **given}
        doc.update({
            "user_id": user_id,
            "internship_id": internship_id,
            "priority_rank": PRIORITY_RANK[doc["priority"]],
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        })
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def list(
        self,
        user_id: int,
        category: str = None,
        priority: str = None,
        application_status: str = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[dict], int]:
        """Active items sorted by priority (high first) then newest."""
        query = {"user_id": user_id, "is_active": True}
        if category:
            query["category"] = category
        if priority:
            query["priority"] = priority
        if application_status:
            query["application_status"] = application_status

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort([("priority_rank", -1), ("created_at", -1)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return serialize_docs(cursor), total

    def update(self, user_id: int, item_id: str, changes: dict) -> Optional[dict]:
        oid = parse_object_id(item_id)
        if oid is None:
            return None
        updates = _clean_changes(changes)
        updates["updated_at"] = utcnow()
        result = self.collection.update_one(
            {"_id": oid, "user_id": user_id, "is_active": True}, {"$set": updates}
        )
        if result.matched_count == 0:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid}))

    def remove(self, user_id: int, item_id: str) -> Optional[dict]:
        """Soft delete. Returns the item as it was, or None if not found."""
        item = self.get(user_id, item_id)
        if item is None:
            return None
        self.collection.update_one(
            {"_id": parse_object_id(item_id)},
            {"$set": {"is_active": False, "updated_at": utcnow()}}
        )
        return item

    def remove_for_internship(self, user_id: int, internship_id: int) -> bool:
        result = self.collection.update_one(
            {"user_id": user_id, "internship_id": internship_id, "is_active": True},
            {"$set": {"is_active": False, "updated_at": utcnow()}}
        )
        return result.modified_count > 0

    def bulk_update(self, user_id: int, items: List[dict]) -> List[dict]:
        """Apply [{id, updates}] one by one; report per-item success."""
        results = []
        for entry in items:
            try:
                updated = self.update(user_id, entry["id"], entry["updates"])
            except PyMongoError as e:
                results.append({"id": entry["id"], "success": False, "error": str(e)})
                continue
            if updated is None:
                results.append({"id": entry["id"], "success": False, "error": "Wishlist item not found"})
            else:
                results.append({"id": entry["id"], "success": True})
        return results

    def stats(self, user_id: int, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        items = list(self.collection.find({"user_id": user_id, "is_active": True}))

        by_category: Dict[str, int] = {}
        by_priority = {"high": 0, "medium": 0, "low": 0}
        for item in items:
            by_category[item["category"]] = by_category.get(item["category"], 0) + 1
            by_priority[item["priority"]] = by_priority.get(item["priority"], 0) + 1

        closing_soon = 0
        if items:
            fragment, params = in_clause("id", sorted({item["internship_id"] for item in items}))
            params.update({"now": now, "soon": now + timedelta(days=CLOSING_SOON_DAYS)})
            rows = execute_raw_sql(
                f"""
                SELECT internship_id FROM internships
                WHERE internship_id IN {fragment}
                  AND status = 'active'
                  AND application_deadline >= :now
                  AND application_deadline <= :soon
                """,
                params
            )
            closing_ids = {row["internship_id"] for row in rows}
            closing_soon = sum(1 for item in items if item["internship_id"] in closing_ids)

        return {
            "total": len(items),
            "by_category": by_category,
            "by_priority": by_priority,
            "reminders_due": sum(1 for item in items if is_reminder_due(item, now)),
            "closing_soon": closing_soon,
        }

    def due_reminders(self, user_id: int = None, now: Optional[datetime] = None) -> List[dict]:
        """Active items whose reminder has come due, oldest reminder first."""
        query = {"is_active": True, "reminder_date": {"$ne": None, "$lte": now or utcnow()}}
        if user_id is not None:
            query["user_id"] = user_id
        return serialize_docs(self.collection.find(query).sort("reminder_date", 1))

    def clear_reminder(self, item_id: str) -> None:
        self.collection.update_one(
            {"_id": parse_object_id(item_id)},
            {"$set": {"reminder_date": None, "updated_at": utcnow()}}
        )

    def sync_applied(self, user_id: int, internship_id: int) -> bool:
        """Mark the user's active item for this posting as applied."""
        result = self.collection.update_one(
            {"user_id": user_id, "internship_id": internship_id, "is_active": True},
            {"$set": {"application_status": "applied", "category": "applied", "updated_at": utcnow()}}
        )
        return result.modified_count > 0

    def holders(self, internship_ids, application_statuses: List[str] = None) -> List[dict]:
        """Active items for any of the given postings."""
        query = {"internship_id": {"$in": list(internship_ids)}, "is_active": True}
        if application_statuses:
            query["application_status"] = {"$in": application_statuses}
        return serialize_docs(self.collection.find(query))

    def mark_expired(self, internship_id: int) -> List[dict]:
        """
        Retire items for an expired posting that the user never applied to.

        Returns the affected items (as they were before the change).
        """
        query = {
            "internship_id": internship_id,
            "is_active": True,
            "application_status": {"$in": ["not_applied", "planning_to_apply"]},
        }
        affected = serialize_docs(self.collection.find(query))
        if affected:
            self.collection.update_many(
                query,
                {"$set": {
                    "application_status": "no_longer_interested",
                    "category": "rejected",
                    "updated_at": utcnow(),
                }}
            )
        return affected

    def users_with_items(self) -> List[int]:
        return sorted(self.collection.distinct("user_id", {"is_active": True}))

    def saved_internship_ids(self, user_id: int, internship_ids) -> List[int]:
        """Which of the given postings the user currently has saved."""
        return self.collection.distinct(
            "internship_id",
            {"user_id": user_id, "is_active": True, "internship_id": {"$in": list(internship_ids)}}
        )
