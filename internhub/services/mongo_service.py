"""
MongoDB Service - shared document helpers and the resume text store.

Collections in this database (see internhub.db.mongodb.COLLECTIONS):
1. notifications            - per-user notification records
2. wishlist_items           - saved postings with user metadata
3. notification_preferences - one document per user
4. conversations / messages - direct messaging
5. resume_documents         - text extracted from uploaded resumes

The per-collection services live next to the feature that owns them
(notification_service, wishlist_service, message_service).
"""

from typing import Optional
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection

from internhub.db.mongodb import get_collection, COLLECTIONS
from internhub.utils.dates import utcnow


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict (``_id`` becomes ``id``)."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def serialize_docs(docs) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Parse a path parameter into an ObjectId; None when malformed."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


# ============================================================
# RESUME DOCUMENTS COLLECTION
# Stores text extracted from uploaded resumes
# ============================================================

class ResumeDocumentService:
    """
    Handles extracted resume text storage.
    One document per upload; the latest one is the current resume.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resumes"])

    def insert(self, student_id: int, resume_text: str, filename: str = None, file_url: str = None) -> str:
        """
        Insert an extracted resume document.

        Args:
            student_id: PostgreSQL student ID (foreign reference)
            resume_text: Extracted text from resume PDF/DOCX/TXT
            filename: Original filename
            file_url: Public URL of the stored file

        Returns:
            MongoDB ObjectId as string
        """
        doc = {
            "student_id": student_id,
            "resume_text": resume_text,
            "filename": filename,
            "file_url": file_url,
            "characters": len(resume_text),
            "uploaded_at": utcnow(),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_by_student(self, student_id: int) -> Optional[dict]:
        """Fetch latest resume document for a student."""
        doc = self.collection.find_one(
            {"student_id": student_id},
            sort=[("uploaded_at", -1)]  # Most recent first
        )
        return serialize_doc(doc)
