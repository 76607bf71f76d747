"""
User Routes

GET /users/profile - Get own student profile
PUT /users/profile - Update student profile (including skills)
POST /users/avatar - Upload avatar image
POST /users/resume - Upload resume (stores file + extracted text)
GET /users/resume/formats - Get supported resume formats
GET /users/search - Find users to message
GET /users/stats/dashboard - Dashboard counters for the current user
GET /users/{user_id} - Public profile
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Query
from sqlalchemy import text

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one
from internhub.core.auth import get_current_user, get_current_student, get_optional_user
from internhub.services.internship_service import get_student_skills, set_student_skills
from internhub.services.mongo_service import ResumeDocumentService
from internhub.services.notification_service import NotificationService, PreferenceService, notify_user
from internhub.services.wishlist_service import WishlistService
from internhub.utils.dates import utcnow
from internhub.utils.file_upload import save_upload, extract_text, get_supported_formats
from internhub.schemas.schemas import (
    StudentProfileUpdate, StudentProfileResponse, PublicProfileResponse, UserSearchResult,
    FileUploadResponse, ResumeUploadResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

USER_FIELDS = ["name", "phone", "city", "state", "country"]
STUDENT_FIELDS = ["university", "degree", "major", "graduation_year", "gpa", "bio", "portfolio_url"]
REQUIRED_FIELDS = ["name"]

# Fields that count towards profile completion
COMPLETION_FIELDS = [
    "phone", "city", "country", "avatar_url", "university", "degree", "major",
    "graduation_year", "bio", "resume_url",
]


def load_student_profile(student_id: int) -> dict:
    row = fetch_one("""
        SELECT s.student_id, s.user_id, u.name, u.email, u.phone, u.avatar_url, u.city, u.state,
               u.country, s.university, s.degree, s.major, s.graduation_year, s.gpa, s.bio,
               s.portfolio_url, s.resume_url, s.created_at
        FROM students s JOIN users u ON s.user_id = u.user_id
        WHERE s.student_id = :id
    """, {"id": student_id})
    row["skills"] = get_student_skills(student_id)
    return row


def profile_completion(profile: dict) -> int:
    """Percentage of optional profile fields that are filled in (skills count once)."""
    filled = sum(1 for field in COMPLETION_FIELDS if profile.get(field))
    filled += 1 if profile.get("skills") else 0
    return round(filled * 100 / (len(COMPLETION_FIELDS) + 1))


@router.get("/profile", response_model=StudentProfileResponse)
async def get_profile(student: dict = Depends(get_current_student)):
    """Get current student's profile with skills."""
    return StudentProfileResponse(**load_student_profile(student["student_id"]))


@router.put("/profile", response_model=StudentProfileResponse)
async def update_profile(data: StudentProfileUpdate, student: dict = Depends(get_current_student)):
    """Update student profile. Only provided fields are updated; `skills` replaces the list."""
    fields = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k not in REQUIRED_FIELDS
    }

    user_updates = [f"{f} = :{f}" for f in USER_FIELDS if f in fields]
    student_updates = [f"{f} = :{f}" for f in STUDENT_FIELDS if f in fields]
    params = {f: fields[f] for f in USER_FIELDS + STUDENT_FIELDS if f in fields}
    params.update({"uid": student["user_id"], "sid": student["student_id"], "now": utcnow()})

    with get_db_session() as db:
        if user_updates:
            db.execute(
                text(f"UPDATE users SET {', '.join(user_updates)}, updated_at = :now WHERE user_id = :uid"),
                params
            )
        if student_updates:
            db.execute(
                text(f"UPDATE students SET {', '.join(student_updates)}, updated_at = :now WHERE student_id = :sid"),
                params
            )
        if fields.get("skills") is not None:
            set_student_skills(db, student["student_id"], fields["skills"])

    return StudentProfileResponse(**load_student_profile(student["student_id"]))


@router.post("/avatar", response_model=FileUploadResponse)
async def upload_avatar(
    file: UploadFile = File(..., description="Avatar image (JPG, PNG, GIF)"),
    user: dict = Depends(get_current_user)
):
    """Upload an avatar for the current user."""
    stored = await save_upload(file, "avatar")

    with get_db_session() as db:
        db.execute(
            text("UPDATE users SET avatar_url = :url, updated_at = :now WHERE user_id = :id"),
            {"url": stored["url"], "now": utcnow(), "id": user["user_id"]}
        )

    return FileUploadResponse(message="Avatar uploaded successfully", url=stored["url"], filename=stored["filename"])


@router.post("/resume", response_model=ResumeUploadResponse)
async def upload_resume(
    file: UploadFile = File(..., description="Resume file (PDF, DOC, DOCX)"),
    student: dict = Depends(get_current_student)
):
    """
    Upload a resume.

    Process:
    1. Store the file under uploads/resumes
    2. Point the profile's resume_url at it
    3. Extract text (PDF/DOCX/TXT) and store it in MongoDB
    """
    stored = await save_upload(file, "resume")

    with get_db_session() as db:
        db.execute(
            text("UPDATE students SET resume_url = :url, updated_at = :now WHERE student_id = :id"),
            {"url": stored["url"], "now": utcnow(), "id": student["student_id"]}
        )

    try:
        resume_text = extract_text(stored["content"], stored["ext"])
    except ValueError as e:
        logger.warning(f"Resume text extraction failed for student {student['student_id']}: {e}")
        resume_text = ""

    if resume_text.strip():
        ResumeDocumentService().insert(
            student_id=student["student_id"],
            resume_text=resume_text,
            filename=stored["original_name"],
            file_url=stored["url"]
        )

    return ResumeUploadResponse(
        message="Resume uploaded successfully",
        url=stored["url"],
        filename=stored["filename"],
        text_extracted=bool(resume_text.strip()),
        characters=len(resume_text)
    )


@router.get("/resume/formats")
async def resume_formats():
    """Get supported resume file formats."""
    return get_supported_formats()


@router.get("/search", response_model=List[UserSearchResult])
async def search_users(
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    user: dict = Depends(get_current_user)
):
    """Find active users by name or email (excluding yourself), e.g. to start a conversation."""
    results = execute_raw_sql(f"""
        SELECT user_id, name, email, role, avatar_url FROM users
        WHERE is_active = TRUE AND user_id != :me
          AND (LOWER(name) LIKE :q OR LOWER(email) LIKE :q)
        ORDER BY name, user_id
        LIMIT {limit}
    """, {"me": user["user_id"], "q": f"%{query.lower()}%"})
    return [UserSearchResult(**r) for r in results]


@router.get("/stats/dashboard")
async def dashboard_stats(user: dict = Depends(get_current_user)):
    """Per-role dashboard counters."""
    unread = NotificationService().unread_count(user["user_id"])

    if user["role"] == "student":
        student = fetch_one("SELECT student_id FROM students WHERE user_id = :id", {"id": user["user_id"]})
        rows = execute_raw_sql(
            "SELECT status, COUNT(*) AS count FROM applications WHERE student_id = :sid GROUP BY status",
            {"sid": student["student_id"]}
        )
        by_status = {r["status"]: r["count"] for r in rows}
        profile = load_student_profile(student["student_id"])
        return {
            "total_applications": sum(by_status.values()),
            "pending_applications": by_status.get("pending", 0),
            "accepted_applications": by_status.get("accepted", 0),
            "rejected_applications": by_status.get("rejected", 0),
            "applications_by_status": by_status,
            "saved_internships": WishlistService().stats(user["user_id"])["total"],
            "unread_notifications": unread,
            "profile_completion": profile_completion(profile),
        }

    if user["role"] == "company":
        company = fetch_one("SELECT company_id FROM companies WHERE user_id = :id", {"id": user["user_id"]})
        postings = fetch_one("""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END) AS active,
                   COALESCE(SUM(views), 0) AS views
            FROM internships WHERE company_id = :cid
        """, {"cid": company["company_id"]})
        apps = fetch_one("""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending
            FROM applications WHERE company_id = :cid
        """, {"cid": company["company_id"]})
        return {
            "total_internships": postings["total"],
            "active_internships": postings["active"] or 0,
            "total_views": postings["views"],
            "total_applications": apps["total"],
            "pending_applications": apps["pending"] or 0,
            "unread_notifications": unread,
        }

    totals = fetch_one("""
        SELECT (SELECT COUNT(*) FROM users) AS total_users,
               (SELECT COUNT(*) FROM internships) AS total_internships,
               (SELECT COUNT(*) FROM applications) AS total_applications
    """)
    totals["unread_notifications"] = unread
    return totals


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_public_profile(user_id: int, viewer: Optional[dict] = Depends(get_optional_user)):
    """Public profile of any active user. Private profiles are visible to their owner and admins only."""
    row = fetch_one("""
        SELECT u.user_id, u.name, u.role, u.avatar_url, u.city, u.country, u.created_at,
               s.student_id, s.university, s.degree, s.major,
               c.company_name, c.industry, c.website, c.is_verified
        FROM users u
        LEFT JOIN students s ON s.user_id = u.user_id
        LEFT JOIN companies c ON c.user_id = u.user_id
        WHERE u.user_id = :id AND u.is_active = TRUE
    """, {"id": user_id})

    if not row:
        raise HTTPException(status_code=404, detail="User not found")

    is_self_or_admin = viewer is not None and (viewer["user_id"] == user_id or viewer["role"] == "admin")
    if not is_self_or_admin and PreferenceService().get(user_id)["profile_visibility"] == "private":
        raise HTTPException(status_code=403, detail="Profile is private")

    row["skills"] = get_student_skills(row["student_id"]) if row["student_id"] else []
    if row["is_verified"] is not None:
        row["is_verified"] = bool(row["is_verified"])

    if viewer and viewer["role"] == "company" and row["role"] == "student":
        await notify_user(
            user_id,
            "profile_view",
            "Profile Viewed",
            f"{viewer['name']} viewed your profile",
            sender_id=viewer["user_id"],
            priority="low",
        )

    return PublicProfileResponse(**row)
