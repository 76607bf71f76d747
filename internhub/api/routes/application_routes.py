"""
Application Routes

POST /applications - Apply to a posting (student only, multipart form)
GET /applications/my - Student's own applications
GET /applications/company - Applications to the company's postings
GET /applications/{application_id} - Application details with timeline
PUT /applications/{application_id}/status - Update status (owning company)
PUT /applications/{application_id}/interview - Schedule interview (owning company)
PUT /applications/{application_id}/withdraw - Withdraw (applicant)
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Form, UploadFile, File
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one
from internhub.core.auth import get_current_user, get_current_student, get_current_company
from internhub.services.internship_service import get_internship
from internhub.services.notification_service import build_data, notify_user
from internhub.services.realtime import manager
from internhub.services.wishlist_service import WishlistService
from internhub.services.workflow import (
    WorkflowError, status_message, timeline_entry,
    validate_company_transition, validate_interview, validate_withdrawal
)
from internhub.utils.dates import as_datetime, utcnow
from internhub.utils.file_upload import discard_uploads, read_upload, store_upload
from internhub.utils.pagination import offset, paginate
from internhub.schemas.schemas import (
    ApplicationAnswer, ApplicationResponse, ApplicationDetailResponse, ApplicationListResponse,
    ApplicationStatus, ApplicationStatusUpdate, InterviewSchedule, WithdrawRequest
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])

COVER_LETTER_MAX = 1000
MAX_DOCUMENTS = 3

APPLICATION_SELECT = """
    SELECT a.application_id, a.internship_id, i.title AS internship_title, a.company_id,
           c.company_name, c.user_id AS company_user_id, a.student_id, s.user_id AS student_user_id,
           u.name AS student_name, u.email AS student_email, a.status, a.cover_letter, a.resume_url,
           a.answers, a.priority, a.withdrawal_reason, a.rejection_reason, a.interview_scheduled,
           a.interview_at, a.interview_type, a.interview_link, a.interview_location,
           a.interview_notes, a.created_at, a.updated_at
    FROM applications a
    JOIN internships i ON a.internship_id = i.internship_id
    JOIN companies c ON a.company_id = c.company_id
    JOIN students s ON a.student_id = s.student_id
    JOIN users u ON s.user_id = u.user_id
"""

INSERT_TIMELINE = text("""
    INSERT INTO application_timeline (application_id, status, note, updated_by, created_at)
    VALUES (:application_id, :status, :note, :updated_by, :created_at)
""")


def load_application(application_id: int) -> dict:
    row = fetch_one(APPLICATION_SELECT + " WHERE a.application_id = :aid", {"aid": application_id})
    if not row:
        raise HTTPException(status_code=404, detail="Application not found")
    return row


def detail(row: dict) -> ApplicationDetailResponse:
    """Full application view: answers, documents, timeline and interview."""
    timeline = execute_raw_sql("""
        SELECT status, note, updated_by, created_at FROM application_timeline
        WHERE application_id = :aid ORDER BY created_at, timeline_id
    """, {"aid": row["application_id"]})
    documents = execute_raw_sql("""
        SELECT name, url, content_type FROM application_documents
        WHERE application_id = :aid ORDER BY document_id
    """, {"aid": row["application_id"]})

    data = dict(row)
    data["answers"] = json.loads(row["answers"]) if row["answers"] else []
    data["timeline"] = timeline
    data["documents"] = documents
    data["interview"] = {
        "scheduled": bool(row["interview_scheduled"]),
        "scheduled_at": row["interview_at"],
        "interview_type": row["interview_type"],
        "link": row["interview_link"],
        "location": row["interview_location"],
        "notes": row["interview_notes"],
    }
    return ApplicationDetailResponse(**data)


def parse_answers(raw: Optional[str]) -> List[dict]:
    if not raw:
        return []
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("answers must be a list")
        return [ApplicationAnswer(**item).model_dump() for item in items]
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid answers: {e}")


def require_owner(row: dict, company: dict) -> None:
    if row["company_id"] != company["company_id"]:
        raise HTTPException(status_code=403, detail="Not authorized to manage this application")


@router.post("", response_model=ApplicationDetailResponse, status_code=201)
async def apply(
    internship_id: int = Form(...),
    cover_letter: Optional[str] = Form(None),
    answers: Optional[str] = Form(None, description='JSON list of {"question", "answer"}'),
    resume: Optional[UploadFile] = File(None),
    documents: List[UploadFile] = File(default=[]),
    student: dict = Depends(get_current_student)
):
    """
    Apply to a posting. Students only. One application per posting.

    Uses the uploaded resume, or the profile resume when none is sent.
    """
    internship = get_internship(internship_id)
    if not internship:
        raise HTTPException(status_code=404, detail="Internship not found")

    if internship["status"] != "active" or as_datetime(internship["application_deadline"]) < utcnow():
        raise HTTPException(status_code=400, detail="This internship is no longer accepting applications")

    existing = fetch_one(
        "SELECT application_id FROM applications WHERE internship_id = :iid AND student_id = :sid",
        {"iid": internship_id, "sid": student["student_id"]}
    )
    if existing:
        raise HTTPException(status_code=400, detail="You have already applied to this internship")

    if internship["applications_count"] >= internship["max_applications"]:
        raise HTTPException(status_code=400, detail="This internship has reached its maximum number of applications")

    if cover_letter and len(cover_letter) > COVER_LETTER_MAX:
        raise HTTPException(status_code=400, detail=f"Cover letter cannot exceed {COVER_LETTER_MAX} characters")

    parsed_answers = parse_answers(answers)

    documents = [d for d in documents if d.filename]
    if len(documents) > MAX_DOCUMENTS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_DOCUMENTS} additional documents are allowed")

    # Validate every file before anything is written to disk
    resume_upload = None
    if resume is not None and resume.filename:
        resume_upload = await read_upload(resume, "resume")
    else:
        profile = fetch_one("SELECT resume_url FROM students WHERE student_id = :sid", {"sid": student["student_id"]})
        resume_url = profile["resume_url"]
        if not resume_url:
            raise HTTPException(status_code=400, detail="Resume is required. Upload one or add it to your profile.")
    document_uploads = [await read_upload(d, "document") for d in documents]

    stored = []
    if resume_upload:
        stored.append(store_upload(resume_upload))
        resume_url = stored[0]["url"]
    stored_documents = [store_upload(d) for d in document_uploads]
    stored.extend(stored_documents)

    now = utcnow()
    try:
        with get_db_session() as db:
            result = db.execute(
                text("""
                    INSERT INTO applications (internship_id, student_id, company_id, status, cover_letter,
                        resume_url, answers, created_at, updated_at)
                    VALUES (:iid, :sid, :cid, 'pending', :cover, :resume_url, :answers, :now, :now)
                    RETURNING application_id
                """),
                {
                    "iid": internship_id, "sid": student["student_id"], "cid": internship["company_id"],
                    "cover": cover_letter, "resume_url": resume_url,
                    "answers": json.dumps(parsed_answers), "now": now
                }
            )
            application_id = result.fetchone()[0]

            db.execute(INSERT_TIMELINE, {
                "application_id": application_id,
                **timeline_entry("pending", "Application submitted", student["user_id"]),
            })
            for doc in stored_documents:
                db.execute(
                    text("""
                        INSERT INTO application_documents (application_id, name, url, content_type)
                        VALUES (:aid, :name, :url, :content_type)
                    """),
                    {"aid": application_id, "name": doc["original_name"], "url": doc["url"],
                     "content_type": doc["content_type"]}
                )
            db.execute(
                text("UPDATE internships SET applications_count = applications_count + 1 WHERE internship_id = :iid"),
                {"iid": internship_id}
            )
    except IntegrityError:
        discard_uploads(stored)
        raise HTTPException(status_code=400, detail="You have already applied to this internship")
    except Exception:
        discard_uploads(stored)
        raise

    logger.info(f"Student {student['student_id']} applied to internship {internship_id}")

    WishlistService().sync_applied(student["user_id"], internship_id)

    await notify_user(
        internship["company_user_id"],
        "application_received",
        "New Application Received",
        f"{student['name']} applied for {internship['title']}",
        sender_id=student["user_id"],
        data=build_data(
            internship_id=internship_id,
            application_id=application_id,
            url=f"/company/applications/{application_id}",
            action_required=True,
        ),
    )
    await manager.emit_to_user(internship["company_user_id"], "application:new", {
        "application_id": application_id,
        "internship_id": internship_id,
        "internship_title": internship["title"],
        "student_name": student["name"],
    })

    return detail(load_application(application_id))


@router.get("/my", response_model=ApplicationListResponse)
async def my_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: Optional[ApplicationStatus] = Query(None),
    student: dict = Depends(get_current_student)
):
    """Get the current student's applications, newest first."""
    where = " WHERE a.student_id = :sid"
    params = {"sid": student["student_id"]}
    if status:
        where += " AND a.status = :status"
        params["status"] = status.value

    total = fetch_one("SELECT COUNT(*) AS total FROM applications a" + where, params)["total"]
    sql = APPLICATION_SELECT + where
    sql += f" ORDER BY a.created_at DESC, a.application_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"
    results = execute_raw_sql(sql, params)

    return ApplicationListResponse(
        applications=[ApplicationResponse(**r) for r in results],
        pagination=paginate(page, limit, total)
    )


@router.get("/company", response_model=ApplicationListResponse)
async def company_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: Optional[ApplicationStatus] = Query(None),
    internship_id: Optional[int] = Query(None),
    company: dict = Depends(get_current_company)
):
    """Get applications to the company's postings, newest first."""
    where = " WHERE a.company_id = :cid"
    params = {"cid": company["company_id"]}
    if status:
        where += " AND a.status = :status"
        params["status"] = status.value
    if internship_id:
        where += " AND a.internship_id = :iid"
        params["iid"] = internship_id

    total = fetch_one("SELECT COUNT(*) AS total FROM applications a" + where, params)["total"]
    sql = APPLICATION_SELECT + where
    sql += f" ORDER BY a.created_at DESC, a.application_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"
    results = execute_raw_sql(sql, params)

    return ApplicationListResponse(
        applications=[ApplicationResponse(**r) for r in results],
        pagination=paginate(page, limit, total)
    )


@router.get("/{application_id}", response_model=ApplicationDetailResponse)
async def get_application(application_id: int, user: dict = Depends(get_current_user)):
    """Application details. Visible to the applicant, the owning company and admins."""
    row = load_application(application_id)

    if user["user_id"] not in (row["student_user_id"], row["company_user_id"]) and user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Not authorized to view this application")

    return detail(row)


@router.put("/{application_id}/status", response_model=ApplicationDetailResponse)
async def update_status(
    application_id: int,
    update: ApplicationStatusUpdate,
    company: dict = Depends(get_current_company)
):
    """Move an application to a new status and tell the applicant."""
    row = load_application(application_id)
    require_owner(row, company)

    new_status = update.status.value
    try:
        validate_company_transition(row["status"], new_status)
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))

    params = {"aid": application_id, "status": new_status, "now": utcnow()}
    sql = "UPDATE applications SET status = :status, updated_at = :now"
    if new_status == "rejected" and update.rejection_reason:
        sql += ", rejection_reason = :reason"
        params["reason"] = update.rejection_reason

    with get_db_session() as db:
        db.execute(text(sql + " WHERE application_id = :aid"), params)
        db.execute(INSERT_TIMELINE, {
            "application_id": application_id,
            **timeline_entry(new_status, update.note, company["user_id"]),
        })

    logger.info(f"Application {application_id}: {row['status']} -> {new_status}")

    await notify_user(
        row["student_user_id"],
        "application_status_update",
        "Application Status Updated",
        status_message(new_status, row["internship_title"]),
        sender_id=company["user_id"],
        data=build_data(
            internship_id=row["internship_id"],
            application_id=application_id,
            url=f"/applications/{application_id}",
            metadata={"old_status": row["status"], "new_status": new_status},
        ),
        priority="high" if new_status in ("accepted", "shortlisted") else "medium",
    )
    await manager.emit_to_user(row["student_user_id"], "application:status_changed", {
        "application_id": application_id,
        "internship_id": row["internship_id"],
        "internship_title": row["internship_title"],
        "status": new_status,
    })

    return detail(load_application(application_id))


@router.put("/{application_id}/interview", response_model=ApplicationDetailResponse)
async def schedule_interview(
    application_id: int,
    interview: InterviewSchedule,
    company: dict = Depends(get_current_company)
):
    """Schedule an interview. The status is left unchanged; a timeline note records it."""
    row = load_application(application_id)
    require_owner(row, company)

    try:
        validate_interview(row["status"])
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))

    scheduled_at = as_datetime(interview.scheduled_at)
    when = scheduled_at.strftime("%B %d, %Y at %I:%M %p")

    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE applications SET interview_scheduled = TRUE, interview_at = :at, interview_type = :type,
                    interview_link = :link, interview_location = :location, interview_notes = :notes,
                    updated_at = :now
                WHERE application_id = :aid
            """),
            {
                "aid": application_id, "at": scheduled_at, "type": interview.interview_type.value,
                "link": interview.link, "location": interview.location, "notes": interview.notes,
                "now": utcnow()
            }
        )
        db.execute(INSERT_TIMELINE, {
            "application_id": application_id,
            **timeline_entry(row["status"], f"Interview scheduled for {when}", company["user_id"]),
        })

    await notify_user(
        row["student_user_id"],
        "interview_scheduled",
        "Interview Scheduled",
        f"Your {interview.interview_type.value} interview for {row['internship_title']} is scheduled for {when}",
        sender_id=company["user_id"],
        data=build_data(
            internship_id=row["internship_id"],
            application_id=application_id,
            url=f"/applications/{application_id}",
            action_required=True,
            metadata={"scheduled_at": scheduled_at.isoformat(), "link": interview.link},
        ),
        priority="high",
    )

    return detail(load_application(application_id))


@router.put("/{application_id}/withdraw", response_model=ApplicationDetailResponse)
async def withdraw(
    application_id: int,
    request: WithdrawRequest,
    student: dict = Depends(get_current_student)
):
    """Withdraw an application that has not been decided yet."""
    row = load_application(application_id)
    if row["student_id"] != student["student_id"]:
        raise HTTPException(status_code=403, detail="Not authorized to withdraw this application")

    try:
        validate_withdrawal(row["status"])
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))

    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE applications SET status = 'withdrawn', withdrawal_reason = :reason, updated_at = :now
                WHERE application_id = :aid
            """),
            {"aid": application_id, "reason": request.reason, "now": utcnow()}
        )
        db.execute(INSERT_TIMELINE, {
            "application_id": application_id,
            **timeline_entry("withdrawn", request.reason or "Withdrawn by applicant", student["user_id"]),
        })

    await notify_user(
        row["company_user_id"],
        "application_status_update",
        "Application Withdrawn",
        f"{row['student_name']} withdrew their application for {row['internship_title']}",
        sender_id=student["user_id"],
        data=build_data(
            internship_id=row["internship_id"],
            application_id=application_id,
            metadata={"old_status": row["status"], "new_status": "withdrawn"},
        ),
    )
    await manager.emit_to_user(row["company_user_id"], "application:status_changed", {
        "application_id": application_id,
        "internship_id": row["internship_id"],
        "status": "withdrawn",
    })

    return detail(load_application(application_id))
