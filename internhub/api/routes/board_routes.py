"""
Job Board Routes - a simpler posting/application flow kept alongside internships.

GET /board/jobs - Active jobs (search, type, location filters)
GET /board/jobs/{job_id} - Job details (counts a view)
POST /board/jobs - Create a job (company only)
PUT /board/jobs/{job_id} - Update own job
DELETE /board/jobs/{job_id} - Delete own job
POST /board/jobs/{job_id}/bookmark - Toggle bookmark
POST /board/applications - Apply to a job (student only)
GET /board/applications/my - Student's own applications
GET /board/applications/company - Applications to the company's jobs
PATCH /board/applications/{application_id}/status - Update status (owning company)
GET /board/applications/{application_id} - Application details
"""

import json
import logging
import math
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one, in_clause
from internhub.core.auth import get_current_user, get_current_student, get_current_company
from internhub.services.notification_service import build_data, notify_user
from internhub.utils.dates import as_datetime, utcnow
from internhub.utils.pagination import offset
from internhub.schemas.schemas import (
    BoardApplicationCreate, BoardApplicationResponse, BoardApplicationStatus, BoardJobCreate,
    BoardJobListResponse, BoardJobResponse, BoardJobType, BoardJobUpdate, BoardPagination,
    BoardStatusUpdate, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/board", tags=["Job Board"])

LIST_FIELDS = ["requirements", "skills", "responsibilities", "benefits"]
JOB_FIELDS = [
    "title", "location", "job_type", "duration", "salary", "description", "deadline",
    "is_active", "is_remote", "is_part_time", "experience_level",
] + LIST_FIELDS
# Columns that accept NULL; a null for any other field is ignored on update
NULLABLE_JOB_FIELDS = ["salary"] + LIST_FIELDS

JOB_SELECT = """
    SELECT j.*, c.company_name, c.user_id AS company_user_id
    FROM board_jobs j JOIN companies c ON j.company_id = c.company_id
"""

APPLICATION_SELECT = """
    SELECT a.application_id, a.job_id, j.title AS job_title, a.company_id, c.company_name,
           c.user_id AS company_user_id, a.student_id, s.user_id AS student_user_id,
           u.name AS student_name, a.status, a.cover_letter, a.resume_url, a.portfolio_url,
           a.company_notes, a.created_at, a.updated_at
    FROM board_applications a
    JOIN board_jobs j ON a.job_id = j.job_id
    JOIN companies c ON a.company_id = c.company_id
    JOIN students s ON a.student_id = s.student_id
    JOIN users u ON s.user_id = u.user_id
"""

INSERT_TIMELINE = text("""
    INSERT INTO board_application_timeline (application_id, status, note, created_at)
    VALUES (:aid, :status, :note, :created_at)
""")


def bookmark_counts(job_ids: List[int]) -> dict:
    if not job_ids:
        return {}
    fragment, params = in_clause("id", job_ids)
    rows = execute_raw_sql(
        f"SELECT job_id, COUNT(*) AS count FROM board_bookmarks WHERE job_id IN {fragment} GROUP BY job_id",
        params
    )
    return {r["job_id"]: r["count"] for r in rows}


def job_response(row: dict, bookmarks: int = 0) -> BoardJobResponse:
    data = dict(row)
    for field in LIST_FIELDS:
        data[field] = json.loads(row[field]) if row[field] else []
    for flag in ("is_active", "is_remote", "is_part_time"):
        data[flag] = bool(row[flag])
    return BoardJobResponse(**data, bookmarks=bookmarks)


def load_job(job_id: int) -> dict:
    row = fetch_one(JOB_SELECT + " WHERE j.job_id = :jid", {"jid": job_id})
    if not row:
        raise HTTPException(status_code=404, detail="Job not found")
    return row


def load_owned_job(job_id: int, company: dict) -> dict:
    row = load_job(job_id)
    if row["company_id"] != company["company_id"]:
        raise HTTPException(status_code=403, detail="Not authorized to modify this job")
    return row


def application_response(row: dict) -> BoardApplicationResponse:
    timeline = execute_raw_sql("""
        SELECT status, note, created_at FROM board_application_timeline
        WHERE application_id = :aid ORDER BY created_at, timeline_id
    """, {"aid": row["application_id"]})
    return BoardApplicationResponse(**row, timeline=timeline)


def load_application(application_id: int) -> dict:
    row = fetch_one(APPLICATION_SELECT + " WHERE a.application_id = :aid", {"aid": application_id})
    if not row:
        raise HTTPException(status_code=404, detail="Application not found")
    return row


def job_params(fields: dict) -> dict:
    """Encode list fields and parse the deadline for SQL."""
    params = {}
    for field, value in fields.items():
        if field in LIST_FIELDS:
            value = json.dumps(value or [])
        elif field == "deadline":
            value = as_datetime(value)
        params[field] = value
    return params


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=BoardJobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title and description"),
    job_type: Optional[BoardJobType] = Query(None, alias="type"),
    location: Optional[str] = Query(None)
):
    """Active jobs, newest first."""
    where = " WHERE j.is_active = TRUE"
    params = {}
    if search:
        where += " AND (LOWER(j.title) LIKE :search OR LOWER(j.description) LIKE :search)"
        params["search"] = f"%{search.lower()}%"
    if job_type:
        where += " AND j.job_type = :job_type"
        params["job_type"] = job_type.value
    if location:
        where += " AND LOWER(j.location) LIKE :location"
        params["location"] = f"%{location.lower()}%"

    total = fetch_one("SELECT COUNT(*) AS total FROM board_jobs j" + where, params)["total"]
    sql = JOB_SELECT + where
    sql += f" ORDER BY j.created_at DESC, j.job_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"
    rows = execute_raw_sql(sql, params)
    bookmarks = bookmark_counts([r["job_id"] for r in rows])

    return BoardJobListResponse(
        jobs=[job_response(r, bookmarks.get(r["job_id"], 0)) for r in rows],
        pagination=BoardPagination(current=page, pages=math.ceil(total / limit) if total else 0, total=total)
    )


@router.get("/jobs/{job_id}", response_model=BoardJobResponse)
async def get_job(job_id: int):
    load_job(job_id)
    with get_db_session() as db:
        db.execute(text("UPDATE board_jobs SET views = views + 1 WHERE job_id = :jid"), {"jid": job_id})
    return job_response(load_job(job_id), bookmark_counts([job_id]).get(job_id, 0))


@router.post("/jobs", response_model=BoardJobResponse, status_code=201)
async def create_job(data: BoardJobCreate, company: dict = Depends(get_current_company)):
    fields = data.model_dump(mode="json")
    if as_datetime(fields["deadline"]) < utcnow():
        raise HTTPException(status_code=400, detail="Deadline must be in the future")

    params = job_params(fields)
    params.update({"company_id": company["company_id"], "now": utcnow()})
    columns = ", ".join(list(fields))
    values = ", ".join(f":{f}" for f in fields)

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO board_jobs (company_id, {columns}, created_at, updated_at)
                VALUES (:company_id, {values}, :now, :now)
                RETURNING job_id
            """),
            params
        )
        job_id = result.fetchone()[0]

    logger.info(f"Company {company['company_id']} posted board job {job_id}")
    return job_response(load_job(job_id))


@router.put("/jobs/{job_id}", response_model=BoardJobResponse)
async def update_job(job_id: int, data: BoardJobUpdate, company: dict = Depends(get_current_company)):
    load_owned_job(job_id, company)

    fields = {
        k: v for k, v in data.model_dump(exclude_unset=True, mode="json").items()
        if k in JOB_FIELDS and (v is not None or k in NULLABLE_JOB_FIELDS)
    }
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    params = job_params(fields)
    params.update({"jid": job_id, "now": utcnow()})
    updates = ", ".join(f"{f} = :{f}" for f in fields)

    with get_db_session() as db:
        db.execute(text(f"UPDATE board_jobs SET {updates}, updated_at = :now WHERE job_id = :jid"), params)

    return job_response(load_job(job_id), bookmark_counts([job_id]).get(job_id, 0))


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, company: dict = Depends(get_current_company)):
    load_owned_job(job_id, company)
    with get_db_session() as db:
        db.execute(text("DELETE FROM board_jobs WHERE job_id = :jid"), {"jid": job_id})
    return MessageResponse(message="Job deleted successfully")


@router.post("/jobs/{job_id}/bookmark")
async def toggle_bookmark(job_id: int, user: dict = Depends(get_current_user)):
    load_job(job_id)
    params = {"jid": job_id, "uid": user["user_id"]}

    existing = fetch_one("SELECT job_id FROM board_bookmarks WHERE job_id = :jid AND user_id = :uid", params)
    with get_db_session() as db:
        if existing:
            db.execute(text("DELETE FROM board_bookmarks WHERE job_id = :jid AND user_id = :uid"), params)
        else:
            db.execute(text("INSERT INTO board_bookmarks (job_id, user_id) VALUES (:jid, :uid)"), params)

    return {
        "bookmarked": not existing,
        "bookmarks": bookmark_counts([job_id]).get(job_id, 0),
    }


# ============================================================
# APPLICATIONS
# ============================================================

@router.post("/applications", response_model=BoardApplicationResponse, status_code=201)
async def apply_to_job(data: BoardApplicationCreate, student: dict = Depends(get_current_student)):
    job = load_job(data.job_id)
    if not job["is_active"] or as_datetime(job["deadline"]) < utcnow():
        raise HTTPException(status_code=400, detail="This job is no longer accepting applications")

    now = utcnow()
    try:
        with get_db_session() as db:
            result = db.execute(
                text("""
                    INSERT INTO board_applications (job_id, student_id, company_id, status, cover_letter,
                        resume_url, portfolio_url, created_at, updated_at)
                    VALUES (:jid, :sid, :cid, 'pending', :cover, :resume_url, :portfolio_url, :now, :now)
                    RETURNING application_id
                """),
                {
                    "jid": data.job_id, "sid": student["student_id"], "cid": job["company_id"],
                    "cover": data.cover_letter, "resume_url": data.resume_url,
                    "portfolio_url": data.portfolio_url, "now": now
                }
            )
            application_id = result.fetchone()[0]
            db.execute(INSERT_TIMELINE, {
                "aid": application_id, "status": "pending", "note": "Application submitted", "created_at": now
            })
    except IntegrityError:
        raise HTTPException(status_code=400, detail="You have already applied to this job")

    await notify_user(
        job["company_user_id"],
        "application_received",
        "New Application Received",
        f"{student['name']} applied for {job['title']}",
        sender_id=student["user_id"],
        data=build_data(metadata={"board_job_id": data.job_id, "board_application_id": application_id}),
    )

    return application_response(load_application(application_id))


@router.get("/applications/my", response_model=List[BoardApplicationResponse])
async def my_board_applications(student: dict = Depends(get_current_student)):
    rows = execute_raw_sql(
        APPLICATION_SELECT + " WHERE a.student_id = :sid ORDER BY a.created_at DESC, a.application_id DESC",
        {"sid": student["student_id"]}
    )
    return [application_response(r) for r in rows]


@router.get("/applications/company", response_model=List[BoardApplicationResponse])
async def company_board_applications(
    status: Optional[BoardApplicationStatus] = Query(None),
    company: dict = Depends(get_current_company)
):
    sql = APPLICATION_SELECT + " WHERE a.company_id = :cid"
    params = {"cid": company["company_id"]}
    if status:
        sql += " AND a.status = :status"
        params["status"] = status.value
    rows = execute_raw_sql(sql + " ORDER BY a.created_at DESC, a.application_id DESC", params)
    return [application_response(r) for r in rows]


@router.patch("/applications/{application_id}/status", response_model=BoardApplicationResponse)
async def update_board_status(
    application_id: int,
    update: BoardStatusUpdate,
    company: dict = Depends(get_current_company)
):
    row = load_application(application_id)
    if row["company_id"] != company["company_id"]:
        raise HTTPException(status_code=403, detail="Not authorized to manage this application")

    new_status = update.status.value
    note = update.notes or f"Status changed to {new_status}"
    now = utcnow()

    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE board_applications SET status = :status, company_notes = COALESCE(:notes, company_notes),
                    updated_at = :now
                WHERE application_id = :aid
            """),
            {"status": new_status, "notes": update.notes, "now": now, "aid": application_id}
        )
        db.execute(INSERT_TIMELINE, {"aid": application_id, "status": new_status, "note": note, "created_at": now})

    await notify_user(
        row["student_user_id"],
        "application_status_update",
        "Application Status Updated",
        f"Your application for {row['job_title']} is now {new_status}",
        sender_id=company["user_id"],
        data=build_data(metadata={"board_application_id": application_id, "new_status": new_status}),
    )

    return application_response(load_application(application_id))


@router.get("/applications/{application_id}", response_model=BoardApplicationResponse)
async def get_board_application(application_id: int, user: dict = Depends(get_current_user)):
    row = load_application(application_id)
    if user["user_id"] not in (row["student_user_id"], row["company_user_id"]) and user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Not authorized to view this application")
    return application_response(row)
