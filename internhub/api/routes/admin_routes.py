"""
Admin Routes

GET /admin/stats - Platform totals, recent activity, monthly counts
GET /admin/users - All users (role/search filters)
PUT /admin/users/{user_id}/verify - Verify a company account
PUT /admin/users/{user_id}/deactivate - Deactivate an account
PUT /admin/users/{user_id}/activate - Reactivate an account
GET /admin/internships - All postings (status/search filters)
PUT /admin/internships/{internship_id}/status - Moderate a posting's status
POST /admin/announcements - Send an announcement to every student and company
POST /admin/maintenance/{job} - Run a scheduled maintenance job now
GET /admin/online - Users with an open socket
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one
from internhub.core.auth import get_current_admin
from internhub.services.internship_service import INTERNSHIP_SELECT, to_response, with_skills
from internhub.services.notification_service import build_data, notify_role, notify_user
from internhub.services.realtime import manager
from internhub.services.scheduler import JOBS, run_job
from internhub.utils.dates import as_datetime, utcnow
from internhub.utils.pagination import offset, paginate
from internhub.schemas.schemas import (
    AnnouncementCreate, CountResponse, InternshipListResponse, InternshipResponse, InternshipStatus,
    InternshipStatusUpdate, MessageResponse, UserListResponse, UserResponse, UserRole
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

USER_COLUMNS = """
    user_id, name, email, role, phone, avatar_url, city, state, country,
    is_active, last_login, created_at
"""

MONTHS = 6


def month_keys(now, months: int = MONTHS) -> List[str]:
    """'YYYY-MM' keys for the last `months` months, oldest first."""
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def monthly_counts(table: str, keys: List[str]) -> Dict[str, int]:
    since = as_datetime(keys[0] + "-01")
    rows = execute_raw_sql(f"SELECT created_at FROM {table} WHERE created_at >= :since", {"since": since})
    counts = {key: 0 for key in keys}
    for row in rows:
        key = as_datetime(row["created_at"]).strftime("%Y-%m")
        if key in counts:
            counts[key] += 1
    return counts


def load_user(user_id: int) -> dict:
    user = fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE user_id = :id", {"id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def set_active(user_id: int, active: bool) -> None:
    with get_db_session() as db:
        db.execute(
            text("UPDATE users SET is_active = :active, updated_at = :now WHERE user_id = :id"),
            {"active": active, "now": utcnow(), "id": user_id}
        )


@router.get("/stats")
async def platform_stats(admin: dict = Depends(get_current_admin)):
    """Totals, the five newest users and postings, and monthly counts for the last six months."""
    totals = fetch_one("""
        SELECT (SELECT COUNT(*) FROM users) AS total_users,
               (SELECT COUNT(*) FROM users WHERE role = 'student') AS total_students,
               (SELECT COUNT(*) FROM users WHERE role = 'company') AS total_companies,
               (SELECT COUNT(*) FROM internships) AS total_internships,
               (SELECT COUNT(*) FROM internships WHERE status = 'active') AS active_internships,
               (SELECT COUNT(*) FROM applications) AS total_applications,
               (SELECT COUNT(*) FROM companies WHERE is_verified = FALSE) AS pending_verifications
    """)

    recent_users = execute_raw_sql(f"""
        SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, user_id DESC LIMIT 5
    """)
    recent_internships = execute_raw_sql("""
        SELECT i.internship_id, i.title, i.status, c.company_name, i.created_at
        FROM internships i JOIN companies c ON i.company_id = c.company_id
        ORDER BY i.created_at DESC, i.internship_id DESC LIMIT 5
    """)

    keys = month_keys(utcnow())
    users_by_month = monthly_counts("users", keys)
    internships_by_month = monthly_counts("internships", keys)
    applications_by_month = monthly_counts("applications", keys)

    return {
        "totals": totals,
        "recent_users": recent_users,
        "recent_internships": recent_internships,
        "monthly": [
            {
                "month": key,
                "users": users_by_month[key],
                "internships": internships_by_month[key],
                "applications": applications_by_month[key],
            }
            for key in keys
        ],
    }


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None, description="Search in name or email"),
    admin: dict = Depends(get_current_admin)
):
    where = " WHERE 1 = 1"
    params = {}
    if role:
        where += " AND role = :role"
        params["role"] = role.value
    if search:
        where += " AND (LOWER(name) LIKE :search OR LOWER(email) LIKE :search)"
        params["search"] = f"%{search.lower()}%"

    total = fetch_one("SELECT COUNT(*) AS total FROM users" + where, params)["total"]
    sql = f"SELECT {USER_COLUMNS} FROM users" + where
    sql += f" ORDER BY created_at DESC, user_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"

    return UserListResponse(
        users=[UserResponse(**r) for r in execute_raw_sql(sql, params)],
        pagination=paginate(page, limit, total)
    )


@router.put("/users/{user_id}/verify", response_model=MessageResponse)
async def verify_company(user_id: int, admin: dict = Depends(get_current_admin)):
    """Mark a company account as verified and tell the company."""
    user = load_user(user_id)
    if user["role"] != "company":
        raise HTTPException(status_code=400, detail="Only company accounts can be verified")

    with get_db_session() as db:
        db.execute(
            text("UPDATE companies SET is_verified = TRUE, updated_at = :now WHERE user_id = :id"),
            {"now": utcnow(), "id": user_id}
        )

    logger.info(f"Admin {admin['user_id']} verified company user {user_id}")

    await notify_user(
        user_id,
        "company_verification",
        "Company Verified",
        "Your company account has been verified",
        sender_id=admin["user_id"],
        data=build_data(url="/company/profile"),
        priority="high",
    )
    return MessageResponse(message="Company verified successfully")


@router.put("/users/{user_id}/deactivate", response_model=MessageResponse)
async def deactivate_user(user_id: int, admin: dict = Depends(get_current_admin)):
    load_user(user_id)
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    set_active(user_id, False)
    logger.info(f"Admin {admin['user_id']} deactivated user {user_id}")
    return MessageResponse(message="User deactivated")


@router.put("/users/{user_id}/activate", response_model=MessageResponse)
async def activate_user(user_id: int, admin: dict = Depends(get_current_admin)):
    load_user(user_id)
    set_active(user_id, True)
    logger.info(f"Admin {admin['user_id']} activated user {user_id}")
    return MessageResponse(message="User activated")


@router.get("/internships", response_model=InternshipListResponse)
async def list_all_internships(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    status: Optional[InternshipStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search in title"),
    admin: dict = Depends(get_current_admin)
):
    """Every posting regardless of status, newest first."""
    where = " WHERE 1 = 1"
    params = {}
    if status:
        where += " AND i.status = :status"
        params["status"] = status.value
    if search:
        where += " AND LOWER(i.title) LIKE :search"
        params["search"] = f"%{search.lower()}%"

    total = fetch_one("SELECT COUNT(*) AS total FROM internships i" + where, params)["total"]
    sql = INTERNSHIP_SELECT + where
    sql += f" ORDER BY i.created_at DESC, i.internship_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"

    return InternshipListResponse(
        internships=[InternshipResponse(**to_response(r)) for r in with_skills(execute_raw_sql(sql, params))],
        pagination=paginate(page, limit, total)
    )


@router.put("/internships/{internship_id}/status", response_model=MessageResponse)
async def moderate_internship(
    internship_id: int,
    update: InternshipStatusUpdate,
    admin: dict = Depends(get_current_admin)
):
    row = fetch_one("SELECT internship_id, status FROM internships WHERE internship_id = :iid", {"iid": internship_id})
    if not row:
        raise HTTPException(status_code=404, detail="Internship not found")

    with get_db_session() as db:
        db.execute(
            text("UPDATE internships SET status = :status, updated_at = :now WHERE internship_id = :iid"),
            {"status": update.status.value, "now": utcnow(), "iid": internship_id}
        )

    logger.info(f"Admin {admin['user_id']} set internship {internship_id}: {row['status']} -> {update.status.value}")
    return MessageResponse(message=f"Internship status updated to {update.status.value}")


@router.post("/announcements", response_model=CountResponse)
async def announce(data: AnnouncementCreate, admin: dict = Depends(get_current_admin)):
    """Persist a system_update for every student and company, then broadcast it live."""
    count = 0
    for role in ("student", "company"):
        count += await notify_role(
            role,
            "system_update",
            data.title,
            data.message,
            event="system:announcement",
            payload={"title": data.title, "message": data.message, "priority": data.priority.value},
            sender_id=admin["user_id"],
            priority=data.priority.value,
        )

    logger.info(f"Admin {admin['user_id']} sent an announcement to {count} users")
    return CountResponse(message="Announcement sent", count=count)


@router.post("/maintenance/{job}", response_model=CountResponse)
async def run_maintenance(job: str, admin: dict = Depends(get_current_admin)):
    """Run one maintenance job immediately."""
    if job not in JOBS:
        raise HTTPException(status_code=404, detail=f"Unknown job '{job}'. Available: {', '.join(JOBS)}")

    count = await run_job(job)
    logger.info(f"Admin {admin['user_id']} ran {job}: {count} handled")
    return CountResponse(message=f"Job {job} completed", count=count)


@router.get("/online")
async def online_users(admin: dict = Depends(get_current_admin)):
    users = manager.connected_users()
    return {"count": len(users), "connections": manager.connection_count(), "users": users}
