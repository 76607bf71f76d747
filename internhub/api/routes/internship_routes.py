"""
Internship Routes

GET /internships - List active postings with filters (public)
GET /internships/company/mine - Company's own postings, any status
GET /internships/{internship_id} - Posting details (increments views)
POST /internships - Create posting (company only)
PUT /internships/{internship_id} - Update posting (owning company)
DELETE /internships/{internship_id} - Delete posting (owning company)
PUT /internships/{internship_id}/save - Toggle quick save (student only)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one
from internhub.core.auth import get_current_company, get_current_student, get_optional_user
from internhub.services.internship_service import (
    INTERNSHIP_SELECT, get_internship, set_internship_skills, student_states, to_response, with_skills
)
from internhub.services.notification_service import (
    detect_changes, notify_internship_updated, notify_new_internship
)
from internhub.services.realtime import manager
from internhub.services.wishlist_service import WishlistService
from internhub.utils.dates import as_datetime, utcnow
from internhub.utils.pagination import offset, paginate
from internhub.schemas.schemas import (
    InternshipCreate, InternshipUpdate, InternshipResponse, InternshipListResponse,
    InternshipType, InternshipCategory, MessageResponse, SaveToggleResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internships", tags=["Internships"])

# Plain columns a company may update directly
SIMPLE_FIELDS = [
    "title", "description", "duration", "max_applications", "is_featured", "is_urgent",
]
DATE_FIELDS = ["application_deadline", "start_date", "end_date"]


def load_owned(internship_id: int, company_id: int) -> dict:
    """Posting row if it exists and belongs to the company; 404/403 otherwise."""
    row = get_internship(internship_id)
    if not row:
        raise HTTPException(status_code=404, detail="Internship not found")
    if row["company_id"] != company_id:
        raise HTTPException(status_code=403, detail="Not authorized to modify this internship")
    return row


@router.get("", response_model=InternshipListResponse)
async def list_internships(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[InternshipCategory] = Query(None),
    type: Optional[InternshipType] = Query(None),
    remote: Optional[bool] = Query(None, description="true = remote only, false = exclude remote"),
    location: Optional[str] = Query(None, description="City, state or country"),
    stipend_min: Optional[float] = Query(None, ge=0),
    stipend_max: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Search in title, description and company name"),
    skill: Optional[str] = Query(None, description="Filter by required skill"),
    viewer: Optional[dict] = Depends(get_optional_user)
):
    """List active postings whose deadline has not passed. Featured and urgent postings come first."""
    where = " WHERE i.status = 'active' AND i.application_deadline >= :now"
    params = {"now": utcnow()}

    if category:
        where += " AND i.category = :category"
        params["category"] = category.value
    if type:
        where += " AND i.internship_type = :type"
        params["type"] = type.value
    if remote is True:
        where += " AND i.location_type = 'remote'"
    elif remote is False:
        where += " AND i.location_type != 'remote'"
    if location and remote is not True:
        where += """ AND (LOWER(COALESCE(i.city, '')) LIKE :location
                     OR LOWER(COALESCE(i.state, '')) LIKE :location
                     OR LOWER(COALESCE(i.country, '')) LIKE :location)"""
        params["location"] = f"%{location.lower()}%"
    if stipend_min is not None:
        where += " AND i.stipend_amount >= :stipend_min"
        params["stipend_min"] = stipend_min
    if stipend_max is not None:
        where += " AND i.stipend_amount <= :stipend_max"
        params["stipend_max"] = stipend_max
    if search:
        where += """ AND (LOWER(i.title) LIKE :search
                     OR LOWER(i.description) LIKE :search
                     OR LOWER(c.company_name) LIKE :search)"""
        params["search"] = f"%{search.lower()}%"
    if skill:
        where += """ AND EXISTS (
            SELECT 1 FROM internship_skills isk JOIN skills sk ON isk.skill_id = sk.skill_id
            WHERE isk.internship_id = i.internship_id AND LOWER(sk.skill_name) = LOWER(:skill))"""
        params["skill"] = skill

    total = fetch_one(
        "SELECT COUNT(*) AS total FROM internships i JOIN companies c ON i.company_id = c.company_id" + where,
        params
    )["total"]

    sql = INTERNSHIP_SELECT + where
    sql += " ORDER BY i.is_featured DESC, i.is_urgent DESC, i.created_at DESC, i.internship_id DESC"
    sql += f" LIMIT {limit} OFFSET {offset(page, limit)}"
    rows = with_skills(execute_raw_sql(sql, params))

    states = {}
    if viewer and viewer["role"] == "student" and rows:
        student = fetch_one("SELECT student_id FROM students WHERE user_id = :id", {"id": viewer["user_id"]})
        if student:
            ids = [r["internship_id"] for r in rows]
            saved = WishlistService().saved_internship_ids(viewer["user_id"], ids)
            states = student_states(student["student_id"], ids, saved)

    return InternshipListResponse(
        internships=[InternshipResponse(**to_response(r, states.get(r["internship_id"]))) for r in rows],
        pagination=paginate(page, limit, total)
    )


@router.get("/company/mine", response_model=InternshipListResponse)
async def my_internships(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: Optional[str] = Query(None),
    company: dict = Depends(get_current_company)
):
    """Postings owned by the current company, any status."""
    where = " WHERE i.company_id = :cid"
    params = {"cid": company["company_id"]}
    if status:
        where += " AND i.status = :status"
        params["status"] = status

    total = fetch_one("SELECT COUNT(*) AS total FROM internships i" + where, params)["total"]

    sql = INTERNSHIP_SELECT + where
    sql += f" ORDER BY i.created_at DESC, i.internship_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"
    rows = with_skills(execute_raw_sql(sql, params))

    return InternshipListResponse(
        internships=[InternshipResponse(**to_response(r)) for r in rows],
        pagination=paginate(page, limit, total)
    )


@router.get("/{internship_id}", response_model=InternshipResponse)
async def get_internship_detail(internship_id: int, viewer: Optional[dict] = Depends(get_optional_user)):
    """Get posting details. Each call counts as one view."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE internships SET views = views + 1 WHERE internship_id = :iid"),
            {"iid": internship_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Internship not found")

    row = get_internship(internship_id)

    state = None
    if viewer and viewer["role"] == "student":
        student = fetch_one("SELECT student_id FROM students WHERE user_id = :id", {"id": viewer["user_id"]})
        if student:
            saved = WishlistService().saved_internship_ids(viewer["user_id"], [internship_id])
            state = student_states(student["student_id"], [internship_id], saved)[internship_id]

    return InternshipResponse(**to_response(row, state))


@router.post("", response_model=InternshipResponse, status_code=201)
async def create_internship(data: InternshipCreate, company: dict = Depends(get_current_company)):
    """
    Create a posting. Only companies can create postings.

    Publishing an active posting notifies every student and alerts students
    who saved similar postings.
    """
    deadline = as_datetime(data.application_deadline)
    if deadline <= utcnow():
        raise HTTPException(status_code=400, detail="Application deadline must be in the future")

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO internships (company_id, title, description, category, internship_type,
                    location_type, city, state, country, duration, stipend_amount, stipend_currency,
                    stipend_period, application_deadline, start_date, end_date, status,
                    max_applications, is_featured, is_urgent, created_at, updated_at)
                VALUES (:company_id, :title, :description, :category, :internship_type,
                    :location_type, :city, :state, :country, :duration, :stipend_amount, :stipend_currency,
                    :stipend_period, :deadline, :start_date, :end_date, :status,
                    :max_applications, :is_featured, :is_urgent, :now, :now)
                RETURNING internship_id
            """),
            {
                "company_id": company["company_id"], "title": data.title, "description": data.description,
                "category": data.category.value, "internship_type": data.internship_type.value,
                "location_type": data.location.type.value, "city": data.location.city,
                "state": data.location.state, "country": data.location.country,
                "duration": data.duration, "stipend_amount": data.stipend.amount,
                "stipend_currency": data.stipend.currency, "stipend_period": data.stipend.period.value,
                "deadline": deadline, "start_date": as_datetime(data.start_date),
                "end_date": as_datetime(data.end_date), "status": data.status.value,
                "max_applications": data.max_applications, "is_featured": data.is_featured,
                "is_urgent": data.is_urgent, "now": utcnow()
            }
        )
        internship_id = result.fetchone()[0]
        set_internship_skills(db, internship_id, data.skills)

    logger.info(f"Company {company['company_id']} created internship {internship_id}")
    internship = to_response(get_internship(internship_id))

    if internship["status"] == "active":
        await notify_new_internship(internship)

    return InternshipResponse(**internship)


@router.put("/{internship_id}", response_model=InternshipResponse)
async def update_internship(internship_id: int, data: InternshipUpdate, company: dict = Depends(get_current_company)):
    """Update a posting. Wishlist holders hear about deadline, stipend, location and skill changes."""
    before = load_owned(internship_id, company["company_id"])
    fields = data.model_dump(exclude_unset=True, mode="json")

    updates = []
    params = {"iid": internship_id, "now": utcnow()}

    for field in SIMPLE_FIELDS:
        if fields.get(field) is not None:
            updates.append(f"{field} = :{field}")
            params[field] = fields[field]
    for field in DATE_FIELDS:
        if field in fields and (fields[field] is not None or field == "end_date"):
            updates.append(f"{field} = :{field}")
            params[field] = as_datetime(fields[field])
    for field, column in (("category", "category"), ("internship_type", "internship_type"), ("status", "status")):
        if fields.get(field) is not None:
            updates.append(f"{column} = :{column}")
            params[column] = fields[field]
    if fields.get("location") is not None:
        location = fields["location"]
        updates += ["location_type = :location_type", "city = :city", "state = :state", "country = :country"]
        params.update({
            "location_type": location["type"], "city": location.get("city"),
            "state": location.get("state"), "country": location.get("country"),
        })
    if fields.get("stipend") is not None:
        stipend = fields["stipend"]
        updates += ["stipend_amount = :stipend_amount", "stipend_currency = :stipend_currency",
                    "stipend_period = :stipend_period"]
        params.update({
            "stipend_amount": stipend["amount"], "stipend_currency": stipend["currency"],
            "stipend_period": stipend["period"],
        })

    if "application_deadline" in params and params["application_deadline"] <= utcnow():
        raise HTTPException(status_code=400, detail="Application deadline must be in the future")

    with get_db_session() as db:
        if updates:
            db.execute(
                text(f"UPDATE internships SET {', '.join(updates)}, updated_at = :now WHERE internship_id = :iid"),
                params
            )
        if fields.get("skills") is not None:
            set_internship_skills(db, internship_id, fields["skills"])

    after = get_internship(internship_id)
    internship = to_response(after)
    await notify_internship_updated(internship, detect_changes(before, after))

    return InternshipResponse(**internship)


@router.delete("/{internship_id}", response_model=MessageResponse)
async def delete_internship(internship_id: int, company: dict = Depends(get_current_company)):
    """Delete a posting. Cascades to its applications."""
    load_owned(internship_id, company["company_id"])

    with get_db_session() as db:
        db.execute(text("DELETE FROM internships WHERE internship_id = :iid"), {"iid": internship_id})

    logger.info(f"Company {company['company_id']} deleted internship {internship_id}")
    await manager.broadcast("internship:deleted", {"internship_id": internship_id})

    return MessageResponse(message="Internship deleted successfully")


@router.put("/{internship_id}/save", response_model=SaveToggleResponse)
async def toggle_save(internship_id: int, student: dict = Depends(get_current_student)):
    """Save or unsave a posting. Saving creates a default wishlist item."""
    if not fetch_one("SELECT internship_id FROM internships WHERE internship_id = :iid", {"iid": internship_id}):
        raise HTTPException(status_code=404, detail="Internship not found")

    wishlist = WishlistService()
    item = wishlist.find_item(student["user_id"], internship_id)

    if item and item["is_active"]:
        wishlist.remove_for_internship(student["user_id"], internship_id)
        delta_sql = "saves = CASE WHEN saves > 0 THEN saves - 1 ELSE 0 END"
        saved = False
    else:
        wishlist.add(student["user_id"], internship_id)
        delta_sql = "saves = saves + 1"
        saved = True

    with get_db_session() as db:
        db.execute(text(f"UPDATE internships SET {delta_sql} WHERE internship_id = :iid"), {"iid": internship_id})

    return SaveToggleResponse(
        message="Internship saved" if saved else "Internship removed from saved",
        saved=saved
    )
