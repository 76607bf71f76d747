"""
Company Routes

GET /companies - Public list of companies (verified filter, search)
GET /companies/profile - Get own profile
PUT /companies/profile - Update profile
POST /companies/logo - Upload company logo
GET /companies/dashboard - Posting/application counters and recent applications
GET /companies/{company_id} - Public company profile with active postings
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Query
from sqlalchemy import text
from typing import Optional

from internhub.db.postgres import get_db_session, execute_raw_sql, fetch_one
from internhub.core.auth import get_current_company
from internhub.utils.dates import utcnow
from internhub.utils.file_upload import save_upload
from internhub.utils.pagination import offset, paginate
from internhub.schemas.schemas import (
    CompanyProfileUpdate, CompanyResponse, CompanyListResponse, FileUploadResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"])

COMPANY_SELECT = """
    SELECT c.company_id, c.user_id, c.company_name, u.email, c.industry, c.company_size,
           c.website, c.description, c.logo_url, u.city, u.country, c.is_verified, c.created_at
    FROM companies c JOIN users u ON c.user_id = u.user_id
"""

COMPANY_FIELDS = ["company_name", "industry", "company_size", "website", "description"]
USER_FIELDS = ["phone", "city", "state", "country"]
REQUIRED_FIELDS = ["company_name"]


def load_company(company_id: int) -> Optional[dict]:
    return fetch_one(COMPANY_SELECT + " WHERE c.company_id = :id", {"id": company_id})


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    verified: Optional[bool] = Query(None),
    industry: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search in company name")
):
    """List active companies, verified first."""
    where = " WHERE u.is_active = TRUE"
    params = {}

    if verified is not None:
        where += " AND c.is_verified = :verified"
        params["verified"] = verified
    if industry:
        where += " AND c.industry = :industry"
        params["industry"] = industry
    if city:
        where += " AND LOWER(u.city) LIKE :city"
        params["city"] = f"%{city.lower()}%"
    if search:
        where += " AND LOWER(c.company_name) LIKE :search"
        params["search"] = f"%{search.lower()}%"

    total = fetch_one(
        "SELECT COUNT(*) AS total FROM companies c JOIN users u ON c.user_id = u.user_id" + where, params
    )["total"]

    sql = COMPANY_SELECT + where
    sql += f" ORDER BY c.is_verified DESC, c.created_at DESC, c.company_id DESC LIMIT {limit} OFFSET {offset(page, limit)}"
    results = execute_raw_sql(sql, params)

    return CompanyListResponse(
        companies=[CompanyResponse(**r) for r in results],
        pagination=paginate(page, limit, total)
    )


@router.get("/profile", response_model=CompanyResponse)
async def get_profile(company: dict = Depends(get_current_company)):
    """Get current company's profile."""
    return CompanyResponse(**load_company(company["company_id"]))


@router.put("/profile", response_model=CompanyResponse)
async def update_profile(data: CompanyProfileUpdate, company: dict = Depends(get_current_company)):
    """Update company profile. Only provided fields are updated."""
    fields = {
        k: v for k, v in data.model_dump(exclude_unset=True, mode="json").items()
        if v is not None or k not in REQUIRED_FIELDS
    }

    company_updates = [f"{f} = :{f}" for f in COMPANY_FIELDS if f in fields]
    user_updates = [f"{f} = :{f}" for f in USER_FIELDS if f in fields]

    if not company_updates and not user_updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    params = {f: fields[f] for f in COMPANY_FIELDS + USER_FIELDS if f in fields}
    params.update({"cid": company["company_id"], "uid": company["user_id"], "now": utcnow()})

    with get_db_session() as db:
        if company_updates:
            db.execute(
                text(f"UPDATE companies SET {', '.join(company_updates)}, updated_at = :now WHERE company_id = :cid"),
                params
            )
        if user_updates:
            db.execute(
                text(f"UPDATE users SET {', '.join(user_updates)}, updated_at = :now WHERE user_id = :uid"),
                params
            )

    return CompanyResponse(**load_company(company["company_id"]))


@router.post("/logo", response_model=FileUploadResponse)
async def upload_logo(
    file: UploadFile = File(..., description="Logo image (JPG, PNG, GIF, SVG)"),
    company: dict = Depends(get_current_company)
):
    """Upload company logo."""
    stored = await save_upload(file, "logo")

    with get_db_session() as db:
        db.execute(
            text("UPDATE companies SET logo_url = :url, updated_at = :now WHERE company_id = :id"),
            {"url": stored["url"], "now": utcnow(), "id": company["company_id"]}
        )

    return FileUploadResponse(message="Logo uploaded successfully", url=stored["url"], filename=stored["filename"])


@router.get("/dashboard")
async def dashboard(company: dict = Depends(get_current_company)):
    """Posting counts, application counts by status and the ten most recent applications."""
    params = {"cid": company["company_id"]}

    postings = execute_raw_sql(
        "SELECT status, COUNT(*) AS count FROM internships WHERE company_id = :cid GROUP BY status", params
    )
    postings_by_status = {r["status"]: r["count"] for r in postings}

    applications = execute_raw_sql(
        "SELECT status, COUNT(*) AS count FROM applications WHERE company_id = :cid GROUP BY status", params
    )
    applications_by_status = {r["status"]: r["count"] for r in applications}

    recent = execute_raw_sql("""
        SELECT a.application_id, a.status, a.created_at, i.internship_id, i.title AS internship_title,
               u.name AS student_name, u.email AS student_email
        FROM applications a
        JOIN internships i ON a.internship_id = i.internship_id
        JOIN students s ON a.student_id = s.student_id
        JOIN users u ON s.user_id = u.user_id
        WHERE a.company_id = :cid
        ORDER BY a.created_at DESC, a.application_id DESC
        LIMIT 10
    """, params)

    profile = load_company(company["company_id"])

    return {
        "company": {
            "company_id": profile["company_id"],
            "company_name": profile["company_name"],
            "is_verified": bool(profile["is_verified"]),
        },
        "statistics": {
            "total_internships": sum(postings_by_status.values()),
            "active_internships": postings_by_status.get("active", 0),
            "internships_by_status": postings_by_status,
            "total_applications": sum(applications_by_status.values()),
            "applications_by_status": applications_by_status,
        },
        "recent_applications": recent,
    }


@router.get("/{company_id}")
async def get_company(company_id: int):
    """Public company profile with its active postings."""
    profile = load_company(company_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Company not found")

    active = execute_raw_sql("""
        SELECT internship_id, title, category, location_type, city, stipend_amount,
               stipend_currency, application_deadline
        FROM internships
        WHERE company_id = :cid AND status = 'active'
        ORDER BY created_at DESC, internship_id DESC
    """, {"cid": company_id})

    return {
        "company": CompanyResponse(**profile),
        "active_internships": active,
    }
