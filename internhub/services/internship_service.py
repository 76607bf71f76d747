"""
Internship Service - shared SQL for postings and skills.

Used by the internship, application, admin and wishlist code paths so the
posting row → response mapping lives in one place.
"""

from typing import Optional, List, Dict

from sqlalchemy import text
from sqlalchemy.orm import Session

from internhub.db.postgres import execute_raw_sql, fetch_one, in_clause


INTERNSHIP_SELECT = """
    SELECT i.internship_id, i.company_id, c.user_id AS company_user_id, c.company_name,
           c.logo_url AS company_logo, c.is_verified AS company_verified,
           i.title, i.description, i.category, i.internship_type, i.location_type,
           i.city, i.state, i.country, i.duration, i.stipend_amount, i.stipend_currency,
           i.stipend_period, i.application_deadline, i.start_date, i.end_date, i.status,
           i.max_applications, i.applications_count, i.views, i.saves, i.is_featured,
           i.is_urgent, i.created_at, i.updated_at
    FROM internships i
    JOIN companies c ON i.company_id = c.company_id
"""


# ============================================================
# SKILLS
# ============================================================

def upsert_skill(db: Session, skill_name: str) -> int:
    result = db.execute(
        text("""
            INSERT INTO skills (skill_name) VALUES (:name)
            ON CONFLICT (skill_name) DO UPDATE SET skill_name = EXCLUDED.skill_name
            RETURNING skill_id
        """),
        {"name": skill_name}
    )
    return result.fetchone()[0]


def clean_skills(skills: List[str]) -> List[str]:
    """Strip blanks and duplicates, keeping first-seen order."""
    seen = set()
    cleaned = []
    for skill in skills:
        name = skill.strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            cleaned.append(name)
    return cleaned


def set_internship_skills(db: Session, internship_id: int, skills: List[str]) -> None:
    db.execute(text("DELETE FROM internship_skills WHERE internship_id = :iid"), {"iid": internship_id})
    for skill_name in clean_skills(skills):
        skill_id = upsert_skill(db, skill_name)
        db.execute(
            text("INSERT INTO internship_skills (internship_id, skill_id) VALUES (:iid, :sid)"),
            {"iid": internship_id, "sid": skill_id}
        )


def set_student_skills(db: Session, student_id: int, skills: List[str]) -> None:
    db.execute(text("DELETE FROM student_skills WHERE student_id = :sid"), {"sid": student_id})
    for skill_name in clean_skills(skills):
        skill_id = upsert_skill(db, skill_name)
        db.execute(
            text("INSERT INTO student_skills (student_id, skill_id) VALUES (:sid, :kid)"),
            {"sid": student_id, "kid": skill_id}
        )


def get_student_skills(student_id: int) -> List[str]:
    rows = execute_raw_sql("""
        SELECT sk.skill_name FROM student_skills ss
        JOIN skills sk ON ss.skill_id = sk.skill_id
        WHERE ss.student_id = :sid ORDER BY sk.skill_name
    """, {"sid": student_id})
    return [r["skill_name"] for r in rows]


def skills_for_internships(internship_ids) -> Dict[int, List[str]]:
    ids = sorted(set(internship_ids))
    if not ids:
        return {}
    fragment, params = in_clause("id", ids)
    rows = execute_raw_sql(f"""
        SELECT isk.internship_id, sk.skill_name FROM internship_skills isk
        JOIN skills sk ON isk.skill_id = sk.skill_id
        WHERE isk.internship_id IN {fragment}
        ORDER BY sk.skill_name
    """, params)
    skills: Dict[int, List[str]] = {i: [] for i in ids}
    for row in rows:
        skills[row["internship_id"]].append(row["skill_name"])
    return skills


# ============================================================
# POSTINGS
# ============================================================

def get_internship(internship_id: int) -> Optional[dict]:
    """Posting row joined with its company, plus a `skills` list."""
    row = fetch_one(INTERNSHIP_SELECT + " WHERE i.internship_id = :iid", {"iid": internship_id})
    if row is None:
        return None
    row["skills"] = skills_for_internships([internship_id])[internship_id]
    return row


def with_skills(rows: List[dict]) -> List[dict]:
    skills = skills_for_internships(r["internship_id"] for r in rows)
    for row in rows:
        row["skills"] = skills.get(row["internship_id"], [])
    return rows


def to_response(row: dict, student_state: dict = None) -> dict:
    """Shape a posting row for InternshipResponse."""
    data = {
        key: row[key] for key in (
            "internship_id", "company_id", "company_user_id", "company_name", "company_logo",
            "title", "description", "category", "internship_type", "duration", "skills",
            "application_deadline", "start_date", "end_date", "status", "max_applications",
            "applications_count", "views", "saves", "created_at",
        )
    }
    data["company_verified"] = bool(row["company_verified"])
    data["is_featured"] = bool(row["is_featured"])
    data["is_urgent"] = bool(row["is_urgent"])
    data["location"] = {
        "type": row["location_type"], "city": row["city"],
        "state": row["state"], "country": row["country"],
    }
    data["stipend"] = {
        "amount": float(row["stipend_amount"] or 0),
        "currency": row["stipend_currency"],
        "period": row["stipend_period"],
    }
    if student_state is not None:
        data.update(student_state)
    return data


def student_states(student_id: int, internship_ids: List[int], saved_ids) -> Dict[int, dict]:
    """is_saved / has_applied / application_status for each posting."""
    ids = sorted(set(internship_ids))
    if not ids:
        return {}
    fragment, params = in_clause("id", ids)
    params["sid"] = student_id
    rows = execute_raw_sql(f"""
        SELECT internship_id, status FROM applications
        WHERE student_id = :sid AND internship_id IN {fragment}
    """, params)
    applied = {r["internship_id"]: r["status"] for r in rows}
    saved = set(saved_ids)
    return {
        iid: {
            "is_saved": iid in saved,
            "has_applied": iid in applied,
            "application_status": applied.get(iid),
        }
        for iid in ids
    }
