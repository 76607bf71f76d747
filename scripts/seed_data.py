#!/usr/bin/env python3
"""
Demo Data Script

Creates an admin, two companies, three students, a handful of postings,
a few applications and wishlist items so the API has something to show.
Safe to run twice: existing demo accounts are left alone.

Run: python scripts/seed_data.py
"""
import sys
sys.path.insert(0, '.')

from datetime import timedelta

from sqlalchemy import text

from internhub.core.auth import hash_password
from internhub.db.mongodb import init_mongo_indexes
from internhub.db.postgres import get_db_session, init_postgres_schema
from internhub.services.internship_service import set_internship_skills, set_student_skills
from internhub.services.wishlist_service import WishlistService
from internhub.utils.dates import utcnow

PASSWORD = "demo1234"

COMPANIES = [
    {"name": "Priya Raman", "email": "talent@northwind.dev", "company_name": "Northwind Labs",
     "industry": "Software", "city": "Bengaluru", "country": "India"},
    {"name": "Tom Becker", "email": "jobs@bluepeak.io", "company_name": "BluePeak Analytics",
     "industry": "Data", "city": "Berlin", "country": "Germany"},
]

STUDENTS = [
    {"name": "Aarav Shah", "email": "aarav@student.dev", "university": "IIT Bombay",
     "degree": "B.Tech", "major": "Computer Science", "skills": ["Python", "SQL", "FastAPI"]},
    {"name": "Lena Vogel", "email": "lena@student.dev", "university": "TU Munich",
     "degree": "B.Sc", "major": "Data Engineering", "skills": ["Python", "Pandas", "Spark"]},
    {"name": "Maya Chen", "email": "maya@student.dev", "university": "NUS",
     "degree": "B.Comp", "major": "Information Systems", "skills": ["React", "TypeScript"]},
]

# (company index, title, category, location_type, city, stipend, skills)
POSTINGS = [
    (0, "Backend Engineering Intern", "Software Development", "hybrid", "Bengaluru", 30000, ["Python", "FastAPI", "SQL"]),
    (0, "Frontend Intern", "Software Development", "remote", None, 25000, ["React", "TypeScript"]),
    (1, "Data Engineering Intern", "Data Science", "onsite", "Berlin", 1400, ["Python", "Spark"]),
    (1, "Analytics Intern", "Data Science", "remote", None, 1200, ["SQL", "Pandas"]),
]

DESCRIPTION = (
    "Join a small product team, ship features to production and learn how we "
    "design, test and operate services used by real customers every day."
)


def create_user(db, name: str, email: str, role: str) -> int:
    existing = db.execute(text("SELECT user_id FROM users WHERE email = :email"), {"email": email}).fetchone()
    if existing:
        return existing[0]
    result = db.execute(
        text("""
            INSERT INTO users (name, email, password_hash, role)
            VALUES (:name, :email, :hash, :role)
            RETURNING user_id
        """),
        {"name": name, "email": email, "hash": hash_password(PASSWORD), "role": role}
    )
    return result.fetchone()[0]


def seed_accounts():
    print("\n[1] Creating accounts...")
    company_ids, student_ids = [], []

    with get_db_session() as db:
        create_user(db, "Platform Admin", "admin@internhub.dev", "admin")

        for c in COMPANIES:
            user_id = create_user(db, c["name"], c["email"], "company")
            db.execute(
                text("UPDATE users SET city = :city, country = :country WHERE user_id = :id"),
                {"city": c["city"], "country": c["country"], "id": user_id}
            )
            row = db.execute(text("SELECT company_id FROM companies WHERE user_id = :id"), {"id": user_id}).fetchone()
            if row is None:
                row = db.execute(
                    text("""
                        INSERT INTO companies (user_id, company_name, industry, is_verified)
                        VALUES (:id, :name, :industry, TRUE)
                        RETURNING company_id
                    """),
                    {"id": user_id, "name": c["company_name"], "industry": c["industry"]}
                ).fetchone()
            company_ids.append(row[0])

        for s in STUDENTS:
            user_id = create_user(db, s["name"], s["email"], "student")
            row = db.execute(text("SELECT student_id FROM students WHERE user_id = :id"), {"id": user_id}).fetchone()
            if row is None:
                row = db.execute(
                    text("""
                        INSERT INTO students (user_id, university, degree, major, graduation_year)
                        VALUES (:id, :university, :degree, :major, :year)
                        RETURNING student_id
                    """),
                    {"id": user_id, "university": s["university"], "degree": s["degree"],
                     "major": s["major"], "year": utcnow().year + 1}
                ).fetchone()
                set_student_skills(db, row[0], s["skills"])
            student_ids.append((row[0], user_id))

    print(f"    ✅ {len(company_ids)} companies, {len(student_ids)} students, 1 admin (password: {PASSWORD})")
    return company_ids, student_ids


def seed_postings(company_ids):
    print("\n[2] Creating internships...")
    now = utcnow()
    internship_ids = []

    with get_db_session() as db:
        for i, (company, title, category, location_type, city, stipend, skills) in enumerate(POSTINGS):
            existing = db.execute(
                text("SELECT internship_id FROM internships WHERE company_id = :cid AND title = :title"),
                {"cid": company_ids[company], "title": title}
            ).fetchone()
            if existing:
                internship_ids.append(existing[0])
                continue

            result = db.execute(
                text("""
                    INSERT INTO internships (company_id, title, description, category, location_type, city,
                        duration, stipend_amount, stipend_currency, application_deadline, start_date,
                        created_at, updated_at)
                    VALUES (:cid, :title, :description, :category, :location_type, :city,
                        '3 months', :stipend, :currency, :deadline, :start, :now, :now)
                    RETURNING internship_id
                """),
                {
                    "cid": company_ids[company], "title": title, "description": DESCRIPTION,
                    "category": category, "location_type": location_type, "city": city,
                    "stipend": stipend, "currency": "INR" if company == 0 else "EUR",
                    # Staggered deadlines so one posting shows up in deadline alerts
                    "deadline": now + timedelta(days=2 + i * 10), "start": now + timedelta(days=45),
                    "now": now,
                }
            )
            internship_id = result.fetchone()[0]
            set_internship_skills(db, internship_id, skills)
            internship_ids.append(internship_id)

    print(f"    ✅ {len(internship_ids)} internships")
    return internship_ids


def seed_activity(student_ids, internship_ids):
    print("\n[3] Creating applications and wishlist items...")
    now = utcnow()
    created = 0

    with get_db_session() as db:
        for (student_id, _), internship_id in zip(student_ids, internship_ids):
            exists = db.execute(
                text("SELECT 1 FROM applications WHERE internship_id = :iid AND student_id = :sid"),
                {"iid": internship_id, "sid": student_id}
            ).fetchone()
            if exists:
                continue
            company_id = db.execute(
                text("SELECT company_id FROM internships WHERE internship_id = :iid"), {"iid": internship_id}
            ).fetchone()[0]
            result = db.execute(
                text("""
                    INSERT INTO applications (internship_id, student_id, company_id, cover_letter, resume_url,
                        created_at, updated_at)
                    VALUES (:iid, :sid, :cid, 'I would love to join your team.', '/uploads/resumes/demo.pdf',
                        :now, :now)
                    RETURNING application_id
                """),
                {"iid": internship_id, "sid": student_id, "cid": company_id, "now": now}
            )
            db.execute(
                text("""
                    INSERT INTO application_timeline (application_id, status, note, created_at)
                    VALUES (:aid, 'pending', 'Application submitted', :now)
                """),
                {"aid": result.fetchone()[0], "now": now}
            )
            db.execute(
                text("UPDATE internships SET applications_count = applications_count + 1 WHERE internship_id = :iid"),
                {"iid": internship_id}
            )
            created += 1

    wishlist = WishlistService()
    saved = 0
    for _, user_id in student_ids:
        for internship_id in internship_ids[-2:]:
            if wishlist.find_item(user_id, internship_id) is None:
                wishlist.add(user_id, internship_id, priority="high", reminder_date=now + timedelta(days=1))
                with get_db_session() as db:
                    db.execute(
                        text("UPDATE internships SET saves = saves + 1 WHERE internship_id = :iid"),
                        {"iid": internship_id}
                    )
                saved += 1

    print(f"    ✅ {created} applications, {saved} wishlist items")


def main():
    print("=" * 50)
    print("INTERNHUB - DEMO DATA")
    print("=" * 50)

    init_postgres_schema()
    init_mongo_indexes()

    company_ids, student_ids = seed_accounts()
    internship_ids = seed_postings(company_ids)
    seed_activity(student_ids, internship_ids)

    print("\n" + "=" * 50)
    print("Demo data ready!")
    print("=" * 50)


if __name__ == "__main__":
    main()
