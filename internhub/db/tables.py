"""
PostgreSQL Schema - table definitions.

Queries are written as raw SQL in the routes/services; these definitions exist
so the schema can be created (and recreated in tests) from one place.

Tables:
- users, students, companies        → accounts and role profiles
- skills, student_skills             → normalized skill names
- internships, internship_skills     → postings
- applications, application_timeline, application_documents → status workflow
- board_jobs, board_applications, board_application_timeline, board_bookmarks → job board
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData, String,
    Table, Text, UniqueConstraint, false, func, true
)

metadata = MetaData()


# ============================================================
# ACCOUNTS
# ============================================================

users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, index=True),
    Column("phone", String(30)),
    Column("avatar_url", String(500)),
    Column("city", String(100)),
    Column("state", String(100)),
    Column("country", String(100)),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("last_login", DateTime),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

students = Table(
    "students", metadata,
    Column("student_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("university", String(200)),
    Column("degree", String(100)),
    Column("major", String(100)),
    Column("graduation_year", Integer),
    Column("gpa", Float),
    Column("bio", Text),
    Column("portfolio_url", String(500)),
    Column("resume_url", String(500)),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

companies = Table(
    "companies", metadata,
    Column("company_id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("company_name", String(200), nullable=False),
    Column("industry", String(100)),
    Column("company_size", String(20)),
    Column("website", String(500)),
    Column("description", Text),
    Column("logo_url", String(500)),
    Column("is_verified", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

skills = Table(
    "skills", metadata,
    Column("skill_id", Integer, primary_key=True),
    Column("skill_name", String(100), nullable=False, unique=True),
)

student_skills = Table(
    "student_skills", metadata,
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.skill_id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================
# INTERNSHIPS
# ============================================================

internships = Table(
    "internships", metadata,
    Column("internship_id", Integer, primary_key=True),
    Column("company_id", Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String(100), nullable=False),
    Column("description", Text, nullable=False),
    Column("category", String(50), nullable=False, index=True),
    Column("internship_type", String(20), nullable=False, server_default="internship"),
    Column("location_type", String(20), nullable=False, server_default="onsite"),
    Column("city", String(100)),
    Column("state", String(100)),
    Column("country", String(100)),
    Column("duration", String(50), nullable=False),
    Column("stipend_amount", Float, nullable=False, server_default="0"),
    Column("stipend_currency", String(10), nullable=False, server_default="USD"),
    Column("stipend_period", String(20), nullable=False, server_default="monthly"),
    Column("application_deadline", DateTime, nullable=False, index=True),
    Column("start_date", DateTime, nullable=False),
    Column("end_date", DateTime),
    Column("status", String(20), nullable=False, server_default="active", index=True),
    Column("max_applications", Integer, nullable=False, server_default="100"),
    Column("applications_count", Integer, nullable=False, server_default="0"),
    Column("views", Integer, nullable=False, server_default="0"),
    Column("saves", Integer, nullable=False, server_default="0"),
    Column("is_featured", Boolean, nullable=False, server_default=false()),
    Column("is_urgent", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

internship_skills = Table(
    "internship_skills", metadata,
    Column("internship_id", Integer, ForeignKey("internships.internship_id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.skill_id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================
# APPLICATIONS
# ============================================================

applications = Table(
    "applications", metadata,
    Column("application_id", Integer, primary_key=True),
    Column("internship_id", Integer, ForeignKey("internships.internship_id", ondelete="CASCADE"), nullable=False),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False),
    Column("company_id", Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("cover_letter", Text),
    Column("resume_url", String(500), nullable=False),
    Column("answers", Text),  # JSON-encoded list of {question, answer}
    Column("priority", String(10), nullable=False, server_default="medium"),
    Column("withdrawal_reason", Text),
    Column("rejection_reason", Text),
    Column("interview_scheduled", Boolean, nullable=False, server_default=false()),
    Column("interview_at", DateTime),
    Column("interview_type", String(20)),
    Column("interview_link", String(500)),
    Column("interview_location", String(200)),
    Column("interview_notes", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("internship_id", "student_id", name="uq_application_internship_student"),
)

application_timeline = Table(
    "application_timeline", metadata,
    Column("timeline_id", Integer, primary_key=True),
    Column("application_id", Integer, ForeignKey("applications.application_id", ondelete="CASCADE"), nullable=False, index=True),
    Column("status", String(20), nullable=False),
    Column("note", Text),
    Column("updated_by", Integer, ForeignKey("users.user_id", ondelete="SET NULL")),
    Column("created_at", DateTime, nullable=False),
)

application_documents = Table(
    "application_documents", metadata,
    Column("document_id", Integer, primary_key=True),
    Column("application_id", Integer, ForeignKey("applications.application_id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("url", String(500), nullable=False),
    Column("content_type", String(100)),
)


# ============================================================
# JOB BOARD
# ============================================================

board_jobs = Table(
    "board_jobs", metadata,
    Column("job_id", Integer, primary_key=True),
    Column("company_id", Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("location", String(200), nullable=False),
    Column("job_type", String(20), nullable=False),
    Column("duration", String(50), nullable=False),
    Column("salary", String(100)),
    Column("description", Text, nullable=False),
    Column("requirements", Text),      # JSON-encoded list
    Column("skills", Text),            # JSON-encoded list
    Column("responsibilities", Text),  # JSON-encoded list
    Column("benefits", Text),          # JSON-encoded list
    Column("deadline", DateTime, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("is_remote", Boolean, nullable=False, server_default=false()),
    Column("is_part_time", Boolean, nullable=False, server_default=false()),
    Column("experience_level", String(20), nullable=False, server_default="entry"),
    Column("views", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

board_applications = Table(
    "board_applications", metadata,
    Column("application_id", Integer, primary_key=True),
    Column("job_id", Integer, ForeignKey("board_jobs.job_id", ondelete="CASCADE"), nullable=False),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False),
    Column("company_id", Integer, ForeignKey("companies.company_id", ondelete="CASCADE"), nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("cover_letter", Text, nullable=False),
    Column("resume_url", String(500), nullable=False),
    Column("portfolio_url", String(500)),
    Column("company_notes", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("job_id", "student_id", name="uq_board_application_job_student"),
)

board_application_timeline = Table(
    "board_application_timeline", metadata,
    Column("timeline_id", Integer, primary_key=True),
    Column("application_id", Integer, ForeignKey("board_applications.application_id", ondelete="CASCADE"), nullable=False, index=True),
    Column("status", String(20), nullable=False),
    Column("note", Text),
    Column("created_at", DateTime, nullable=False),
)

board_bookmarks = Table(
    "board_bookmarks", metadata,
    Column("job_id", Integer, ForeignKey("board_jobs.job_id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True),
)
