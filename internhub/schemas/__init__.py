"""
Schemas module - Request/Response schemas for API endpoints.

All pydantic models live in internhub.schemas.schemas, grouped by area
(auth, students, companies, internships, applications, wishlist,
notifications, messaging, admin, job board).

Usage:
    from internhub.schemas.schemas import InternshipCreate, InternshipResponse
"""
