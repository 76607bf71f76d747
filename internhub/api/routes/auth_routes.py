"""
Authentication Routes

POST /auth/register - Register new student or company account
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
PUT /auth/password - Change password
"""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from internhub.db.postgres import get_db_session, fetch_one
from internhub.core.auth import hash_password, verify_password, create_access_token, get_current_user
from internhub.schemas.schemas import (
    RegisterRequest, LoginRequest, PasswordChangeRequest, TokenResponse, UserResponse, MessageResponse
)
from internhub.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

USER_COLUMNS = """
    user_id, name, email, role, phone, avatar_url, city, state, country,
    is_active, last_login, created_at
"""


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    Creates the user and an empty role profile (student profile, or company
    profile named after `company_name`). Admin accounts cannot self-register.
    """
    email = request.email.lower()
    with get_db_session() as db:
        # Check email exists
        result = db.execute(
            text("SELECT user_id FROM users WHERE email = :email"),
            {"email": email}
        )
        if result.fetchone():
            raise HTTPException(status_code=400, detail="User already exists with this email")

        # Create user
        result = db.execute(
            text("""
                INSERT INTO users (name, email, password_hash, role)
                VALUES (:name, :email, :password_hash, :role)
                RETURNING user_id
            """),
            {
                "name": request.name.strip(),
                "email": email,
                "password_hash": hash_password(request.password),
                "role": request.role.value
            }
        )
        user_id = result.fetchone()[0]

        # Create empty role profile
        if request.role.value == "student":
            db.execute(text("INSERT INTO students (user_id) VALUES (:id)"), {"id": user_id})
        else:
            db.execute(
                text("INSERT INTO companies (user_id, company_name) VALUES (:id, :name)"),
                {"id": user_id, "name": (request.company_name or request.name).strip()}
            )

    logger.info(f"Registered {request.role.value} user {user_id}")
    token = create_access_token(data={"sub": str(user_id), "role": request.role.value})
    return TokenResponse(access_token=token, user_id=user_id, role=request.role.value)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id, password_hash, role, is_active FROM users WHERE email = :email"),
            {"email": request.email.lower()}
        )
        user = result.fetchone()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id, password_hash, role, is_active = user

    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    with get_db_session() as db:
        db.execute(
            text("UPDATE users SET last_login = :now WHERE user_id = :id"),
            {"now": utcnow(), "id": user_id}
        )

    token = create_access_token(data={"sub": str(user_id), "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    row = fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE user_id = :id", {"id": user["user_id"]})
    return UserResponse(**row)


@router.put("/password", response_model=MessageResponse)
async def change_password(request: PasswordChangeRequest, user: dict = Depends(get_current_user)):
    """Change password. The current password must be supplied."""
    row = fetch_one("SELECT password_hash FROM users WHERE user_id = :id", {"id": user["user_id"]})

    if not verify_password(request.current_password, row["password_hash"]):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    with get_db_session() as db:
        db.execute(
            text("UPDATE users SET password_hash = :hash, updated_at = :now WHERE user_id = :id"),
            {"hash": hash_password(request.new_password), "now": utcnow(), "id": user["user_id"]}
        )

    return MessageResponse(message="Password updated successfully")
