"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (role guards, optional auth)
- Token lookup for WebSocket connections
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from internhub.core.config import get_settings
from internhub.db.postgres import get_db_session

settings = get_settings()

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)

# Bearer token extractor; missing credentials are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _load_user(user_id: int) -> Optional[dict]:
    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id, name, email, role, is_active FROM users WHERE user_id = :id"),
            {"id": user_id}
        )
        user = result.fetchone()

    if not user:
        return None

    return {
        "user_id": user[0],
        "name": user[1],
        "email": user[2],
        "role": user[3],
        "is_active": bool(user[4]),
    }


def user_from_token(token: Optional[str]) -> Optional[dict]:
    """
    Resolve a raw JWT to an active user dict, or None.

    Used by the WebSocket endpoint, where no HTTPException can be raised.
    """
    if not token:
        return None

    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None

    try:
        user = _load_user(int(payload["sub"]))
    except (TypeError, ValueError):
        return None

    if not user or not user["is_active"]:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    try:
        user = _load_user(int(user_id))
    except (TypeError, ValueError):
        raise credentials_exception

    if not user:
        raise credentials_exception

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency - Current user if a valid token was sent, otherwise None."""
    if credentials is None:
        return None
    return user_from_token(credentials.credentials)


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require student role and get student_id."""
    if user["role"] != "student":
        raise HTTPException(status_code=403, detail="Students only")

    with get_db_session() as db:
        result = db.execute(
            text("SELECT student_id FROM students WHERE user_id = :id"),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="Student profile not found")

    user["student_id"] = row[0]
    return user


async def get_current_company(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require company role and get company_id."""
    if user["role"] != "company":
        raise HTTPException(status_code=403, detail="Companies only")

    with get_db_session() as db:
        result = db.execute(
            text("SELECT company_id FROM companies WHERE user_id = :id"),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="Company profile not found")

    user["company_id"] = row[0]
    return user


def require_roles(*roles: str):
    """Dependency factory - allow only the given roles."""
    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {user['role']} is not authorized to access this route"
            )
        return user
    return checker


# Dependency - Require admin role
get_current_admin = require_roles("admin")
