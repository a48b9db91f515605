"""
Authentication: bcrypt password hashes, JWT bearer tokens and the
role dependencies routes use to guard themselves.

    teacher: dict = Depends(get_current_teacher)   # adds teacher_id
    school: dict = Depends(get_approved_school)    # adds school_id, approval_status
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from perfectmatch.core.config import get_settings
from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.utils.rate_limit import LoginRateLimiter

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# failed logins per email
login_limiter = LoginRateLimiter(
    max_attempts=settings.login_max_attempts,
    lockout_seconds=settings.login_lockout_minutes * 60,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """JWT with an exp claim; default lifetime is jwt_expire_minutes."""
    claims = {**data, "exp": datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Claims of a valid token, None for a bad signature or an expired token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    Resolve the bearer token to an active user.

    Returns {"user_id", "email", "role", "full_name"}. Deactivated
    accounts get 403 even with a valid token.
    """
    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise _unauthorized()

    u = tables.users
    with get_db_session() as db:
        user = db.execute(
            select(u.c.id, u.c.email, u.c.role, u.c.full_name, u.c.is_active).where(u.c.id == int(payload["sub"]))
        ).mappings().fetchone()

    if not user:
        raise _unauthorized()
    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return {"user_id": user["id"], "email": user["email"], "role": user["role"], "full_name": user["full_name"]}


def _profile_row(table, user_id: int, *columns):
    with get_db_session() as db:
        return db.execute(select(table.c.id, *columns).where(table.c.user_id == user_id)).fetchone()


async def get_current_teacher(user: dict = Depends(get_current_user)) -> dict:
    """Teacher with a profile; adds teacher_id."""
    if user["role"] != "teacher":
        raise HTTPException(status_code=403, detail="Teachers only")

    row = _profile_row(tables.teachers, user["user_id"])
    if not row:
        raise HTTPException(status_code=404, detail="Teacher profile not found. Create profile first.")
    return {**user, "teacher_id": row[0]}


async def get_current_school(user: dict = Depends(get_current_user)) -> dict:
    """School with a profile; adds school_id and approval_status."""
    if user["role"] != "school":
        raise HTTPException(status_code=403, detail="Schools only")

    row = _profile_row(tables.schools, user["user_id"], tables.schools.c.approval_status)
    if not row:
        raise HTTPException(status_code=404, detail="School profile not found. Create profile first.")
    return {**user, "school_id": row[0], "approval_status": row[1]}


async def get_approved_school(school: dict = Depends(get_current_school)) -> dict:
    """Schools can't post or make offers until an admin approves them."""
    if school["approval_status"] != "approved":
        raise HTTPException(status_code=403, detail="School account is pending approval")
    return school


async def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admins only")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
) -> Optional[dict]:
    """Current user when a valid token was sent, otherwise None (public endpoints)."""
    if credentials is None:
        return None
    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None
