"""
Authentication Routes

POST /auth/register - Register new user (teacher or school)
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
POST /auth/password-strength - Score a candidate password
"""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import func, insert, select

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.core.auth import (
    hash_password, verify_password, create_access_token, get_current_user, login_limiter
)
from perfectmatch.utils.password import validate_password_strength
from perfectmatch.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse,
    PasswordCheckRequest, PasswordStrengthResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    After registration, login to get access token, then create profile.
    """
    strength = validate_password_strength(request.password)
    if not strength.meets_minimum:
        raise HTTPException(
            status_code=400,
            detail=f"Password is too weak: {'; '.join(strength.feedback)}"
        )

    u = tables.users
    with get_db_session() as db:
        taken = db.execute(select(u.c.id).where(func.lower(u.c.email) == request.email.lower())).fetchone()
        if taken:
            raise HTTPException(status_code=400, detail="Email already registered")

        db.execute(insert(tables.users).values(
            email=request.email.lower(),
            password_hash=hash_password(request.password),
            role=request.role.value,
            full_name=request.full_name,
            is_active=True,
        ))

    logger.info("Registered %s account %s", request.role.value, request.email)
    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    Too many failed attempts lock the email out for a few minutes.
    """
    email = request.email.lower()
    remaining = login_limiter.remaining_lockout(email)
    if remaining > 0:
        minutes = int(remaining // 60) + 1
        raise HTTPException(
            status_code=429,
            detail=f"Too many failed login attempts. Please try again in {minutes} minute(s)."
        )

    u = tables.users
    with get_db_session() as db:
        user = db.execute(
            select(u.c.id, u.c.password_hash, u.c.role, u.c.is_active).where(func.lower(u.c.email) == email)
        ).fetchone()

    if not user or not verify_password(request.password, user.password_hash):
        login_limiter.record_failure(email)
        logger.warning("Failed login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id, role = user.id, user.role
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    login_limiter.record_success(email)
    token = create_access_token(data={"sub": str(user_id), "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        row = db.execute(
            select(tables.users).where(tables.users.c.id == user["user_id"])
        ).mappings().fetchone()

    return UserResponse(**row)


@router.post("/password-strength", response_model=PasswordStrengthResponse)
async def check_password_strength(request: PasswordCheckRequest):
    """Score a password without registering (for live strength meters)."""
    strength = validate_password_strength(request.password)
    return PasswordStrengthResponse(
        score=strength.score,
        label=strength.label,
        feedback=strength.feedback,
        meets_minimum=strength.meets_minimum,
    )
