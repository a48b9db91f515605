"""
Admin Service

User management and school verification. Schools start out pending and
can't post jobs until an admin approves them.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import email_service, notification_service

logger = logging.getLogger(__name__)

USER_FIELDS = ("id", "email", "role", "full_name", "is_active", "created_at")


def list_users(role: Optional[str] = None) -> List[dict]:
    u = tables.users
    query = select(*[u.c[name] for name in USER_FIELDS]).order_by(u.c.created_at.desc(), u.c.id.desc())
    if role:
        query = query.where(u.c.role == role)
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query).mappings().fetchall()]


def set_user_active(user_id: int, is_active: bool) -> Optional[dict]:
    u = tables.users
    with get_db_session() as db:
        result = db.execute(update(u).where(u.c.id == user_id).values(is_active=is_active))
        if result.rowcount == 0:
            return None
        row = db.execute(select(*[u.c[name] for name in USER_FIELDS]).where(u.c.id == user_id)).mappings().fetchone()
    logger.info("User %s %s", user_id, "activated" if is_active else "deactivated")
    return dict(row)


def list_schools(approval_status: Optional[str] = None) -> List[dict]:
    s = tables.schools
    query = select(s).order_by(s.c.created_at.desc(), s.c.id.desc())
    if approval_status:
        query = query.where(s.c.approval_status == approval_status)
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query).mappings().fetchall()]


def _school_owner(db, school_id: int) -> Optional[dict]:
    s, u = tables.schools, tables.users
    row = db.execute(
        select(s, u.c.email.label("owner_email"))
        .select_from(s.join(u, s.c.user_id == u.c.id))
        .where(s.c.id == school_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def _tell_school(school: dict, approved: bool, reason: Optional[str] = None) -> None:
    """In-app notification plus a direct email when email is configured."""
    if approved:
        title = "Your school account is approved"
        message = f"{school['school_name']} can now post jobs and contact candidates."
    else:
        title = "Your school account was not approved"
        message = f"Reason: {reason}"

    try:
        notification_service.create_notification(
            school["user_id"], "application_status", title, message,
            link_url="/school/dashboard", link_text="Go to dashboard",
            metadata={"school_id": school["id"], "approved": approved},
        )
    except Exception:
        logger.exception("Failed to notify school %s of approval decision", school["id"])

    if not email_service.is_configured():
        return
    try:
        email_service.send_email([school["owner_email"]], title, f"<p>{message}</p>", text=message)
    except email_service.EmailError as e:
        logger.warning("Approval email to school %s failed: %s", school["id"], e)


def approve_school(school_id: int, admin_user_id: int, verification_notes: Optional[str] = None) -> dict:
    """Raises LookupError if the school doesn't exist."""
    s = tables.schools
    with get_db_session() as db:
        if not _school_owner(db, school_id):
            raise LookupError("School not found")
        db.execute(
            update(s).where(s.c.id == school_id).values(
                approval_status="approved", approved_at=utcnow(), approved_by=admin_user_id,
                rejected_at=None, rejection_reason=None,
                verification_notes=verification_notes, updated_at=utcnow(),
            )
        )
        school = _school_owner(db, school_id)

    logger.info("School %s approved by admin %s", school_id, admin_user_id)
    _tell_school(school, approved=True)
    return school


def reject_school(school_id: int, admin_user_id: int, reason: str, verification_notes: Optional[str] = None) -> dict:
    """Raises LookupError if the school doesn't exist."""
    s = tables.schools
    with get_db_session() as db:
        if not _school_owner(db, school_id):
            raise LookupError("School not found")
        db.execute(
            update(s).where(s.c.id == school_id).values(
                approval_status="rejected", rejected_at=utcnow(), rejection_reason=reason,
                verification_notes=verification_notes, updated_at=utcnow(),
            )
        )
        school = _school_owner(db, school_id)

    logger.info("School %s rejected by admin %s", school_id, admin_user_id)
    _tell_school(school, approved=False, reason=reason)
    return school
