"""
In-App Notification Service

Creates, lists and marks notifications, plus helpers that build the
title/message/link for each scenario (new match, new application,
status change, new message, ...).

Notification preferences (email opt-outs) also live here; a user with no
preference row gets every email.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {
    "new_job_match", "new_candidate_match", "new_application", "application_status",
    "message", "profile_viewed", "achievement_unlocked", "job_posted", "candidate_contacted",
}

DEFAULT_PREFERENCES = {
    "email_application_updates": True,
    "email_new_matches": True,
    "email_messages": True,
}


def create_notification(
    user_id: int,
    type: str,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    link_text: Optional[str] = None,
    icon: Optional[str] = None,
    metadata: Optional[dict] = None,
    db=None,
) -> int:
    """Insert a notification and return its id. Pass db to join an open session."""
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type '{type}'")

    stmt = insert(tables.notifications).values(
        user_id=user_id, type=type, title=title, message=message,
        link_url=link_url, link_text=link_text, icon=icon, metadata=metadata or {},
    )
    if db is not None:
        return db.execute(stmt).inserted_primary_key[0]
    with get_db_session() as session:
        return session.execute(stmt).inserted_primary_key[0]


def get_user_notifications(user_id: int, limit: Optional[int] = None, unread_only: bool = False) -> List[dict]:
    n = tables.notifications
    query = select(n).where(n.c.user_id == user_id).order_by(n.c.created_at.desc(), n.c.id.desc())
    if unread_only:
        query = query.where(n.c.is_read.is_(False))
    if limit:
        query = query.limit(limit)
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query).mappings().fetchall()]


def get_unread_count(user_id: int) -> int:
    n = tables.notifications
    with get_db_session() as db:
        return db.execute(
            select(func.count()).select_from(n).where(n.c.user_id == user_id, n.c.is_read.is_(False))
        ).scalar_one()


def mark_notification_read(notification_id: int, user_id: int) -> bool:
    n = tables.notifications
    with get_db_session() as db:
        result = db.execute(
            update(n).where(n.c.id == notification_id, n.c.user_id == user_id)
            .values(is_read=True, read_at=utcnow())
        )
        return result.rowcount > 0


def mark_all_notifications_read(user_id: int) -> int:
    n = tables.notifications
    with get_db_session() as db:
        result = db.execute(
            update(n).where(n.c.user_id == user_id, n.c.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
        )
        return result.rowcount


# ============================================================
# PREFERENCES
# ============================================================

def get_preferences(user_id: int, db=None) -> Dict[str, bool]:
    query = select(tables.notification_preferences).where(
        tables.notification_preferences.c.user_id == user_id
    )
    if db is not None:
        row = db.execute(query).mappings().fetchone()
    else:
        with get_db_session() as session:
            row = session.execute(query).mappings().fetchone()
    if not row:
        return dict(DEFAULT_PREFERENCES)
    return {key: bool(row[key]) for key in DEFAULT_PREFERENCES}


def update_preferences(user_id: int, updates: Dict[str, bool]) -> Dict[str, bool]:
    np_ = tables.notification_preferences
    with get_db_session() as db:
        current = get_preferences(user_id, db=db)
        current.update({k: v for k, v in updates.items() if k in DEFAULT_PREFERENCES and v is not None})
        exists = db.execute(select(np_.c.user_id).where(np_.c.user_id == user_id)).fetchone()
        if exists:
            db.execute(update(np_).where(np_.c.user_id == user_id).values(**current))
        else:
            db.execute(insert(np_).values(user_id=user_id, **current))
    return current


# ============================================================
# SCENARIO HELPERS
# ============================================================

def notify_new_job_match(user_id: int, job_id: int, job_title: str, match_score: int, db=None) -> int:
    return create_notification(
        user_id, "new_job_match", "New Job Match!",
        f'You have a {match_score}% match for "{job_title}"',
        link_url=f"/jobs/{job_id}", link_text="View Job", icon="⭐",
        metadata={"job_id": job_id, "match_score": match_score}, db=db,
    )


def notify_new_candidate_match(
    user_id: int, candidate_id: int, candidate_name: str, job_title: str, db=None
) -> int:
    return create_notification(
        user_id, "new_candidate_match", "New Candidate Match!",
        f'{candidate_name} matched to "{job_title}"',
        link_url=f"/school/dashboard?candidate={candidate_id}", link_text="View Candidate", icon="👤",
        metadata={"candidate_id": candidate_id, "job_title": job_title}, db=db,
    )


def notify_application_status_update(
    user_id: int, application_id: int, job_title: str, status: str, db=None
) -> int:
    return create_notification(
        user_id, "application_status", "Application Update",
        f'Your application for "{job_title}" has been updated to {status}',
        link_url="/teacher/dashboard", link_text="View Application", icon="📝",
        metadata={"application_id": application_id, "status": status}, db=db,
    )


def notify_new_message(user_id: int, conversation_id: int, sender_name: str, db=None) -> int:
    return create_notification(
        user_id, "message", "New Message",
        f"You have a new message from {sender_name}",
        link_url=f"/messages?conversation={conversation_id}", link_text="View Message", icon="💬",
        metadata={"conversation_id": conversation_id}, db=db,
    )


def notify_new_application(
    school_user_id: int, application_id: int, teacher_name: str, job_title: str, db=None
) -> int:
    return create_notification(
        school_user_id, "new_application", "New Application Received!",
        f'{teacher_name} applied for "{job_title}"',
        link_url="/school/dashboard#applications", link_text="View Application", icon="📨",
        metadata={"application_id": application_id, "job_title": job_title, "teacher_name": teacher_name},
        db=db,
    )


def notify_candidate_contacted(
    teacher_user_id: int, school_name: str, job_title: str, interview_id: int, db=None
) -> int:
    return create_notification(
        teacher_user_id, "candidate_contacted", "Interview Invitation",
        f'{school_name} invited you to interview for "{job_title}"',
        link_url="/teacher/dashboard#interviews", link_text="View Invite", icon="📅",
        metadata={"interview_id": interview_id, "school_name": school_name}, db=db,
    )


def notify_job_posted_to_teachers(
    teacher_user_ids: Iterable[int], job_id: int, job_title: str, school_name: str
) -> int:
    """
    Notify every matched teacher about a new posting.

    Failures are logged per teacher so one bad row doesn't stop the rest.

    Returns:
        Number of notifications created
    """
    created = 0
    for user_id in teacher_user_ids:
        try:
            create_notification(
                user_id, "new_job_match", "New Job Match!",
                f'{school_name} posted a job that matches your profile: "{job_title}"',
                link_url=f"/jobs/{job_id}", link_text="View Job", icon="🎯",
                metadata={"job_id": job_id, "school_name": school_name},
            )
            created += 1
        except Exception:
            logger.exception("Failed to notify teacher user %s about job %s", user_id, job_id)
    return created
