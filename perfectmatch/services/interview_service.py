"""
Interview invitations from schools to applicants.
"""

import logging
from typing import List, Optional

from sqlalchemy import insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import as_naive_utc, utcnow
from perfectmatch.services import application_service, email_service, notification_service, profile_service

logger = logging.getLogger(__name__)


def _invite_select():
    ii, j, s, t = tables.interview_invites, tables.jobs, tables.schools, tables.teachers
    return select(
        ii,
        j.c.title.label("job_title"),
        s.c.school_name.label("school_name"),
        t.c.full_name.label("teacher_name"),
    ).select_from(
        ii.join(j, ii.c.job_id == j.c.id)
          .join(s, ii.c.school_id == s.c.id)
          .join(t, ii.c.teacher_id == t.c.id)
    )


def _get(db, invite_id: int) -> Optional[dict]:
    row = db.execute(
        _invite_select().where(tables.interview_invites.c.id == invite_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def get_invite(invite_id: int) -> Optional[dict]:
    with get_db_session() as db:
        return _get(db, invite_id)


def create_invite(school_id: int, data: dict) -> dict:
    """
    Invite an applicant to interview. Teacher gets an in-app notification
    and an invitation email.
    """
    application = application_service.get_application(data["application_id"])
    if not application:
        raise LookupError("Application not found")
    if application["school_id"] != school_id:
        raise PermissionError("Not your application")
    if application["status"] in application_service.TERMINAL_STATUSES:
        raise ValueError(f"Application is already {application['status']}")

    with get_db_session() as db:
        invite_id = db.execute(insert(tables.interview_invites).values(
            application_id=application["id"],
            teacher_id=application["teacher_id"],
            school_id=school_id,
            job_id=application["job_id"],
            scheduled_at=as_naive_utc(data["scheduled_at"]),
            duration_minutes=data.get("duration_minutes") or 30,
            interview_type=data.get("interview_type") or "video",
            location=data.get("location"),
            meeting_link=data.get("meeting_link"),
            notes=data.get("notes"),
            status="pending",
        )).inserted_primary_key[0]
        invite = _get(db, invite_id)

    logger.info("Interview invite %s sent for application %s", invite_id, application["id"])

    try:
        notification_service.notify_candidate_contacted(
            application["teacher_user_id"], invite["school_name"], invite["job_title"], invite_id
        )
        with get_db_session() as db:
            teacher = profile_service.get_teacher(db, application["teacher_id"])
            email_service.queue_interview_invite_email(db, teacher, invite, invite["school_name"], invite["job_title"])
    except Exception:
        logger.exception("Failed to announce interview invite %s", invite_id)

    return invite


def _respond(invite_id: int, teacher_id: int, status: str, teacher_notes: Optional[str]) -> dict:
    invite = get_invite(invite_id)
    if not invite:
        raise LookupError("Interview invite not found")
    if invite["teacher_id"] != teacher_id:
        raise PermissionError("Not your interview invite")
    if invite["status"] != "pending":
        raise ValueError(f"Invite was already {invite['status']}")

    with get_db_session() as db:
        db.execute(
            update(tables.interview_invites).where(tables.interview_invites.c.id == invite_id)
            .values(status=status, teacher_response_at=utcnow(), teacher_notes=teacher_notes)
        )
        return _get(db, invite_id)


def accept_invite(invite_id: int, teacher_id: int, user_id: int, teacher_notes: Optional[str] = None) -> dict:
    pending = get_invite(invite_id)
    if pending:
        application = application_service.get_application(pending["application_id"])
        if application and application["status"] in application_service.TERMINAL_STATUSES:
            raise ValueError(f"Application is already {application['status']}")

    invite = _respond(invite_id, teacher_id, "accepted", teacher_notes)
    application_service.update_application_status(
        invite["application_id"], "interview_scheduled", changed_by=user_id
    )
    return invite


def decline_invite(invite_id: int, teacher_id: int, teacher_notes: Optional[str] = None) -> dict:
    return _respond(invite_id, teacher_id, "declined", teacher_notes)


def list_teacher_invites(teacher_id: int, status: Optional[str] = None) -> List[dict]:
    ii = tables.interview_invites
    query = _invite_select().where(ii.c.teacher_id == teacher_id)
    if status:
        query = query.where(ii.c.status == status)
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query.order_by(ii.c.scheduled_at, ii.c.id)).mappings().fetchall()]


def list_school_invites(school_id: int, job_id: Optional[int] = None) -> List[dict]:
    ii = tables.interview_invites
    query = _invite_select().where(ii.c.school_id == school_id)
    if job_id:
        query = query.where(ii.c.job_id == job_id)
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query.order_by(ii.c.scheduled_at, ii.c.id)).mappings().fetchall()]
