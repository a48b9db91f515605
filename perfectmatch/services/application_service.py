"""
Application Service

Teachers apply to jobs; schools move applications through the hiring
statuses. Every status change is written to application_status_history.

Side effects of a change (in-app notification, status email) run after
the write is committed. A failing side effect is logged and never
undoes the status change.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import email_service, job_service, notification_service, profile_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"hired", "rejected", "withdrawn"}

STATUS_TIMESTAMPS = {
    "interview_scheduled": "interview_scheduled_at",
    "offer_made": "offer_made_at",
    "rejected": "rejected_at",
}

STATUS_LABELS = {
    "pending": "Pending",
    "under_review": "Under Review",
    "reviewed": "Reviewed",
    "contacted": "Contacted",
    "shortlisted": "Shortlisted",
    "interview_scheduled": "Interview Scheduled",
    "offer_made": "Offer Made",
    "hired": "Hired",
    "rejected": "Rejected",
    "withdrawn": "Withdrawn",
}


class DuplicateApplicationError(ValueError):
    """Teacher already applied to this job."""


# ============================================================
# QUERIES
# ============================================================

def _application_select():
    a, j, s, t = tables.applications, tables.jobs, tables.schools, tables.teachers
    return select(
        a,
        t.c.full_name.label("teacher_name"),
        t.c.user_id.label("teacher_user_id"),
        j.c.title.label("job_title"),
        j.c.school_id.label("school_id"),
        s.c.school_name.label("school_name"),
        s.c.user_id.label("school_user_id"),
    ).select_from(
        a.join(j, a.c.job_id == j.c.id)
         .join(s, j.c.school_id == s.c.id)
         .join(t, a.c.teacher_id == t.c.id)
    )


def _get(db, application_id: int) -> Optional[dict]:
    row = db.execute(
        _application_select().where(tables.applications.c.id == application_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def get_application(application_id: int) -> Optional[dict]:
    with get_db_session() as db:
        return _get(db, application_id)


def list_teacher_applications(
    teacher_id: int,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> List[dict]:
    a, j, s = tables.applications, tables.jobs, tables.schools
    query = _application_select().where(a.c.teacher_id == teacher_id)
    if status:
        query = query.where(a.c.status == status)
    if search:
        needle = f"%{search.lower()}%"
        query = query.where(or_(func.lower(s.c.school_name).like(needle), func.lower(j.c.title).like(needle)))
    query = query.order_by(a.c.applied_at.desc(), a.c.id.desc())
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query).mappings().fetchall()]


def list_school_applications(
    school_id: int,
    job_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[dict]:
    a, j = tables.applications, tables.jobs
    query = _application_select().where(j.c.school_id == school_id)
    if job_id:
        query = query.where(a.c.job_id == job_id)
    if status:
        query = query.where(a.c.status == status)
    query = query.order_by(a.c.applied_at.desc(), a.c.id.desc())
    with get_db_session() as db:
        return [dict(r) for r in db.execute(query).mappings().fetchall()]


def get_application_stats(teacher_id: int) -> Dict[str, int]:
    a = tables.applications
    with get_db_session() as db:
        rows = db.execute(
            select(a.c.status, a.c.applied_at).where(a.c.teacher_id == teacher_id)
        ).fetchall()

    week_ago = utcnow() - timedelta(days=7)
    stats = {
        "total": len(rows),
        "pending": 0,
        "under_review": 0,
        "interview_scheduled": 0,
        "offer_made": 0,
        "rejected": 0,
        "withdrawn": 0,
        "this_week": 0,
    }
    for status, applied_at in rows:
        if status in stats and status not in ("total", "this_week"):
            stats[status] += 1
        if applied_at and applied_at >= week_ago:
            stats["this_week"] += 1
    return stats


def get_status_history(application_id: int) -> List[dict]:
    h = tables.application_status_history
    with get_db_session() as db:
        rows = db.execute(
            select(h).where(h.c.application_id == application_id).order_by(h.c.changed_at, h.c.id)
        ).mappings().fetchall()
    return [dict(r) for r in rows]


# ============================================================
# APPLY
# ============================================================

def _has_applied(db, job_id: int, teacher_id: int) -> bool:
    a = tables.applications
    return db.execute(
        select(a.c.id).where(a.c.job_id == job_id, a.c.teacher_id == teacher_id)
    ).fetchone() is not None


def apply_to_job(
    teacher_id: int,
    job_id: int,
    cover_letter: Optional[str] = None,
    desired_salary: Optional[str] = None,
) -> dict:
    """
    Submit an application.

    Raises:
        LookupError: job or teacher missing
        ValueError: job closed or a required field is blank
        DuplicateApplicationError: already applied
    """
    a = tables.applications
    with get_db_session() as db:
        job = job_service.get_job(db, job_id)
        if not job:
            raise LookupError("Job not found")
        if not job["is_active"]:
            raise ValueError("This job is no longer accepting applications")

        teacher = profile_service.get_teacher(db, teacher_id)
        if not teacher:
            raise LookupError("Teacher profile not found")

        requirements = job["application_requirements"]
        if requirements.get("cover_letter") and not (cover_letter or "").strip():
            raise ValueError("A cover letter is required for this job")
        if requirements.get("desired_salary") and not (desired_salary or "").strip():
            raise ValueError("Desired salary is required for this job")

        if _has_applied(db, job_id, teacher_id):
            raise DuplicateApplicationError("You have already applied to this job")

        try:
            application_id = db.execute(insert(a).values(
                job_id=job_id,
                teacher_id=teacher_id,
                cover_letter=cover_letter,
                desired_salary=desired_salary,
                status="pending",
            )).inserted_primary_key[0]
        except IntegrityError as e:
            # a concurrent submit won the unique (job_id, teacher_id) race
            raise DuplicateApplicationError("You have already applied to this job") from e

        db.execute(insert(tables.application_status_history).values(
            application_id=application_id,
            old_status=None,
            new_status="pending",
            changed_by=teacher["user_id"],
        ))
        application = _get(db, application_id)

    logger.info("Teacher %s applied to job %s (application %s)", teacher_id, job_id, application_id)

    try:
        notification_service.notify_new_application(
            application["school_user_id"], application_id, application["teacher_name"], application["job_title"]
        )
    except Exception:
        logger.exception("Failed to notify school about application %s", application_id)

    return application


# ============================================================
# STATUS CHANGES
# ============================================================

def update_application_status(
    application_id: int,
    new_status: str,
    changed_by: int,
    notes: Optional[str] = None,
    school_id: Optional[int] = None,
) -> dict:
    """
    Move an application to a new status.

    Setting the current status again only saves the notes. Terminal
    statuses (hired, rejected, withdrawn) cannot be changed.

    Args:
        school_id: When given, the application must belong to this school

    Raises:
        LookupError: application missing
        PermissionError: application belongs to another school
        ValueError: application already in a terminal status
    """
    a = tables.applications
    with get_db_session() as db:
        application = _get(db, application_id)
        if not application:
            raise LookupError("Application not found")
        if school_id is not None and application["school_id"] != school_id:
            raise PermissionError("Not your application")

        old_status = application["status"]
        if new_status == old_status:
            if notes is not None:
                db.execute(update(a).where(a.c.id == application_id).values(school_notes=notes))
                application["school_notes"] = notes
            return application

        if old_status in TERMINAL_STATUSES:
            raise ValueError(f"Application is already {old_status} and cannot be changed")

        now = utcnow()
        values = {"status": new_status, "updated_at": now}
        if new_status in STATUS_TIMESTAMPS:
            values[STATUS_TIMESTAMPS[new_status]] = now
        if notes is not None:
            values["school_notes"] = notes
        db.execute(update(a).where(a.c.id == application_id).values(**values))

        db.execute(insert(tables.application_status_history).values(
            application_id=application_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            note=notes,
            changed_at=now,
        ))
        application = _get(db, application_id)

    logger.info("Application %s: %s -> %s", application_id, old_status, new_status)
    _announce_status_change(application, old_status, notes)
    return application


def _announce_status_change(application: dict, old_status: str, notes: Optional[str]) -> None:
    new_status = application["status"]
    try:
        notification_service.notify_application_status_update(
            application["teacher_user_id"], application["id"], application["job_title"],
            STATUS_LABELS.get(new_status, new_status),
        )
    except Exception:
        logger.exception("Failed to notify teacher about application %s", application["id"])

    # Withdrawal is the teacher's own action
    if new_status == "withdrawn":
        return
    try:
        with get_db_session() as db:
            teacher = profile_service.get_teacher(db, application["teacher_id"])
            email_service.queue_application_status_email(
                db, teacher, application["school_name"], application["job_title"],
                old_status, new_status, note=notes,
            )
    except Exception:
        logger.exception("Failed to queue status email for application %s", application["id"])


def withdraw_application(application_id: int, teacher_id: int, user_id: int) -> dict:
    application = get_application(application_id)
    if not application:
        raise LookupError("Application not found")
    if application["teacher_id"] != teacher_id:
        raise PermissionError("Not your application")
    return update_application_status(application_id, "withdrawn", changed_by=user_id)


# ============================================================
# TIMELINE
# ============================================================

# (status, label, description) in hiring order
TIMELINE_STEPS = [
    ("pending", "Submitted", "Your application has been submitted"),
    ("under_review", "Under Review", "School is reviewing your application"),
    ("reviewed", "Reviewed", "Application has been reviewed"),
    ("contacted", "Contacted", "School has reached out to you"),
    ("shortlisted", "Shortlisted", "You are on the shortlist"),
    ("hired", "Hired", "Congratulations! You got the job"),
]
REJECTED_STEP = ("rejected", "Not Selected", "Application was not selected")
WITHDRAWN_STEP = ("withdrawn", "Withdrawn", "You withdrew this application")

# Statuses without their own step display as the nearest one
TIMELINE_ALIASES = {
    "interview_scheduled": "shortlisted",
    "offer_made": "shortlisted",
}

_STEP_INDEX = {step[0]: i for i, step in enumerate(TIMELINE_STEPS)}


def _step(entry, state: str) -> dict:
    status, label, description = entry
    return {"status": status, "label": label, "description": description, "state": state}


def _furthest_step(history: List[dict]) -> int:
    reached = 0
    for entry in history:
        for status in (entry.get("old_status"), entry.get("new_status")):
            status = TIMELINE_ALIASES.get(status, status)
            if status in _STEP_INDEX:
                reached = max(reached, _STEP_INDEX[status])
    return reached


def build_timeline(status: str, history: Optional[List[dict]] = None) -> dict:
    """
    Display steps for an application status.

    Returns:
        {"current_label", "steps", "next_steps"}; each step is
        completed, current or upcoming
    """
    history = history or []

    if status in ("rejected", "withdrawn"):
        terminal = REJECTED_STEP if status == "rejected" else WITHDRAWN_STEP
        reached = _furthest_step(history)
        steps = [_step(entry, "completed") for entry in TIMELINE_STEPS[:reached + 1]]
        steps.append(_step(terminal, "current"))
        return {"current_label": terminal[1], "steps": steps, "next_steps": []}

    index = _STEP_INDEX.get(TIMELINE_ALIASES.get(status, status), 0)
    steps = []
    for i, entry in enumerate(TIMELINE_STEPS):
        state = "completed" if i < index else "current" if i == index else "upcoming"
        steps.append(_step(entry, state))

    next_steps = []
    if status != "hired" and index + 1 < len(TIMELINE_STEPS):
        next_steps.append(_step(TIMELINE_STEPS[index + 1], "upcoming"))

    # interview_scheduled keeps its own label while sitting on the shortlisted step
    current_label = TIMELINE_STEPS[index][1] if status in _STEP_INDEX else STATUS_LABELS.get(status, status)
    return {"current_label": current_label, "steps": steps, "next_steps": next_steps}


def get_application_timeline(application: dict) -> dict:
    history = get_status_history(application["id"])
    timeline = build_timeline(application["status"], history)
    return {
        "application_id": application["id"],
        "current_status": application["status"],
        **timeline,
        "history": history,
    }
