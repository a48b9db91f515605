"""
Offer Service

Schools draft and extend offers on applications; teachers accept or
decline extended offers. Extending an offer moves the application to
offer_made, accepting it moves the application to hired.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import as_naive_utc, utcnow
from perfectmatch.services import application_service, email_service, profile_service

logger = logging.getLogger(__name__)

OFFER_FIELDS = (
    "status", "salary_amount", "start_date", "benefits_summary",
    "additional_terms", "expiration_date", "offer_letter_url",
)
DATETIME_FIELDS = ("start_date", "expiration_date")

OFFER_LABELS = {
    "draft": "Draft",
    "approval_pending": "Awaiting Approval",
    "extended": "Pending",
    "accepted": "Accepted",
    "declined": "Declined",
}


def is_offer_expired(offer: dict, now: Optional[datetime] = None) -> bool:
    expiration = offer.get("expiration_date")
    if not expiration:
        return False
    return as_naive_utc(expiration) < (now or utcnow())


def offer_status_info(offer: dict, now: Optional[datetime] = None) -> Tuple[str, str]:
    """(display status, label); an extended offer past its expiration shows as expired."""
    if offer["status"] == "extended" and is_offer_expired(offer, now):
        return "expired", "Expired"
    return offer["status"], OFFER_LABELS.get(offer["status"], offer["status"])


def _offer_select():
    o, a, j, t = tables.offers, tables.applications, tables.jobs, tables.teachers
    return select(
        o,
        a.c.job_id.label("job_id"),
        a.c.teacher_id.label("teacher_id"),
        j.c.title.label("job_title"),
        j.c.school_id.label("school_id"),
        t.c.full_name.label("teacher_name"),
    ).select_from(
        o.join(a, o.c.application_id == a.c.id)
         .join(j, a.c.job_id == j.c.id)
         .join(t, a.c.teacher_id == t.c.id)
    )


def _with_display(row) -> dict:
    offer = dict(row)
    offer["display_status"], offer["display_label"] = offer_status_info(offer)
    return offer


def _get(db, offer_id: int) -> Optional[dict]:
    row = db.execute(_offer_select().where(tables.offers.c.id == offer_id)).mappings().fetchone()
    return _with_display(row) if row else None


def get_offer(offer_id: int) -> Optional[dict]:
    with get_db_session() as db:
        return _get(db, offer_id)


def _clean(data: dict) -> dict:
    values = {k: v for k, v in data.items() if k in OFFER_FIELDS}
    for key in DATETIME_FIELDS:
        if key in values:
            values[key] = as_naive_utc(values[key])
    return values


def _on_extended(offer: dict, user_id: int) -> None:
    """Application -> offer_made, then the offer email."""
    application_service.update_application_status(
        offer["application_id"], "offer_made", changed_by=user_id, school_id=offer["school_id"]
    )
    try:
        with get_db_session() as db:
            teacher = profile_service.get_teacher(db, offer["teacher_id"])
            school = profile_service.get_school(db, offer["school_id"])
            email_service.queue_offer_extended_email(db, teacher, offer, school["school_name"], offer["job_title"])
    except Exception:
        logger.exception("Failed to queue offer email for offer %s", offer["id"])


def create_offer(school_id: int, user_id: int, data: dict) -> dict:
    """
    Raises:
        LookupError: application missing
        PermissionError: application belongs to another school
        ValueError: application is already closed
    """
    application = application_service.get_application(data["application_id"])
    if not application:
        raise LookupError("Application not found")
    if application["school_id"] != school_id:
        raise PermissionError("Not your application")
    if application["status"] in application_service.TERMINAL_STATUSES:
        raise ValueError(f"Application is already {application['status']}")

    values = _clean(data)
    with get_db_session() as db:
        offer_id = db.execute(insert(tables.offers).values(
            application_id=application["id"], created_by=user_id, **values
        )).inserted_primary_key[0]
        offer = _get(db, offer_id)

    logger.info("Offer %s created for application %s (%s)", offer_id, application["id"], offer["status"])
    if offer["status"] == "extended":
        _on_extended(offer, user_id)
    return offer


def _ensure_application_open(application_id: int) -> None:
    application = application_service.get_application(application_id)
    if application and application["status"] in application_service.TERMINAL_STATUSES:
        raise ValueError(f"Application is already {application['status']}")


def update_offer(offer_id: int, school_id: int, user_id: int, updates: dict) -> dict:
    offer = get_offer(offer_id)
    if not offer:
        raise LookupError("Offer not found")
    if offer["school_id"] != school_id:
        raise PermissionError("Not your offer")
    if offer["status"] in ("accepted", "declined"):
        raise ValueError(f"Offer was already {offer['status']}")

    values = _clean(updates)
    if offer["status"] != "extended" and values.get("status") == "extended":
        _ensure_application_open(offer["application_id"])
    with get_db_session() as db:
        db.execute(update(tables.offers).where(tables.offers.c.id == offer_id).values(**values, updated_at=utcnow()))
        updated = _get(db, offer_id)

    if offer["status"] != "extended" and updated["status"] == "extended":
        _on_extended(updated, user_id)
    return updated


def respond_to_offer(offer_id: int, teacher_id: int, user_id: int, response: str) -> dict:
    """
    Teacher accepts or declines an extended offer.

    Raises:
        LookupError, PermissionError, ValueError (not extended / expired)
    """
    offer = get_offer(offer_id)
    if not offer:
        raise LookupError("Offer not found")
    if offer["teacher_id"] != teacher_id:
        raise PermissionError("Not your offer")
    if offer["status"] != "extended":
        raise ValueError("This offer is not awaiting a response")
    if is_offer_expired(offer):
        raise ValueError("This offer has expired")
    if response == "accepted":
        _ensure_application_open(offer["application_id"])

    with get_db_session() as db:
        db.execute(
            update(tables.offers).where(tables.offers.c.id == offer_id)
            .values(status=response, updated_at=utcnow())
        )
        updated = _get(db, offer_id)

    logger.info("Offer %s %s by teacher %s", offer_id, response, teacher_id)
    if response == "accepted":
        application_service.update_application_status(offer["application_id"], "hired", changed_by=user_id)
    return updated


def list_school_offers(school_id: int, job_id: Optional[int] = None) -> List[dict]:
    o, a, j = tables.offers, tables.applications, tables.jobs
    query = _offer_select().where(j.c.school_id == school_id)
    if job_id:
        query = query.where(a.c.job_id == job_id)
    with get_db_session() as db:
        rows = db.execute(query.order_by(o.c.created_at.desc(), o.c.id.desc())).mappings().fetchall()
    return [_with_display(r) for r in rows]


def list_teacher_offers(teacher_id: int) -> List[dict]:
    o, a = tables.offers, tables.applications
    # drafts stay internal to the school
    query = _offer_select().where(a.c.teacher_id == teacher_id, o.c.status.notin_(("draft", "approval_pending")))
    with get_db_session() as db:
        rows = db.execute(query.order_by(o.c.created_at.desc(), o.c.id.desc())).mappings().fetchall()
    return [_with_display(r) for r in rows]


def get_application_offer(application_id: int) -> Optional[dict]:
    """Latest offer for an application."""
    o = tables.offers
    with get_db_session() as db:
        row = db.execute(
            _offer_select().where(o.c.application_id == application_id)
            .order_by(o.c.created_at.desc(), o.c.id.desc())
        ).mappings().first()
    return _with_display(row) if row else None
