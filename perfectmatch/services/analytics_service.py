"""
Hiring Analytics

School-level metrics built from jobs, applications, candidates and offers:
- time to hire (job posted -> offer that was accepted)
- funnel conversion rates
- per-job candidate / application funnel
- platform overview for admins
"""

import logging
import math
from typing import Dict, List, Optional

from sqlalchemy import func, select

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session

logger = logging.getLogger(__name__)

INTERVIEWED_STATUSES = ("contacted", "shortlisted", "interview_scheduled", "offer_made", "hired")

CANDIDATE_STATUSES = ("new", "reviewed", "contacted", "shortlisted", "hired", "hidden")
APPLICATION_STATUSES = (
    "pending", "under_review", "reviewed", "contacted", "shortlisted",
    "interview_scheduled", "offer_made", "hired", "rejected", "withdrawn",
)


def days_between(start, end) -> int:
    """Whole days from start to end, rounded up."""
    return math.ceil((end - start).total_seconds() / 86400)


def rate(numerator: int, denominator: int) -> float:
    """Percentage, 0 when there is nothing to divide by."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 1)


def round_half_up(value: float) -> int:
    """Nearest whole number, halves rounding up."""
    return int(math.floor(value + 0.5))


def get_time_to_hire(school_id: int) -> List[dict]:
    o, a, j = tables.offers, tables.applications, tables.jobs
    with get_db_session() as db:
        rows = db.execute(
            select(j.c.id, j.c.title, j.c.posted_at, o.c.created_at)
            .select_from(o.join(a, o.c.application_id == a.c.id).join(j, a.c.job_id == j.c.id))
            .where(j.c.school_id == school_id, o.c.status == "accepted")
            .order_by(o.c.created_at)
        ).fetchall()

    return [
        {
            "job_id": job_id,
            "job_title": title,
            "days_to_hire": days_between(posted_at, offered_at),
            "posted_at": posted_at,
            "hired_at": offered_at,
        }
        for job_id, title, posted_at, offered_at in rows
    ]


def get_conversion_metrics(school_id: int, job_id: Optional[int] = None) -> dict:
    a, j, o = tables.applications, tables.jobs, tables.offers

    with get_db_session() as db:
        app_query = select(a.c.status).select_from(a.join(j, a.c.job_id == j.c.id)).where(j.c.school_id == school_id)
        offer_query = (
            select(o.c.status)
            .select_from(o.join(a, o.c.application_id == a.c.id).join(j, a.c.job_id == j.c.id))
            .where(j.c.school_id == school_id)
        )
        if job_id:
            app_query = app_query.where(a.c.job_id == job_id)
            offer_query = offer_query.where(a.c.job_id == job_id)

        statuses = [r[0] for r in db.execute(app_query).fetchall()]
        offer_statuses = [r[0] for r in db.execute(offer_query).fetchall()]

    total = len(statuses)
    interviewed = sum(1 for s in statuses if s in INTERVIEWED_STATUSES)
    extended = len(offer_statuses)
    accepted = sum(1 for s in offer_statuses if s == "accepted")

    return {
        "total_applications": total,
        "interviewed": interviewed,
        "offers_extended": extended,
        "offers_accepted": accepted,
        "conversion_rate": {
            "application_to_interview": rate(interviewed, total),
            "interview_to_offer": rate(extended, interviewed),
            "offer_to_acceptance": rate(accepted, extended),
            "overall_conversion": rate(accepted, total),
        },
    }


def get_overview(school_id: int) -> dict:
    a, j = tables.applications, tables.jobs
    with get_db_session() as db:
        total_jobs = db.execute(
            select(func.count()).select_from(j).where(j.c.school_id == school_id)
        ).scalar_one()
        active_jobs = db.execute(
            select(func.count()).select_from(j).where(j.c.school_id == school_id, j.c.is_active.is_(True))
        ).scalar_one()
        total_applications = db.execute(
            select(func.count()).select_from(a.join(j, a.c.job_id == j.c.id)).where(j.c.school_id == school_id)
        ).scalar_one()

    hires = get_time_to_hire(school_id)
    avg_days = sum(h["days_to_hire"] for h in hires) / len(hires) if hires else 0
    conversion = get_conversion_metrics(school_id)
    extended = conversion["offers_extended"]
    acceptance = conversion["offers_accepted"] / extended * 100 if extended else 0

    return {
        "total_jobs": total_jobs,
        "active_jobs": active_jobs,
        "total_applications": total_applications,
        "avg_time_to_hire": round_half_up(avg_days),
        "offer_acceptance_rate": round_half_up(acceptance),
    }


def _count_by(db, column, condition, keys) -> Dict[str, int]:
    counts = {key: 0 for key in keys}
    rows = db.execute(select(column, func.count()).where(condition).group_by(column)).fetchall()
    for status, count in rows:
        counts[status] = count
    return counts


def get_job_funnel(job_id: int) -> dict:
    jc, a = tables.job_candidates, tables.applications
    with get_db_session() as db:
        return {
            "job_id": job_id,
            "candidates_by_status": _count_by(db, jc.c.status, jc.c.job_id == job_id, CANDIDATE_STATUSES),
            "applications_by_status": _count_by(db, a.c.status, a.c.job_id == job_id, APPLICATION_STATUSES),
        }


def get_admin_overview() -> dict:
    u, s, j, a = tables.users, tables.schools, tables.jobs, tables.applications
    with get_db_session() as db:
        users_by_role = _count_by(db, u.c.role, u.c.id.isnot(None), ("teacher", "school", "admin"))
        pending = db.execute(
            select(func.count()).select_from(s).where(s.c.approval_status == "pending")
        ).scalar_one()
        active_jobs = db.execute(select(func.count()).select_from(j).where(j.c.is_active.is_(True))).scalar_one()
        applications = db.execute(select(func.count()).select_from(a)).scalar_one()

    return {
        "users_by_role": users_by_role,
        "schools_pending_approval": pending,
        "active_jobs": active_jobs,
        "total_applications": applications,
    }
