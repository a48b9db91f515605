"""
Job Service

Job postings CRUD, search with filters, and teachers' saved jobs.
Jobs are always returned joined with their school's name and logo.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, func, insert, or_, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow

logger = logging.getLogger(__name__)

JOB_FIELDS = (
    "title", "department", "subject", "grade_level", "job_type", "location", "salary",
    "description", "requirements", "benefits", "archetype_tags", "application_requirements",
)


def job_select():
    """SELECT jobs.* plus school_name / school_logo."""
    j, s = tables.jobs, tables.schools
    return select(
        j,
        s.c.school_name.label("school_name"),
        s.c.logo_url.label("school_logo"),
    ).select_from(j.join(s, j.c.school_id == s.c.id))


def row_to_job(row) -> dict:
    job = dict(row)
    job["archetype_tags"] = job.get("archetype_tags") or []
    job["application_requirements"] = job.get("application_requirements") or {}
    return job


def get_job(db, job_id: int) -> Optional[dict]:
    row = db.execute(job_select().where(tables.jobs.c.id == job_id)).mappings().fetchone()
    return row_to_job(row) if row else None


def fetch_job(job_id: int) -> Optional[dict]:
    with get_db_session() as db:
        return get_job(db, job_id)


def create_job(school_id: int, data: dict) -> dict:
    values = {field: data.get(field) for field in JOB_FIELDS if field in data}
    values["archetype_tags"] = values.get("archetype_tags") or []
    values["application_requirements"] = values.get("application_requirements") or {}
    with get_db_session() as db:
        result = db.execute(insert(tables.jobs).values(school_id=school_id, is_active=True, **values))
        job_id = result.inserted_primary_key[0]
        job = get_job(db, job_id)
    logger.info("Job %s created by school %s", job_id, school_id)
    return job


def update_job(job_id: int, school_id: Optional[int], updates: dict) -> bool:
    """Apply updates; school_id=None skips the ownership check (admin)."""
    conditions = [tables.jobs.c.id == job_id]
    if school_id is not None:
        conditions.append(tables.jobs.c.school_id == school_id)

    with get_db_session() as db:
        exists = db.execute(select(tables.jobs.c.id).where(and_(*conditions))).fetchone()
        if not exists:
            return False
        if updates:
            db.execute(
                update(tables.jobs).where(tables.jobs.c.id == job_id).values(**updates, updated_at=utcnow())
            )
    return True


def delete_job(job_id: int, school_id: int) -> bool:
    with get_db_session() as db:
        result = db.execute(
            delete(tables.jobs).where(tables.jobs.c.id == job_id, tables.jobs.c.school_id == school_id)
        )
        return result.rowcount > 0


def _job_filters(
    search: Optional[str] = None,
    subject: Optional[str] = None,
    grade_level: Optional[str] = None,
    job_type: Optional[str] = None,
    location: Optional[str] = None,
    school_id: Optional[int] = None,
    active_only: bool = True,
) -> list:
    j = tables.jobs
    conditions = []
    if active_only:
        conditions.append(j.c.is_active.is_(True))
    if school_id is not None:
        conditions.append(j.c.school_id == school_id)
    if search:
        needle = f"%{search.lower()}%"
        conditions.append(or_(func.lower(j.c.title).like(needle), func.lower(j.c.description).like(needle)))
    if subject:
        conditions.append(j.c.subject == subject)
    if grade_level:
        conditions.append(j.c.grade_level == grade_level)
    if job_type:
        conditions.append(j.c.job_type == job_type)
    if location:
        conditions.append(func.lower(j.c.location).like(f"%{location.lower()}%"))
    return conditions


def _newest_first(query):
    j = tables.jobs
    return query.order_by(j.c.posted_at.desc(), j.c.id.desc())


def list_all_jobs(**filters) -> List[dict]:
    """Every job matching the search filters, newest first, unpaginated."""
    query = _newest_first(job_select().where(*_job_filters(**filters)))
    with get_db_session() as db:
        return [row_to_job(r) for r in db.execute(query).mappings().fetchall()]


def search_jobs(
    search: Optional[str] = None,
    subject: Optional[str] = None,
    grade_level: Optional[str] = None,
    job_type: Optional[str] = None,
    location: Optional[str] = None,
    archetype: Optional[str] = None,
    school_id: Optional[int] = None,
    active_only: bool = True,
    page: int = 1,
    page_size: int = 10,
) -> Tuple[List[dict], int]:
    """
    Search job postings, newest first.

    Returns:
        (jobs on the requested page, total matching jobs)
    """
    filters = dict(
        search=search, subject=subject, grade_level=grade_level, job_type=job_type,
        location=location, school_id=school_id, active_only=active_only,
    )
    offset = (page - 1) * page_size

    # JSON array containment isn't portable SQL; filter in Python
    if archetype:
        rows = [r for r in list_all_jobs(**filters) if archetype in r["archetype_tags"]]
        return rows[offset:offset + page_size], len(rows)

    j, s = tables.jobs, tables.schools
    conditions = _job_filters(**filters)
    query = _newest_first(job_select().where(*conditions)).limit(page_size).offset(offset)
    with get_db_session() as db:
        total = db.execute(
            select(func.count()).select_from(j.join(s, j.c.school_id == s.c.id)).where(*conditions)
        ).scalar_one()
        rows = [row_to_job(r) for r in db.execute(query).mappings().fetchall()]
    return rows, total


# ============================================================
# SAVED JOBS
# ============================================================

def save_job(teacher_id: int, job_id: int) -> bool:
    """Returns False if already saved. Raises LookupError if no such job."""
    with get_db_session() as db:
        if not db.execute(select(tables.jobs.c.id).where(tables.jobs.c.id == job_id)).fetchone():
            raise LookupError("Job not found")
        existing = db.execute(
            select(tables.saved_jobs.c.id).where(
                tables.saved_jobs.c.teacher_id == teacher_id, tables.saved_jobs.c.job_id == job_id
            )
        ).fetchone()
        if existing:
            return False
        db.execute(insert(tables.saved_jobs).values(teacher_id=teacher_id, job_id=job_id))
    return True


def unsave_job(teacher_id: int, job_id: int) -> bool:
    with get_db_session() as db:
        result = db.execute(
            delete(tables.saved_jobs).where(
                tables.saved_jobs.c.teacher_id == teacher_id, tables.saved_jobs.c.job_id == job_id
            )
        )
        return result.rowcount > 0


def list_saved_jobs(teacher_id: int) -> List[dict]:
    sj = tables.saved_jobs
    with get_db_session() as db:
        saved = db.execute(
            select(sj).where(sj.c.teacher_id == teacher_id).order_by(sj.c.created_at.desc(), sj.c.id.desc())
        ).mappings().fetchall()
        results = []
        for row in saved:
            job = get_job(db, row["job_id"])
            if job:
                results.append({"id": row["id"], "job": job, "created_at": row["created_at"]})
    return results
