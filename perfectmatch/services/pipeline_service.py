"""
Hiring pipeline stages per school (and optionally per job).

A school gets the default stages the first time its pipeline is read.
A job with its own stages uses those instead of the school defaults.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session

logger = logging.getLogger(__name__)

# (name, type) in order
DEFAULT_STAGES = [
    ("New", "system"),
    ("Reviewed", "system"),
    ("Phone Screen", "custom"),
    ("Interview", "custom"),
    ("Offer", "custom"),
    ("Hired", "system"),
    ("Rejected", "system"),
]


def _stages(db, school_id: int, job_id: Optional[int]) -> List[dict]:
    ps = tables.pipeline_stages
    query = select(ps).where(ps.c.school_id == school_id)
    query = query.where(ps.c.job_id.is_(None) if job_id is None else ps.c.job_id == job_id)
    return [dict(r) for r in db.execute(query.order_by(ps.c.order_index, ps.c.id)).mappings().fetchall()]


def create_default_stages(db, school_id: int) -> None:
    db.execute(insert(tables.pipeline_stages), [
        {"school_id": school_id, "job_id": None, "name": name, "order_index": i, "type": stage_type}
        for i, (name, stage_type) in enumerate(DEFAULT_STAGES)
    ])
    logger.info("Created default pipeline stages for school %s", school_id)


def get_pipeline_stages(school_id: int, job_id: Optional[int] = None) -> List[dict]:
    with get_db_session() as db:
        if job_id is not None:
            job_stages = _stages(db, school_id, job_id)
            if job_stages:
                return job_stages

        stages = _stages(db, school_id, None)
        if not stages:
            create_default_stages(db, school_id)
            stages = _stages(db, school_id, None)
        return stages


def add_stage(school_id: int, name: str, job_id: Optional[int] = None, order_index: Optional[int] = None) -> dict:
    """Add a custom stage; appended at the end unless order_index is given."""
    ps = tables.pipeline_stages
    with get_db_session() as db:
        if job_id is not None:
            owned = db.execute(
                select(tables.jobs.c.id).where(tables.jobs.c.id == job_id, tables.jobs.c.school_id == school_id)
            ).fetchone()
            if not owned:
                raise LookupError("Job not found")

        if order_index is None:
            scope = ps.c.job_id.is_(None) if job_id is None else ps.c.job_id == job_id
            current_max = db.execute(
                select(func.max(ps.c.order_index)).where(ps.c.school_id == school_id, scope)
            ).scalar()
            order_index = 0 if current_max is None else current_max + 1

        stage_id = db.execute(insert(ps).values(
            school_id=school_id, job_id=job_id, name=name, order_index=order_index, type="custom"
        )).inserted_primary_key[0]
        row = db.execute(select(ps).where(ps.c.id == stage_id)).mappings().fetchone()
    return dict(row)


def reorder_stages(school_id: int, stage_ids: List[int]) -> List[dict]:
    """Renumber order_index to follow stage_ids. All ids must be the school's and share one pipeline."""
    ps = tables.pipeline_stages
    with get_db_session() as db:
        rows = db.execute(
            select(ps.c.id, ps.c.job_id).where(ps.c.id.in_(stage_ids), ps.c.school_id == school_id)
        ).fetchall()
        if len(rows) != len(set(stage_ids)):
            raise LookupError("One or more stages not found")
        if len({r[1] for r in rows}) > 1:
            raise ValueError("Stages must belong to the same pipeline")

        for index, stage_id in enumerate(stage_ids):
            db.execute(update(ps).where(ps.c.id == stage_id).values(order_index=index))

        job_id = rows[0][1]
    return get_pipeline_stages(school_id, job_id)


def delete_stage(stage_id: int, school_id: int) -> None:
    """
    Raises:
        LookupError: no such stage for this school
        ValueError: system stages can't be deleted
    """
    ps = tables.pipeline_stages
    with get_db_session() as db:
        stage = db.execute(
            select(ps).where(ps.c.id == stage_id, ps.c.school_id == school_id)
        ).mappings().fetchone()
        if not stage:
            raise LookupError("Stage not found")
        if stage["type"] == "system":
            raise ValueError("System stages cannot be deleted")
        db.execute(delete(ps).where(ps.c.id == stage_id))
