"""
Saved job searches and search history.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import job_service

logger = logging.getLogger(__name__)

FILTER_KEYS = ("subject", "grade_level", "job_type", "location", "archetype")


def _clean_filters(filters: Optional[dict]) -> dict:
    return {k: v for k, v in (filters or {}).items() if k in FILTER_KEYS and v}


# ============================================================
# SAVED SEARCHES
# ============================================================

def list_saved_searches(user_id: int) -> List[dict]:
    ss = tables.saved_searches
    with get_db_session() as db:
        rows = db.execute(
            select(ss).where(ss.c.user_id == user_id, ss.c.is_active.is_(True))
            .order_by(ss.c.created_at.desc(), ss.c.id.desc())
        ).mappings().fetchall()
    return [dict(r) for r in rows]


def get_saved_search(search_id: int, user_id: int) -> Optional[dict]:
    ss = tables.saved_searches
    with get_db_session() as db:
        row = db.execute(
            select(ss).where(ss.c.id == search_id, ss.c.user_id == user_id, ss.c.is_active.is_(True))
        ).mappings().fetchone()
    return dict(row) if row else None


def create_saved_search(
    user_id: int,
    name: str,
    search_query: Optional[str] = None,
    filters: Optional[dict] = None,
    notify_on_match: bool = True,
) -> dict:
    ss = tables.saved_searches
    with get_db_session() as db:
        search_id = db.execute(insert(ss).values(
            user_id=user_id,
            name=name,
            search_query=search_query,
            filters=_clean_filters(filters),
            notify_on_match=notify_on_match,
            is_active=True,
        )).inserted_primary_key[0]
        row = db.execute(select(ss).where(ss.c.id == search_id)).mappings().fetchone()
    return dict(row)


def update_saved_search(search_id: int, user_id: int, updates: dict) -> Optional[dict]:
    ss = tables.saved_searches
    values = {k: v for k, v in updates.items() if k in ("name", "search_query", "notify_on_match", "filters")}
    if "filters" in values:
        values["filters"] = _clean_filters(values["filters"])

    with get_db_session() as db:
        result = db.execute(
            update(ss).where(ss.c.id == search_id, ss.c.user_id == user_id, ss.c.is_active.is_(True))
            .values(**values, updated_at=utcnow())
        )
        if result.rowcount == 0:
            return None
        return dict(db.execute(select(ss).where(ss.c.id == search_id)).mappings().fetchone())


def delete_saved_search(search_id: int, user_id: int) -> bool:
    """Soft delete."""
    ss = tables.saved_searches
    with get_db_session() as db:
        result = db.execute(
            update(ss).where(ss.c.id == search_id, ss.c.user_id == user_id, ss.c.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )
        return result.rowcount > 0


def apply_saved_search(search_id: int, user_id: int, page: int = 1, page_size: int = 10) -> Optional[Tuple[List[dict], int]]:
    """Run the saved search and stamp last_checked_at. None if not found."""
    saved = get_saved_search(search_id, user_id)
    if not saved:
        return None

    filters = _clean_filters(saved["filters"])
    results = job_service.search_jobs(search=saved["search_query"], page=page, page_size=page_size, **filters)

    ss = tables.saved_searches
    with get_db_session() as db:
        db.execute(update(ss).where(ss.c.id == search_id).values(last_checked_at=utcnow()))
    return results


# ============================================================
# HISTORY
# ============================================================

def add_search_history(
    user_id: int,
    search_query: Optional[str],
    filters: Optional[dict],
    result_count: int,
) -> int:
    with get_db_session() as db:
        return db.execute(insert(tables.search_history).values(
            user_id=user_id,
            search_query=search_query,
            filters=_clean_filters(filters),
            result_count=result_count,
        )).inserted_primary_key[0]


def get_search_history(user_id: int, limit: int = 10) -> List[dict]:
    sh = tables.search_history
    with get_db_session() as db:
        rows = db.execute(
            select(sh).where(sh.c.user_id == user_id)
            .order_by(sh.c.searched_at.desc(), sh.c.id.desc()).limit(limit)
        ).mappings().fetchall()
    return [dict(r) for r in rows]


def clear_search_history(user_id: int) -> int:
    with get_db_session() as db:
        return db.execute(delete(tables.search_history).where(tables.search_history.c.user_id == user_id)).rowcount
