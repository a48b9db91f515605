"""
Reviews & Ratings

Schools review teachers (teacher_review) and teachers review schools
(school_review), optionally tied to a job or an interview. A review tied to
an interview both parties took part in is marked verified. One review per
reviewer, reviewee and job.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session

logger = logging.getLogger(__name__)

# review_type -> (reviewer role, reviewee role)
REVIEW_ROLES = {
    "teacher_review": ("school", "teacher"),
    "school_review": ("teacher", "school"),
}


def _review_select():
    r, u = tables.reviews, tables.users
    return select(r, u.c.full_name.label("reviewer_name")).select_from(r.join(u, r.c.reviewer_id == u.c.id))


def _present(row) -> dict:
    review = dict(row)
    if review["is_anonymous"]:
        review["reviewer_id"] = None
        review["reviewer_name"] = None
    return review


def _interview_parties(db, interview_id: int) -> Optional[set]:
    """User ids of the teacher and school on an interview, None if it doesn't exist."""
    ii, t, s = tables.interview_invites, tables.teachers, tables.schools
    row = db.execute(
        select(t.c.user_id.label("teacher_user_id"), s.c.user_id.label("school_user_id"))
        .select_from(ii.join(t, ii.c.teacher_id == t.c.id).join(s, ii.c.school_id == s.c.id))
        .where(ii.c.id == interview_id)
    ).fetchone()
    return {row.teacher_user_id, row.school_user_id} if row else None


def _existing_review(db, reviewer_id: int, reviewee_id: int, job_id: int) -> bool:
    r = tables.reviews
    return db.execute(
        select(r.c.id).where(r.c.reviewer_id == reviewer_id, r.c.reviewee_id == reviewee_id, r.c.job_id == job_id)
    ).fetchone() is not None


def can_review(reviewer_id: int, reviewee_id: int, job_id: Optional[int] = None) -> bool:
    """False once the reviewer has reviewed this person for this job."""
    if reviewer_id == reviewee_id:
        return False
    if job_id is None:
        return True
    with get_db_session() as db:
        return not _existing_review(db, reviewer_id, reviewee_id, job_id)


def create_review(
    reviewer_id: int,
    reviewer_role: str,
    reviewee_id: int,
    review_type: str,
    rating: int,
    job_id: Optional[int] = None,
    interview_id: Optional[int] = None,
    title: Optional[str] = None,
    comment: Optional[str] = None,
    categories: Optional[dict] = None,
    is_anonymous: bool = False,
) -> dict:
    """
    Raises:
        LookupError: reviewee, job or interview missing
        PermissionError: wrong role for this review type, or not part of the interview
        ValueError: self review, reviewee of the wrong role, or already reviewed for the job
    """
    expected_reviewer, expected_reviewee = REVIEW_ROLES[review_type]
    if reviewer_role != expected_reviewer:
        raise PermissionError(f"Only {expected_reviewer} accounts can leave a {review_type}")
    if reviewer_id == reviewee_id:
        raise ValueError("You cannot review yourself")

    r, u = tables.reviews, tables.users
    with get_db_session() as db:
        reviewee = db.execute(select(u.c.role).where(u.c.id == reviewee_id)).fetchone()
        if not reviewee:
            raise LookupError("User not found")
        if reviewee.role != expected_reviewee:
            raise ValueError(f"A {review_type} must be about a {expected_reviewee}")

        if job_id is not None:
            if not db.execute(select(tables.jobs.c.id).where(tables.jobs.c.id == job_id)).fetchone():
                raise LookupError("Job not found")
            if _existing_review(db, reviewer_id, reviewee_id, job_id):
                raise ValueError("You have already reviewed this user for this job")

        if interview_id is not None:
            parties = _interview_parties(db, interview_id)
            if parties is None:
                raise LookupError("Interview not found")
            if parties != {reviewer_id, reviewee_id}:
                raise PermissionError("You can only review people from your own interviews")

        try:
            review_id = db.execute(insert(r).values(
                reviewer_id=reviewer_id,
                reviewee_id=reviewee_id,
                review_type=review_type,
                job_id=job_id,
                interview_id=interview_id,
                rating=rating,
                title=title or None,
                comment=comment or None,
                categories=categories or {},
                is_anonymous=is_anonymous,
                is_verified=interview_id is not None,
            )).inserted_primary_key[0]
        except IntegrityError as e:
            raise ValueError("You have already reviewed this user for this job") from e

        row = db.execute(_review_select().where(r.c.id == review_id)).mappings().fetchone()

    logger.info("User %s left a %d-star %s for user %s", reviewer_id, rating, review_type, reviewee_id)
    return _present(row)


def list_user_reviews(user_id: int, review_type: str) -> List[dict]:
    r = tables.reviews
    with get_db_session() as db:
        rows = db.execute(
            _review_select().where(r.c.reviewee_id == user_id, r.c.review_type == review_type)
            .order_by(r.c.created_at.desc(), r.c.id.desc())
        ).mappings().fetchall()
    return [_present(row) for row in rows]


def get_average_rating(user_id: int, review_type: str) -> dict:
    r = tables.reviews
    with get_db_session() as db:
        average, total = db.execute(
            select(func.avg(r.c.rating), func.count(r.c.id))
            .where(r.c.reviewee_id == user_id, r.c.review_type == review_type)
        ).one()
    return {
        "average_rating": round(float(average), 2) if average is not None else 0.0,
        "total_reviews": total,
    }
