"""
Candidate / Job Matching Service

PURPOSE:
Score teachers against job postings and keep the two match tables
in sync:
- job_candidates: what a school sees for each of its jobs
- teacher_job_matches: what a teacher sees on their dashboard

SCORING (0-100):
- Subject:   +40 if the teacher teaches the job's subject (required)
- Grade:     +30 if the teacher covers the job's grade level, or the
             job is "All Grades" (required otherwise)
- Location:  +20 if any comma-separated part of one location contains
             a part of the other, +5 otherwise
- Archetype: +10 if the teacher's archetype is one of the job's tags

A teacher is a match when no required criterion failed and the score
reaches the minimum (40 by default). Results are sorted by score and
truncated to the configured limit.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import insert, select, update

from perfectmatch.core.config import get_settings
from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import email_service, job_service, notification_service, profile_service

logger = logging.getLogger(__name__)

ALL_GRADES = "All Grades"

SUBJECT_POINTS = 40
GRADE_POINTS = 30
LOCATION_POINTS = 20
LOCATION_FALLBACK_POINTS = 5
ARCHETYPE_POINTS = 10
MAX_SCORE = 100


# ============================================================
# SCORING
# ============================================================

@dataclass
class MatchResult:
    teacher_id: int
    user_id: int
    full_name: str
    match_score: int
    reasons: List[str] = field(default_factory=list)

    @property
    def match_reason(self) -> str:
        return "; ".join(self.reasons)


def _location_parts(location: str) -> List[str]:
    return [part.strip() for part in location.lower().split(",") if part.strip()]


def location_matches(job_location: Optional[str], teacher_location: Optional[str]) -> bool:
    """True when any city/state part of one location contains a part of the other."""
    if not job_location or not teacher_location:
        return False
    job_parts = _location_parts(job_location)
    teacher_parts = _location_parts(teacher_location)
    return any(tp in jp or jp in tp for jp in job_parts for tp in teacher_parts)


def score_teacher_for_job(
    job: Mapping,
    teacher: Mapping,
    min_score: int = 40,
) -> Optional[MatchResult]:
    """
    Score one teacher for one job.

    Returns:
        MatchResult, or None if a required criterion failed or the
        score is below min_score
    """
    score = 0
    reasons = []

    subject = job.get("subject")
    if subject:
        if subject in (teacher.get("subjects") or []):
            score += SUBJECT_POINTS
            reasons.append(f"Teaches {subject}")
        else:
            return None

    grade_level = job.get("grade_level")
    if grade_level:
        if grade_level == ALL_GRADES or grade_level in (teacher.get("grade_levels") or []):
            score += GRADE_POINTS
            reasons.append(f"Grade level {grade_level}")
        else:
            return None

    job_location = job.get("location")
    teacher_location = teacher.get("location")
    if job_location and teacher_location:
        if location_matches(job_location, teacher_location):
            score += LOCATION_POINTS
            reasons.append(f"Located near {job_location}")
        else:
            score += LOCATION_FALLBACK_POINTS

    archetype_tags = job.get("archetype_tags") or []
    archetype = teacher.get("archetype")
    if archetype_tags and archetype and archetype in archetype_tags:
        score += ARCHETYPE_POINTS
        reasons.append(f"{archetype} archetype")

    if score < min_score:
        return None

    return MatchResult(
        teacher_id=teacher["id"],
        user_id=teacher["user_id"],
        full_name=teacher.get("full_name") or "",
        match_score=min(MAX_SCORE, score),
        reasons=reasons,
    )


def find_matching_teachers(
    job: Mapping,
    teachers: Iterable[Mapping],
    min_score: int = 40,
    limit: int = 50,
) -> List[MatchResult]:
    """Score every teacher; best matches first, at most `limit`."""
    matches = []
    for teacher in teachers:
        result = score_teacher_for_job(job, teacher, min_score=min_score)
        if result:
            matches.append(result)
    matches.sort(key=lambda m: m.match_score, reverse=True)
    return matches[:limit]


# ============================================================
# PERSISTENCE
# ============================================================

class MatchingService:
    """
    Runs the scoring against the database and serves match listings.
    """

    def __init__(self):
        self.settings = get_settings()

    def _complete_teachers(self, db) -> List[dict]:
        rows = db.execute(
            select(tables.teachers).where(tables.teachers.c.profile_complete.is_(True))
        ).mappings().fetchall()
        return [dict(r) for r in rows]

    def _upsert_match(self, db, job_id: int, match: MatchResult) -> bool:
        """Insert or refresh both match rows. Returns True if the pair is new."""
        jc, tjm = tables.job_candidates, tables.teacher_job_matches
        now = utcnow()

        existing = db.execute(
            select(jc.c.id).where(jc.c.job_id == job_id, jc.c.teacher_id == match.teacher_id)
        ).fetchone()
        if existing:
            db.execute(
                update(jc).where(jc.c.id == existing[0]).values(
                    match_score=match.match_score, match_reason=match.match_reason, updated_at=now
                )
            )
        else:
            db.execute(insert(jc).values(
                job_id=job_id, teacher_id=match.teacher_id, match_score=match.match_score,
                match_reason=match.match_reason, status="new"
            ))

        existing_tm = db.execute(
            select(tjm.c.id).where(tjm.c.job_id == job_id, tjm.c.teacher_id == match.teacher_id)
        ).fetchone()
        if existing_tm:
            db.execute(
                update(tjm).where(tjm.c.id == existing_tm[0]).values(
                    match_score=match.match_score, match_reason=match.match_reason
                )
            )
        else:
            db.execute(insert(tjm).values(
                job_id=job_id, teacher_id=match.teacher_id, match_score=match.match_score,
                match_reason=match.match_reason
            ))

        return existing is None

    def match_job(self, job_id: int) -> List[MatchResult]:
        """
        Find teachers for a job and store the matches.

        Returns:
            Matches, best first (empty if the job is missing or inactive)
        """
        with get_db_session() as db:
            job = job_service.get_job(db, job_id)
            if not job or not job["is_active"]:
                return []

            matches = find_matching_teachers(
                job,
                self._complete_teachers(db),
                min_score=self.settings.match_min_score,
                limit=self.settings.match_limit,
            )
            for match in matches:
                self._upsert_match(db, job_id, match)

        logger.info("Job %s matched %d teachers", job_id, len(matches))
        return matches

    def match_teacher_to_jobs(self, teacher_id: int) -> List[Tuple[dict, MatchResult, bool]]:
        """
        Score one teacher against every active job and store the matches.

        Returns:
            List of (job, match, is_new) tuples, best first
        """
        results = []
        with get_db_session() as db:
            teacher = db.execute(
                select(tables.teachers).where(tables.teachers.c.id == teacher_id)
            ).mappings().fetchone()
            if not teacher:
                return []

            active_jobs = db.execute(
                job_service.job_select().where(tables.jobs.c.is_active.is_(True))
            ).mappings().fetchall()

            for row in active_jobs:
                job = job_service.row_to_job(row)
                match = score_teacher_for_job(job, teacher, min_score=self.settings.match_min_score)
                if match:
                    is_new = self._upsert_match(db, job["id"], match)
                    results.append((job, match, is_new))

        results.sort(key=lambda r: r[1].match_score, reverse=True)
        logger.info("Teacher %s matched %d jobs", teacher_id, len(results))
        return results

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------

    def _candidate_select(self):
        jc, j, s, t = tables.job_candidates, tables.jobs, tables.schools, tables.teachers
        return select(
            jc,
            j.c.title.label("job_title"),
            s.c.school_name.label("school_name"),
            j.c.subject.label("job_subject"),
            j.c.grade_level.label("job_grade_level"),
            j.c.location.label("job_location"),
            t.c.full_name.label("teacher_name"),
            t.c.email.label("teacher_email"),
            t.c.archetype.label("teacher_archetype"),
            t.c.subjects.label("teacher_subjects"),
            t.c.grade_levels.label("teacher_grade_levels"),
            t.c.years_experience,
            t.c.location.label("teacher_location"),
            t.c.profile_photo_url,
            t.c.resume_url,
            t.c.portfolio_url,
        ).select_from(
            jc.join(j, jc.c.job_id == j.c.id)
              .join(s, j.c.school_id == s.c.id)
              .join(t, jc.c.teacher_id == t.c.id)
        ).order_by(jc.c.match_score.desc(), jc.c.id)

    def get_job_candidates(
        self,
        job_id: int,
        status: Optional[str] = None,
        archetype: Optional[str] = None,
        grade_level: Optional[str] = None,
    ) -> List[dict]:
        jc, t = tables.job_candidates, tables.teachers
        query = self._candidate_select().where(jc.c.job_id == job_id)
        if status:
            query = query.where(jc.c.status == status)
        if archetype:
            query = query.where(t.c.archetype == archetype)

        with get_db_session() as db:
            rows = [dict(r) for r in db.execute(query).mappings().fetchall()]

        if grade_level:
            rows = [r for r in rows if grade_level in (r["teacher_grade_levels"] or [])]
        return rows

    def get_school_candidates(
        self,
        school_id: int,
        job_id: Optional[int] = None,
        status: Optional[str] = None,
        archetype: Optional[str] = None,
    ) -> List[dict]:
        jc, j, t = tables.job_candidates, tables.jobs, tables.teachers
        query = self._candidate_select().where(j.c.school_id == school_id)
        if job_id:
            query = query.where(jc.c.job_id == job_id)
        if status:
            query = query.where(jc.c.status == status)
        if archetype:
            query = query.where(t.c.archetype == archetype)

        with get_db_session() as db:
            return [dict(r) for r in db.execute(query).mappings().fetchall()]

    def get_teacher_job_matches(
        self,
        teacher_id: int,
        favorited: Optional[bool] = None,
        subject: Optional[str] = None,
        grade_level: Optional[str] = None,
    ) -> List[dict]:
        tjm = tables.teacher_job_matches
        query = select(tjm).where(
            tjm.c.teacher_id == teacher_id, tjm.c.is_hidden.is_(False)
        ).order_by(tjm.c.match_score.desc(), tjm.c.id)
        if favorited is not None:
            query = query.where(tjm.c.is_favorited.is_(favorited))

        results = []
        with get_db_session() as db:
            for row in db.execute(query).mappings().fetchall():
                job = job_service.get_job(db, row["job_id"])
                if not job:
                    continue
                if subject and job["subject"] != subject:
                    continue
                if grade_level and job["grade_level"] != grade_level:
                    continue
                results.append({**dict(row), "job": job})
        return results

    # --------------------------------------------------------
    # Writes
    # --------------------------------------------------------

    def update_candidate_status(
        self,
        candidate_id: int,
        school_id: int,
        status: str,
        notes: Optional[str] = None,
    ) -> Optional[dict]:
        """Update a candidate row owned by the school. None if not found."""
        jc, j = tables.job_candidates, tables.jobs
        with get_db_session() as db:
            owned = db.execute(
                select(jc.c.id).select_from(jc.join(j, jc.c.job_id == j.c.id))
                .where(jc.c.id == candidate_id, j.c.school_id == school_id)
            ).fetchone()
            if not owned:
                return None

            values = {"status": status, "updated_at": utcnow()}
            if notes is not None:
                values["school_notes"] = notes
            db.execute(update(jc).where(jc.c.id == candidate_id).values(**values))

            row = db.execute(
                self._candidate_select().where(jc.c.id == candidate_id)
            ).mappings().fetchone()
            return dict(row)

    def update_teacher_job_match(
        self,
        match_id: int,
        teacher_id: int,
        is_favorited: Optional[bool] = None,
        is_hidden: Optional[bool] = None,
    ) -> Optional[dict]:
        tjm = tables.teacher_job_matches
        values = {}
        if is_favorited is not None:
            values["is_favorited"] = is_favorited
        if is_hidden is not None:
            values["is_hidden"] = is_hidden

        with get_db_session() as db:
            row = db.execute(
                select(tjm).where(tjm.c.id == match_id, tjm.c.teacher_id == teacher_id)
            ).mappings().fetchone()
            if not row:
                return None
            if values:
                db.execute(update(tjm).where(tjm.c.id == match_id).values(**values))
            job = job_service.get_job(db, row["job_id"])
            return {**dict(row), **values, "job": job}

    def get_jobs_by_archetype(
        self,
        archetype_tags: List[str],
        subject: Optional[str] = None,
        grade_level: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[dict]:
        """Active jobs whose archetype tags overlap the given tags, newest first."""
        wanted = set(archetype_tags)
        jobs = job_service.list_all_jobs(subject=subject, grade_level=grade_level, location=location)
        return [job for job in jobs if wanted.intersection(job["archetype_tags"])]

    # --------------------------------------------------------
    # Announcements (best effort)
    # --------------------------------------------------------

    def announce_job_matches(self, job: dict, matches: List[MatchResult]) -> int:
        """Tell matched teachers about a new job. Returns notifications created."""
        created = notification_service.notify_job_posted_to_teachers(
            [m.user_id for m in matches], job["id"], job["title"], job.get("school_name") or ""
        )
        for match in matches:
            try:
                with get_db_session() as db:
                    teacher = profile_service.get_teacher(db, match.teacher_id)
                    email_service.queue_new_match_email(db, teacher, job, match.match_score)
            except Exception:
                logger.exception("Failed to queue match email for teacher %s", match.teacher_id)
        return created

    def announce_teacher_matches(self, teacher: dict, results: List[Tuple[dict, MatchResult, bool]]) -> int:
        """
        Tell a newly matched teacher (and each job's school) about pairs
        that didn't exist before. Returns how many pairs were announced.
        """
        announced = 0
        for job, match, is_new in results:
            if not is_new:
                continue
            try:
                with get_db_session() as db:
                    notification_service.notify_new_job_match(
                        teacher["user_id"], job["id"], job["title"], match.match_score, db=db
                    )
                    school = profile_service.get_school(db, job["school_id"])
                    if school:
                        notification_service.notify_new_candidate_match(
                            school["user_id"], teacher["id"], teacher["full_name"], job["title"], db=db
                        )
                    email_service.queue_new_match_email(db, teacher, job, match.match_score)
                announced += 1
            except Exception:
                logger.exception("Failed to announce match teacher %s / job %s", teacher["id"], job["id"])
        return announced


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_matching_service() -> MatchingService:
    """Get matching service instance."""
    return MatchingService()
