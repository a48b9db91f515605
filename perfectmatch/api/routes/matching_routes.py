"""
Matching Routes

GET /matching/jobs/{job_id}/candidates - Matched candidates for a job (school)
POST /matching/jobs/{job_id}/run - Re-run matching for a job (school)
GET /matching/candidates - Candidates across all of the school's jobs
PUT /matching/candidates/{candidate_id} - Update candidate status / notes (school)
GET /matching/my-matches - Teacher's job matches
PUT /matching/my-matches/{match_id} - Favorite / hide a match (teacher)
POST /matching/my-matches/refresh - Re-score the teacher against open jobs
GET /matching/jobs-by-archetype - Active jobs tagged with any of the archetypes
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.core.auth import get_current_school, get_current_teacher, get_current_user
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import job_service, profile_service
from perfectmatch.services.matching_service import get_matching_service
from perfectmatch.schemas.schemas import (
    CandidateMatchResponse, CandidateStatusUpdate, CandidateStatus,
    TeacherJobMatchResponse, TeacherJobMatchUpdate, MatchRunResponse, JobResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matching", tags=["Matching"])


def _owned_job(job_id: int, school_id: int) -> dict:
    job = job_service.fetch_job(job_id)
    if not job or job["school_id"] != school_id:
        raise HTTPException(status_code=404, detail="Job not found or not yours")
    return job


# ============================================================
# SCHOOL SIDE
# ============================================================

@router.get("/jobs/{job_id}/candidates", response_model=List[CandidateMatchResponse])
async def get_job_candidates(
    job_id: int,
    status: Optional[CandidateStatus] = Query(None),
    archetype: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None),
    school: dict = Depends(get_current_school),
):
    """Candidates matched to one of the school's jobs, best score first."""
    _owned_job(job_id, school["school_id"])
    rows = get_matching_service().get_job_candidates(
        job_id, status=status.value if status else None, archetype=archetype, grade_level=grade_level
    )
    return [CandidateMatchResponse(**r) for r in rows]


@router.post("/jobs/{job_id}/run", response_model=MatchRunResponse)
async def run_job_matching(job_id: int, school: dict = Depends(get_current_school)):
    """Re-score all complete teacher profiles for this job."""
    job = _owned_job(job_id, school["school_id"])
    if not job["is_active"]:
        raise HTTPException(status_code=400, detail="Job is not active")
    matches = get_matching_service().match_job(job_id)
    return MatchRunResponse(matched=len(matches), message=f"Found {len(matches)} matching teachers")


@router.get("/candidates", response_model=List[CandidateMatchResponse])
async def get_school_candidates(
    job_id: Optional[int] = Query(None),
    status: Optional[CandidateStatus] = Query(None),
    archetype: Optional[str] = Query(None),
    school: dict = Depends(get_current_school),
):
    """Candidates across all of the school's jobs."""
    rows = get_matching_service().get_school_candidates(
        school["school_id"], job_id=job_id, status=status.value if status else None, archetype=archetype
    )
    return [CandidateMatchResponse(**r) for r in rows]


@router.put("/candidates/{candidate_id}", response_model=CandidateMatchResponse)
async def update_candidate(
    candidate_id: int,
    data: CandidateStatusUpdate,
    school: dict = Depends(get_current_school),
):
    """Set a candidate's status (reviewed, contacted, shortlisted, ...) and notes."""
    row = get_matching_service().update_candidate_status(
        candidate_id, school["school_id"], data.status.value, notes=data.notes
    )
    if not row:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return CandidateMatchResponse(**row)


# ============================================================
# TEACHER SIDE
# ============================================================

@router.get("/my-matches", response_model=List[TeacherJobMatchResponse])
async def get_my_matches(
    favorited: Optional[bool] = Query(None),
    subject: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None),
    teacher: dict = Depends(get_current_teacher),
):
    """Jobs matched to the teacher (hidden ones excluded), best score first."""
    rows = get_matching_service().get_teacher_job_matches(
        teacher["teacher_id"], favorited=favorited, subject=subject, grade_level=grade_level
    )
    return [TeacherJobMatchResponse(**r) for r in rows]


@router.put("/my-matches/{match_id}", response_model=TeacherJobMatchResponse)
async def update_my_match(
    match_id: int,
    data: TeacherJobMatchUpdate,
    teacher: dict = Depends(get_current_teacher),
):
    """Favorite or hide a matched job."""
    row = get_matching_service().update_teacher_job_match(
        match_id, teacher["teacher_id"], is_favorited=data.is_favorited, is_hidden=data.is_hidden
    )
    if not row:
        raise HTTPException(status_code=404, detail="Match not found")
    return TeacherJobMatchResponse(**row)


@router.post("/my-matches/refresh", response_model=MatchRunResponse)
async def refresh_my_matches(teacher: dict = Depends(get_current_teacher)):
    """Re-score the teacher against every active job. Profile must be complete."""
    with get_db_session() as db:
        profile = profile_service.get_teacher(db, teacher["teacher_id"])
    if not profile["profile_complete"]:
        raise HTTPException(status_code=400, detail="Complete your profile to get job matches")

    service = get_matching_service()
    results = service.match_teacher_to_jobs(teacher["teacher_id"])
    try:
        service.announce_teacher_matches(profile, results)
    except Exception:
        logger.exception("Failed to announce matches for teacher %s", teacher["teacher_id"])
    return MatchRunResponse(matched=len(results), message=f"Found {len(results)} matching jobs")


@router.get("/jobs-by-archetype", response_model=List[JobResponse])
async def get_jobs_by_archetype(
    tags: List[str] = Query(..., description="Archetype tags, repeat the parameter for several"),
    subject: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
):
    """Active jobs whose archetype tags overlap the given ones."""
    jobs = get_matching_service().get_jobs_by_archetype(
        tags, subject=subject, grade_level=grade_level, location=location
    )
    return [JobResponse(**j) for j in jobs]
