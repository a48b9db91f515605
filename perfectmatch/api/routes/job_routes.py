"""
Job Routes

POST /jobs - Create job posting (approved school only), runs matching
GET /jobs - List active jobs with filters (record=true saves the search)
GET /jobs/{job_id} - Get job details
PUT /jobs/{job_id} - Update job (owning school only)
DELETE /jobs/{job_id} - Delete job (owning school only)
POST /jobs/{job_id}/apply - Apply to job (teacher only)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_approved_school, get_current_teacher, get_optional_user
from perfectmatch.services import application_service, job_service, search_service
from perfectmatch.services.matching_service import get_matching_service
from perfectmatch.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, JobCreatedResponse, JobListResponse,
    JobType, ApplicationCreate, ApplicationResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

MATCHING_FIELDS = {"subject", "grade_level", "location", "archetype_tags", "is_active"}


@router.post("", response_model=JobCreatedResponse, status_code=201)
async def create_job(job: JobCreate, school: dict = Depends(get_approved_school)):
    """
    Create a new job posting and match it against teacher profiles.

    Matched teachers are notified. A matching failure is logged and
    does not fail the request.
    """
    data = job.model_dump()
    data["job_type"] = job.job_type.value
    created = job_service.create_job(school["school_id"], data)

    matched = 0
    try:
        service = get_matching_service()
        matches = service.match_job(created["id"])
        matched = len(matches)
        service.announce_job_matches(created, matches)
    except Exception:
        logger.exception("Matching failed for job %s", created["id"])

    return JobCreatedResponse(**created, matched_teachers=matched)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title and description"),
    subject: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None),
    job_type: Optional[JobType] = Query(None),
    location: Optional[str] = Query(None),
    archetype: Optional[str] = Query(None, description="Job archetype tag"),
    record: bool = Query(False, description="Save this search to the caller's history"),
    user: Optional[dict] = Depends(get_optional_user),
):
    """List active job postings with filters and pagination, newest first."""
    filters = {
        "subject": subject,
        "grade_level": grade_level,
        "job_type": job_type.value if job_type else None,
        "location": location,
        "archetype": archetype,
    }
    jobs, total = job_service.search_jobs(search=search, page=page, page_size=page_size, **filters)

    if record and user:
        try:
            search_service.add_search_history(user["user_id"], search, filters, total)
        except Exception:
            logger.exception("Failed to record search for user %s", user["user_id"])

    return JobListResponse(
        jobs=[JobResponse(**j) for j in jobs], total=total, page=page, page_size=page_size
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int):
    """Get job details."""
    job = job_service.fetch_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse(**job)


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(job_id: int, data: JobUpdate, school: dict = Depends(get_approved_school)):
    """Update a job posting. Changing matching fields re-runs matching."""
    updates = data.model_dump(exclude_unset=True)
    if "job_type" in updates and updates["job_type"] is not None:
        updates["job_type"] = updates["job_type"].value

    if not job_service.update_job(job_id, school["school_id"], updates):
        raise HTTPException(status_code=404, detail="Job not found or not yours")

    if MATCHING_FIELDS.intersection(updates):
        try:
            get_matching_service().match_job(job_id)
        except Exception:
            logger.exception("Re-matching failed for job %s", job_id)

    return JobResponse(**job_service.fetch_job(job_id))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, school: dict = Depends(get_approved_school)):
    """Delete a job posting."""
    if not job_service.delete_job(job_id, school["school_id"]):
        raise HTTPException(status_code=404, detail="Job not found or not yours")
    return MessageResponse(message="Job deleted successfully")


@router.post("/{job_id}/apply", response_model=ApplicationResponse, status_code=201)
async def apply_to_job(job_id: int, data: ApplicationCreate, teacher: dict = Depends(get_current_teacher)):
    """Apply to a job. Only one application per job."""
    with service_errors():
        application = application_service.apply_to_job(
            teacher["teacher_id"], job_id,
            cover_letter=data.cover_letter, desired_salary=data.desired_salary,
        )
    return ApplicationResponse(**application)
