"""
Teacher Routes

POST /teachers/profile - Create teacher profile
GET /teachers/profile - Get own profile
PUT /teachers/profile - Update profile
GET /teachers/profile/completion - Profile strength and missing fields
POST /teachers/uploads/{kind} - Upload resume / profileImage / portfolio
GET /teachers/uploads/limits - Accepted upload types and sizes
GET /teachers/saved-jobs - List saved jobs
POST /teachers/saved-jobs/{job_id} - Save a job
DELETE /teachers/saved-jobs/{job_id} - Unsave a job
GET /teachers/applications - Get my applications
GET /teachers/applications/stats - Application counts
GET /teachers/{teacher_id} - Public teacher profile
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Query
from sqlalchemy import insert, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.core.auth import get_current_user, get_current_teacher
from perfectmatch.services import application_service, job_service, profile_service
from perfectmatch.services.matching_service import get_matching_service
from perfectmatch.utils.file_upload import save_upload, get_upload_limits
from perfectmatch.schemas.schemas import (
    TeacherCreate, TeacherUpdate, TeacherResponse, PublicTeacherResponse,
    ProfileCompletionResponse, UploadResponse, SavedJobResponse,
    ApplicationResponse, ApplicationStatsResponse, ApplicationStatus, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teachers", tags=["Teachers"])

# upload kind -> teachers column
UPLOAD_COLUMNS = {
    "resume": "resume_url",
    "profileImage": "profile_photo_url",
    "portfolio": "portfolio_url",
}


def _refresh_and_match(teacher_id: int) -> dict:
    """Recompute completion; a profile that just became complete is matched to open jobs."""
    with get_db_session() as db:
        teacher, became_complete = profile_service.refresh_profile_complete(db, tables.teachers, teacher_id)

    if became_complete:
        try:
            service = get_matching_service()
            results = service.match_teacher_to_jobs(teacher_id)
            service.announce_teacher_matches(teacher, results)
        except Exception:
            logger.exception("Matching failed for teacher %s", teacher_id)
    return teacher


@router.post("/profile", response_model=TeacherResponse, status_code=201)
async def create_profile(data: TeacherCreate, user: dict = Depends(get_current_user)):
    """Create teacher profile. User must be registered as teacher."""
    if user["role"] != "teacher":
        raise HTTPException(status_code=403, detail="Only teacher accounts can create teacher profiles")

    with get_db_session() as db:
        if profile_service.get_teacher_by_user(db, user["user_id"]):
            raise HTTPException(status_code=400, detail="Profile already exists. Use PUT to update.")

        result = db.execute(insert(tables.teachers).values(
            user_id=user["user_id"],
            email=user["email"],
            **data.model_dump(),
        ))
        teacher_id = result.inserted_primary_key[0]

    return TeacherResponse(**_refresh_and_match(teacher_id))


@router.get("/profile", response_model=TeacherResponse)
async def get_profile(teacher: dict = Depends(get_current_teacher)):
    """Get current teacher's profile."""
    with get_db_session() as db:
        return TeacherResponse(**profile_service.get_teacher(db, teacher["teacher_id"]))


@router.put("/profile", response_model=TeacherResponse)
async def update_profile(data: TeacherUpdate, teacher: dict = Depends(get_current_teacher)):
    """Update teacher profile (only the fields sent)."""
    updates = data.model_dump(exclude_unset=True)
    if updates:
        with get_db_session() as db:
            db.execute(
                update(tables.teachers).where(tables.teachers.c.id == teacher["teacher_id"])
                .values(**updates, updated_at=utcnow())
            )

    return TeacherResponse(**_refresh_and_match(teacher["teacher_id"]))


@router.get("/profile/completion", response_model=ProfileCompletionResponse)
async def get_profile_completion(teacher: dict = Depends(get_current_teacher)):
    """How complete the profile is and which required fields are missing."""
    with get_db_session() as db:
        profile = profile_service.get_teacher(db, teacher["teacher_id"])
    return ProfileCompletionResponse(**profile_service.completion_report(profile))


# ============================================================
# UPLOADS
# ============================================================

@router.get("/uploads/limits")
async def upload_limits():
    """Get accepted upload kinds, sizes and types."""
    return get_upload_limits()


@router.post("/uploads/{kind}", response_model=UploadResponse)
async def upload_file(
    kind: str,
    file: UploadFile = File(...),
    teacher: dict = Depends(get_current_teacher),
):
    """Upload a resume, profile image or portfolio file and link it to the profile."""
    column = UPLOAD_COLUMNS.get(kind)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Unknown upload kind. Allowed: {', '.join(UPLOAD_COLUMNS)}")

    url, filename, size = await save_upload(file, kind, teacher["user_id"])

    with get_db_session() as db:
        db.execute(
            update(tables.teachers).where(tables.teachers.c.id == teacher["teacher_id"])
            .values(**{column: url}, updated_at=utcnow())
        )

    logger.info("Teacher %s uploaded %s (%d bytes)", teacher["teacher_id"], kind, size)
    return UploadResponse(kind=kind, url=url, filename=filename, size_bytes=size)


# ============================================================
# SAVED JOBS
# ============================================================

@router.get("/saved-jobs", response_model=List[SavedJobResponse])
async def list_saved_jobs(teacher: dict = Depends(get_current_teacher)):
    """Get jobs the teacher saved, newest first."""
    return [SavedJobResponse(**row) for row in job_service.list_saved_jobs(teacher["teacher_id"])]


@router.post("/saved-jobs/{job_id}", response_model=MessageResponse, status_code=201)
async def save_job(job_id: int, teacher: dict = Depends(get_current_teacher)):
    """Save a job for later."""
    try:
        saved = job_service.save_job(teacher["teacher_id"], job_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Job not found")
    if not saved:
        raise HTTPException(status_code=409, detail="Job already saved")
    return MessageResponse(message="Job saved")


@router.delete("/saved-jobs/{job_id}", response_model=MessageResponse)
async def unsave_job(job_id: int, teacher: dict = Depends(get_current_teacher)):
    """Remove a saved job."""
    if not job_service.unsave_job(teacher["teacher_id"], job_id):
        raise HTTPException(status_code=404, detail="Saved job not found")
    return MessageResponse(message="Job removed from saved jobs")


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=List[ApplicationResponse])
async def get_my_applications(
    status: Optional[ApplicationStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search school name or job title"),
    teacher: dict = Depends(get_current_teacher),
):
    """Get the teacher's applications, newest first."""
    rows = application_service.list_teacher_applications(
        teacher["teacher_id"], status=status.value if status else None, search=search
    )
    return [ApplicationResponse(**row) for row in rows]


@router.get("/applications/stats", response_model=ApplicationStatsResponse)
async def get_my_application_stats(teacher: dict = Depends(get_current_teacher)):
    """Application counts by status, plus how many were sent this week."""
    return ApplicationStatsResponse(**application_service.get_application_stats(teacher["teacher_id"]))


# ============================================================
# PUBLIC PROFILE (keep last: /{teacher_id} would shadow the paths above)
# ============================================================

@router.get("/{teacher_id}", response_model=PublicTeacherResponse)
async def get_public_profile(teacher_id: int, user: dict = Depends(get_current_user)):
    """Public view of a teacher profile (no contact details)."""
    with get_db_session() as db:
        profile = profile_service.get_teacher(db, teacher_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return PublicTeacherResponse(**profile)
