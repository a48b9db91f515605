"""
School Routes

POST /schools/profile - Create school profile (starts pending approval)
GET /schools/profile - Get own profile
PUT /schools/profile - Update profile
GET /schools/profile/completion - Profile strength
POST /schools/logo - Upload school logo
GET /schools/jobs - List own jobs (active and closed)
GET /schools/{school_id} - Public school profile
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from sqlalchemy import insert, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.core.auth import get_current_user, get_current_school
from perfectmatch.services import job_service, profile_service
from perfectmatch.utils.file_upload import save_upload
from perfectmatch.schemas.schemas import (
    SchoolCreate, SchoolUpdate, SchoolResponse, ProfileCompletionResponse,
    UploadResponse, JobResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schools", tags=["Schools"])


@router.post("/profile", response_model=SchoolResponse, status_code=201)
async def create_profile(data: SchoolCreate, user: dict = Depends(get_current_user)):
    """Create school profile. New schools wait for admin approval before posting jobs."""
    if user["role"] != "school":
        raise HTTPException(status_code=403, detail="Only school accounts can create school profiles")

    with get_db_session() as db:
        if profile_service.get_school_by_user(db, user["user_id"]):
            raise HTTPException(status_code=400, detail="Profile already exists. Use PUT to update.")

        result = db.execute(insert(tables.schools).values(
            user_id=user["user_id"],
            approval_status="pending",
            **data.model_dump(),
        ))
        school, _ = profile_service.refresh_profile_complete(db, tables.schools, result.inserted_primary_key[0])

    logger.info("School profile %s created (pending approval)", school["id"])
    return SchoolResponse(**school)


@router.get("/profile", response_model=SchoolResponse)
async def get_profile(school: dict = Depends(get_current_school)):
    """Get current school's profile."""
    with get_db_session() as db:
        return SchoolResponse(**profile_service.get_school(db, school["school_id"]))


@router.put("/profile", response_model=SchoolResponse)
async def update_profile(data: SchoolUpdate, school: dict = Depends(get_current_school)):
    """Update school profile (only the fields sent)."""
    updates = data.model_dump(exclude_unset=True)
    with get_db_session() as db:
        if updates:
            db.execute(
                update(tables.schools).where(tables.schools.c.id == school["school_id"])
                .values(**updates, updated_at=utcnow())
            )
        profile, _ = profile_service.refresh_profile_complete(db, tables.schools, school["school_id"])
    return SchoolResponse(**profile)


@router.get("/profile/completion", response_model=ProfileCompletionResponse)
async def get_profile_completion(school: dict = Depends(get_current_school)):
    """How complete the school profile is."""
    with get_db_session() as db:
        profile = profile_service.get_school(db, school["school_id"])

    return ProfileCompletionResponse(**profile_service.school_completion_report(profile))


@router.post("/logo", response_model=UploadResponse)
async def upload_logo(file: UploadFile = File(...), school: dict = Depends(get_current_school)):
    """Upload the school logo."""
    url, filename, size = await save_upload(file, "schoolLogo", school["user_id"])
    with get_db_session() as db:
        db.execute(
            update(tables.schools).where(tables.schools.c.id == school["school_id"])
            .values(logo_url=url, updated_at=utcnow())
        )
    return UploadResponse(kind="schoolLogo", url=url, filename=filename, size_bytes=size)


@router.get("/jobs", response_model=List[JobResponse])
async def list_my_jobs(school: dict = Depends(get_current_school)):
    """All of the school's jobs, newest first."""
    jobs = job_service.list_all_jobs(school_id=school["school_id"], active_only=False)
    return [JobResponse(**job) for job in jobs]


@router.get("/{school_id}", response_model=SchoolResponse)
async def get_public_profile(school_id: int, user: dict = Depends(get_current_user)):
    """Get a school's profile."""
    with get_db_session() as db:
        profile = profile_service.get_school(db, school_id)
    if not profile:
        raise HTTPException(status_code=404, detail="School not found")
    return SchoolResponse(**profile)
