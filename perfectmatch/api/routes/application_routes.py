"""
Application Routes

GET /applications/school - Applications to the school's jobs (school)
GET /applications/{application_id} - Get one application (applicant or school)
GET /applications/{application_id}/timeline - Status timeline and next steps
PUT /applications/{application_id}/status - Change status (school)
POST /applications/{application_id}/withdraw - Withdraw (teacher)
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_current_school, get_current_teacher, get_current_user
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import application_service, profile_service
from perfectmatch.schemas.schemas import (
    ApplicationResponse, ApplicationStatusUpdate, ApplicationStatus, ApplicationTimelineResponse
)

router = APIRouter(prefix="/applications", tags=["Applications"])


def _visible_application(application_id: int, user: dict) -> dict:
    """Application if the caller is its teacher, the job's school, or an admin."""
    application = application_service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    if user["role"] == "admin":
        return application

    with get_db_session() as db:
        if user["role"] == "teacher":
            teacher = profile_service.get_teacher_by_user(db, user["user_id"])
            allowed = teacher is not None and teacher["id"] == application["teacher_id"]
        else:
            school = profile_service.get_school_by_user(db, user["user_id"])
            allowed = school is not None and school["id"] == application["school_id"]

    if not allowed:
        raise HTTPException(status_code=403, detail="Not your application")
    return application


@router.get("/school", response_model=List[ApplicationResponse])
async def list_school_applications(
    job_id: Optional[int] = Query(None),
    status: Optional[ApplicationStatus] = Query(None),
    school: dict = Depends(get_current_school),
):
    """Applications to the school's jobs, newest first."""
    rows = application_service.list_school_applications(
        school["school_id"], job_id=job_id, status=status.value if status else None
    )
    return [ApplicationResponse(**r) for r in rows]


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: int, user: dict = Depends(get_current_user)):
    """Get application details."""
    return ApplicationResponse(**_visible_application(application_id, user))


@router.get("/{application_id}/timeline", response_model=ApplicationTimelineResponse)
async def get_application_timeline(application_id: int, user: dict = Depends(get_current_user)):
    """Timeline steps (completed / current / upcoming) plus the status history."""
    application = _visible_application(application_id, user)
    return ApplicationTimelineResponse(**application_service.get_application_timeline(application))


@router.put("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    school: dict = Depends(get_current_school),
):
    """
    Move an application to a new status.

    Hired, rejected and withdrawn applications can't change. Sending the
    current status again only updates the notes.
    """
    with service_errors():
        application = application_service.update_application_status(
            application_id, data.status.value, changed_by=school["user_id"],
            notes=data.notes, school_id=school["school_id"],
        )
    return ApplicationResponse(**application)


@router.post("/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(application_id: int, teacher: dict = Depends(get_current_teacher)):
    """Withdraw an application."""
    with service_errors():
        application = application_service.withdraw_application(
            application_id, teacher["teacher_id"], teacher["user_id"]
        )
    return ApplicationResponse(**application)
