"""
Admin Routes

GET /admin/users - List users (optional role filter)
PUT /admin/users/{user_id}/active - Activate / deactivate a user
GET /admin/schools - List schools (optional approval_status filter)
POST /admin/schools/{school_id}/approve - Approve a school
POST /admin/schools/{school_id}/reject - Reject a school with a reason
GET /admin/jobs - All jobs, including inactive
POST /admin/jobs/{job_id}/deactivate - Take a job down
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_current_admin
from perfectmatch.services import admin_service, job_service
from perfectmatch.schemas.schemas import (
    UserResponse, UserActiveUpdate, SchoolResponse, SchoolApproveRequest, SchoolRejectRequest,
    JobListResponse, JobResponse, MessageResponse
)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserResponse])
async def list_users(role: Optional[str] = Query(None), admin: dict = Depends(get_current_admin)):
    return [UserResponse(**u) for u in admin_service.list_users(role)]


@router.put("/users/{user_id}/active", response_model=UserResponse)
async def set_user_active(user_id: int, data: UserActiveUpdate, admin: dict = Depends(get_current_admin)):
    if user_id == admin["user_id"] and not data.is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate yourself")
    user = admin_service.set_user_active(user_id, data.is_active)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(**user)


@router.get("/schools", response_model=List[SchoolResponse])
async def list_schools(approval_status: Optional[str] = Query(None), admin: dict = Depends(get_current_admin)):
    """Newest first. Use approval_status=pending for the review queue."""
    return [SchoolResponse(**s) for s in admin_service.list_schools(approval_status)]


@router.post("/schools/{school_id}/approve", response_model=SchoolResponse)
async def approve_school(
    school_id: int,
    data: Optional[SchoolApproveRequest] = None,
    admin: dict = Depends(get_current_admin),
):
    with service_errors():
        school = admin_service.approve_school(
            school_id, admin["user_id"], data.verification_notes if data else None
        )
    return SchoolResponse(**school)


@router.post("/schools/{school_id}/reject", response_model=SchoolResponse)
async def reject_school(school_id: int, data: SchoolRejectRequest, admin: dict = Depends(get_current_admin)):
    with service_errors():
        school = admin_service.reject_school(school_id, admin["user_id"], data.reason, data.verification_notes)
    return SchoolResponse(**school)


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: dict = Depends(get_current_admin),
):
    jobs, total = job_service.search_jobs(active_only=False, page=page, page_size=page_size)
    return JobListResponse(jobs=[JobResponse(**j) for j in jobs], total=total, page=page, page_size=page_size)


@router.post("/jobs/{job_id}/deactivate", response_model=MessageResponse)
async def deactivate_job(job_id: int, admin: dict = Depends(get_current_admin)):
    if not job_service.update_job(job_id, None, {"is_active": False}):
        raise HTTPException(status_code=404, detail="Job not found")
    return MessageResponse(message="Job deactivated")
