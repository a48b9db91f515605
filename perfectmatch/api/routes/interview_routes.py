"""
Interview Routes

POST /interviews - Invite an applicant to interview (school)
GET /interviews/school - School's interview invites
GET /interviews/mine - Teacher's interview invites
POST /interviews/{invite_id}/accept - Accept invite (teacher)
POST /interviews/{invite_id}/decline - Decline invite (teacher)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_approved_school, get_current_school, get_current_teacher
from perfectmatch.services import interview_service
from perfectmatch.schemas.schemas import (
    InterviewInviteCreate, InterviewInviteResponse, InterviewRespondRequest
)

router = APIRouter(prefix="/interviews", tags=["Interviews"])


@router.post("", response_model=InterviewInviteResponse, status_code=201)
async def create_invite(data: InterviewInviteCreate, school: dict = Depends(get_approved_school)):
    """Send an interview invite; the teacher is notified."""
    payload = data.model_dump()
    payload["interview_type"] = data.interview_type.value
    with service_errors():
        invite = interview_service.create_invite(school["school_id"], payload)
    return InterviewInviteResponse(**invite)


@router.get("/school", response_model=List[InterviewInviteResponse])
async def list_school_invites(job_id: Optional[int] = Query(None), school: dict = Depends(get_current_school)):
    """School's invites, soonest first."""
    return [InterviewInviteResponse(**i) for i in interview_service.list_school_invites(school["school_id"], job_id)]


@router.get("/mine", response_model=List[InterviewInviteResponse])
async def list_my_invites(status: Optional[str] = Query(None), teacher: dict = Depends(get_current_teacher)):
    """Teacher's invites, soonest first."""
    return [InterviewInviteResponse(**i) for i in interview_service.list_teacher_invites(teacher["teacher_id"], status)]


@router.post("/{invite_id}/accept", response_model=InterviewInviteResponse)
async def accept_invite(
    invite_id: int,
    data: Optional[InterviewRespondRequest] = None,
    teacher: dict = Depends(get_current_teacher),
):
    """Accept an invite; the application moves to interview_scheduled."""
    with service_errors():
        invite = interview_service.accept_invite(
            invite_id, teacher["teacher_id"], teacher["user_id"],
            teacher_notes=data.teacher_notes if data else None,
        )
    return InterviewInviteResponse(**invite)


@router.post("/{invite_id}/decline", response_model=InterviewInviteResponse)
async def decline_invite(
    invite_id: int,
    data: Optional[InterviewRespondRequest] = None,
    teacher: dict = Depends(get_current_teacher),
):
    """Decline an invite."""
    with service_errors():
        invite = interview_service.decline_invite(
            invite_id, teacher["teacher_id"], teacher_notes=data.teacher_notes if data else None
        )
    return InterviewInviteResponse(**invite)
