"""
Messaging Routes

POST /messages/conversations - Open (or find) a conversation with a teacher/school
GET /messages/conversations - List my conversations with unread counts
GET /messages/conversations/{conversation_id}/messages - Messages, oldest first
POST /messages/conversations/{conversation_id}/messages - Send a message
POST /messages/conversations/{conversation_id}/read - Mark the conversation read
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends

from perfectmatch.api.errors import service_errors
from perfectmatch.core.auth import get_current_user
from perfectmatch.db.postgres import get_db_session
from perfectmatch.services import conversation_service, profile_service
from perfectmatch.schemas.schemas import (
    ConversationCreate, ConversationResponse, ConversationOpenResponse,
    MessageCreate, ChatMessageResponse, MessageResponse
)

router = APIRouter(prefix="/messages", tags=["Messages"])


def _participant_ids(user: dict) -> dict:
    """teacher_id / school_id of the caller's profile."""
    with get_db_session() as db:
        if user["role"] == "teacher":
            profile = profile_service.get_teacher_by_user(db, user["user_id"])
            key = "teacher_id"
        elif user["role"] == "school":
            profile = profile_service.get_school_by_user(db, user["user_id"])
            key = "school_id"
        else:
            raise HTTPException(status_code=403, detail="Only teachers and schools can message")

    if not profile:
        raise HTTPException(status_code=404, detail="Create your profile first")
    return {key: profile["id"]}


@router.post("/conversations", response_model=ConversationOpenResponse)
async def open_conversation(data: ConversationCreate, user: dict = Depends(get_current_user)):
    """
    Start a conversation, or return the existing one for this teacher/school pair.

    Teachers send school_id, schools send teacher_id.
    """
    ids = _participant_ids(user)
    teacher_id = ids.get("teacher_id", data.teacher_id)
    school_id = ids.get("school_id", data.school_id)
    if teacher_id is None or school_id is None:
        raise HTTPException(status_code=400, detail="Both teacher_id and school_id are required")

    with service_errors():
        conversation, is_new = conversation_service.get_or_create_conversation(teacher_id, school_id, data.job_id)
    return ConversationOpenResponse(conversation=ConversationResponse(**conversation), is_new=is_new)


@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(user: dict = Depends(get_current_user)):
    """My conversations, most recent activity first."""
    ids = _participant_ids(user)
    rows = conversation_service.list_conversations(user["user_id"], **ids)
    return [ConversationResponse(**r) for r in rows]


@router.get("/conversations/{conversation_id}/messages", response_model=List[ChatMessageResponse])
async def list_messages(conversation_id: int, user: dict = Depends(get_current_user)):
    """Messages in a conversation, oldest first."""
    with service_errors():
        rows = conversation_service.list_messages(conversation_id, user["user_id"])
    return [ChatMessageResponse(**r) for r in rows]


@router.post("/conversations/{conversation_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def send_message(conversation_id: int, data: MessageCreate, user: dict = Depends(get_current_user)):
    """Send a message; the other participant is notified."""
    content = data.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    with service_errors():
        message = conversation_service.send_message(conversation_id, user["user_id"], content)
    return ChatMessageResponse(**message)


@router.post("/conversations/{conversation_id}/read", response_model=MessageResponse)
async def mark_read(conversation_id: int, user: dict = Depends(get_current_user)):
    """Mark the other participant's messages as read."""
    with service_errors():
        count = conversation_service.mark_conversation_read(conversation_id, user["user_id"])
    return MessageResponse(message=f"Marked {count} message(s) as read")
