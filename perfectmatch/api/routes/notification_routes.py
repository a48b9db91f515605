"""
Notification Routes

GET /notifications - My notifications, newest first
GET /notifications/unread-count - Number of unread notifications
POST /notifications/{notification_id}/read - Mark one read
POST /notifications/read-all - Mark all read
GET /notifications/preferences - Email preferences
PUT /notifications/preferences - Update email preferences
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.core.auth import get_current_user
from perfectmatch.services import notification_service
from perfectmatch.schemas.schemas import (
    NotificationResponse, UnreadCountResponse, NotificationPreferences,
    NotificationPreferencesUpdate, MessageResponse
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    limit: Optional[int] = Query(None, ge=1, le=200),
    unread_only: bool = Query(False),
    user: dict = Depends(get_current_user),
):
    """Get my notifications."""
    rows = notification_service.get_user_notifications(user["user_id"], limit=limit, unread_only=unread_only)
    return [NotificationResponse(**r) for r in rows]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(user: dict = Depends(get_current_user)):
    return UnreadCountResponse(unread=notification_service.get_unread_count(user["user_id"]))


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    count = notification_service.mark_all_notifications_read(user["user_id"])
    return MessageResponse(message=f"Marked {count} notification(s) as read")


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(user: dict = Depends(get_current_user)):
    """Email preferences; everything is on until changed."""
    return NotificationPreferences(**notification_service.get_preferences(user["user_id"]))


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(data: NotificationPreferencesUpdate, user: dict = Depends(get_current_user)):
    prefs = notification_service.update_preferences(user["user_id"], data.model_dump(exclude_unset=True))
    return NotificationPreferences(**prefs)


@router.post("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(notification_id: int, user: dict = Depends(get_current_user)):
    """Mark one of my notifications read."""
    if not notification_service.mark_notification_read(notification_id, user["user_id"]):
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification marked as read")
