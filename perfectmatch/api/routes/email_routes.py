"""
Email Routes

POST /email/send - Send a one-off email through Resend (rate limited per user)
POST /email/flush - Deliver pending queued emails (admin)
GET /email/templates - School's email templates
POST /email/templates - Create template
GET /email/templates/{template_id} - Get template
PUT /email/templates/{template_id} - Update template
DELETE /email/templates/{template_id} - Delete template
GET /email/templates/{template_id}/preview - Render with an application's values
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from perfectmatch.core.auth import get_current_admin, get_current_school, get_current_user
from perfectmatch.core.config import get_settings
from perfectmatch.services import email_service, template_service
from perfectmatch.utils.rate_limit import WindowRateLimiter
from perfectmatch.schemas.schemas import (
    SendEmailRequest, SendEmailResponse, EmailTemplateCreate, EmailTemplateUpdate,
    EmailTemplateResponse, TemplatePreviewResponse, MessageResponse
)

router = APIRouter(prefix="/email", tags=["Email"])

settings = get_settings()
send_limiter = WindowRateLimiter(max_requests=settings.email_rate_limit_per_minute, window_seconds=60)


@router.post("/send", response_model=SendEmailResponse)
async def send_email(data: SendEmailRequest, user: dict = Depends(get_current_user)):
    """
    Send an email immediately.

    429 when the caller is over the per-minute limit, 503 when email
    isn't configured, 502 when the provider rejects the message.
    """
    if not send_limiter.allow(str(user["user_id"])):
        raise HTTPException(status_code=429, detail="Too many emails, try again in a minute")

    if not email_service.is_configured():
        raise HTTPException(status_code=503, detail="Email service not configured")

    try:
        message_id = email_service.send_email(
            [str(addr) for addr in data.to],
            data.subject,
            data.html,
            text=data.text,
            reply_to=str(data.reply_to) if data.reply_to else None,
            tags=data.tags,
        )
    except email_service.EmailError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return SendEmailResponse(success=True, message_id=message_id)


@router.post("/flush", response_model=Dict[str, int])
async def flush_queue(limit: int = Query(50, ge=1, le=500), admin: dict = Depends(get_current_admin)):
    """Deliver up to `limit` pending emails."""
    return email_service.flush_email_queue(limit)


# ============================================================
# TEMPLATES
# ============================================================

def _template_payload(data) -> dict:
    payload = data.model_dump(exclude_unset=True)
    if payload.get("category") is not None:
        payload["category"] = payload["category"].value
    return payload


@router.get("/templates", response_model=List[EmailTemplateResponse])
async def list_templates(category: Optional[str] = Query(None), school: dict = Depends(get_current_school)):
    """Default templates first, then by name."""
    return [EmailTemplateResponse(**t) for t in template_service.list_templates(school["school_id"], category)]


@router.post("/templates", response_model=EmailTemplateResponse, status_code=201)
async def create_template(data: EmailTemplateCreate, school: dict = Depends(get_current_school)):
    template = template_service.create_template(school["school_id"], _template_payload(data))
    return EmailTemplateResponse(**template)


@router.get("/templates/{template_id}", response_model=EmailTemplateResponse)
async def get_template(template_id: int, school: dict = Depends(get_current_school)):
    template = template_service.get_template(template_id, school["school_id"])
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return EmailTemplateResponse(**template)


@router.put("/templates/{template_id}", response_model=EmailTemplateResponse)
async def update_template(template_id: int, data: EmailTemplateUpdate, school: dict = Depends(get_current_school)):
    updates = _template_payload(data)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    template = template_service.update_template(template_id, school["school_id"], updates)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return EmailTemplateResponse(**template)


@router.delete("/templates/{template_id}", response_model=MessageResponse)
async def delete_template(template_id: int, school: dict = Depends(get_current_school)):
    if not template_service.delete_template(template_id, school["school_id"]):
        raise HTTPException(status_code=404, detail="Template not found")
    return MessageResponse(message="Template deleted")


@router.get("/templates/{template_id}/preview", response_model=TemplatePreviewResponse)
async def preview_template(
    template_id: int,
    application_id: Optional[int] = Query(None),
    school: dict = Depends(get_current_school),
):
    """
    Render a template.

    With application_id the placeholders are filled from that application;
    without it every placeholder shows its [Label].
    """
    template = template_service.get_template(template_id, school["school_id"])
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")

    values = {}
    if application_id is not None:
        values = template_service.application_variables(application_id, school["school_id"])
        if values is None:
            raise HTTPException(status_code=404, detail="Application not found")

    return TemplatePreviewResponse(**template_service.preview_template(template, values))
