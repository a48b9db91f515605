"""
Email Service - transactional email through the Resend REST API.

Flow:
1. Services call a queue_* helper, which checks the recipient's
   notification preferences and inserts a pending email_queue row
2. flush_email_queue() renders each pending row from its template
   and delivers it with send_email()
3. Rows that keep failing are marked failed after email_max_attempts

Nothing here runs on a timer; the queue is drained by an explicit call
(admin endpoint or scripts/flush_email_queue.py).
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import requests
from sqlalchemy import insert, select, update

from perfectmatch.core.config import get_settings
from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import notification_service

logger = logging.getLogger(__name__)

BRAND_PRIMARY = "#6366F1"
BRAND_SECONDARY = "#8B5CF6"
BRAND_BACKGROUND = "#f9f9f9"


class EmailError(Exception):
    """Email could not be delivered (not configured, rejected, network)."""


@dataclass
class RenderedEmail:
    html: str
    text: str


# ============================================================
# DELIVERY
# ============================================================

def is_configured() -> bool:
    return bool(get_settings().resend_api_key)


def send_email(
    to: List[str],
    subject: str,
    html: str,
    text: Optional[str] = None,
    reply_to: Optional[str] = None,
    tags: Optional[List[Dict[str, str]]] = None,
) -> Optional[str]:
    """
    Send one email through Resend.

    Returns:
        Provider message id

    Raises:
        EmailError: service not configured, bad input, or delivery failed
    """
    settings = get_settings()
    if not settings.resend_api_key:
        raise EmailError("Email service not configured")
    if not to or not subject or not html:
        raise EmailError("Missing required fields: to, subject, html")

    payload = {
        "from": settings.from_email,
        "to": list(to),
        "subject": subject,
        "html": html,
    }
    if text:
        payload["text"] = text
    if reply_to:
        payload["reply_to"] = reply_to
    if tags:
        payload["tags"] = tags

    headers = {
        "Authorization": f"Bearer {settings.resend_api_key}",
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(settings.resend_api_url, json=payload, headers=headers, timeout=30)
    except requests.RequestException as e:
        logger.error("Resend request failed: %s", e)
        raise EmailError(f"Email delivery failed: {e}") from e

    if response.status_code not in (200, 201):
        logger.error("Resend API error %s: %s", response.status_code, response.text)
        raise EmailError(f"Resend API error: {response.status_code}")

    message_id = response.json().get("id")
    logger.info("Email sent to %s (id=%s)", ", ".join(to), message_id)
    return message_id


# ============================================================
# TEMPLATES
# ============================================================

def html_to_text(markup: str) -> str:
    """Rough plain-text version of an HTML email."""
    text = re.sub(r"<style[^>]*>.*?</style>", "", markup, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<script[^>]*>.*?</script>", "", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<[^>]+>", "", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n+", "\n\n", text)
    return text.strip()


def _layout(title: str, content: str, cta_label: Optional[str] = None, cta_url: Optional[str] = None) -> str:
    button = ""
    if cta_label and cta_url:
        button = (
            f'<p style="text-align:center;margin:30px 0;">'
            f'<a href="{html.escape(cta_url)}" style="background:{BRAND_PRIMARY};color:#ffffff;'
            f'padding:12px 28px;border-radius:6px;text-decoration:none;font-weight:600;">'
            f"{html.escape(cta_label)}</a></p>"
        )
    return (
        f'<html><body style="margin:0;padding:0;background:{BRAND_BACKGROUND};'
        f'font-family:Arial,sans-serif;color:#333333;">'
        f'<div style="max-width:600px;margin:0 auto;background:#ffffff;">'
        f'<div style="background:linear-gradient(135deg,{BRAND_PRIMARY},{BRAND_SECONDARY});'
        f'color:#ffffff;padding:40px 20px;text-align:center;">'
        f"<h1 style=\"margin:0;\">{html.escape(title)}</h1></div>"
        f'<div style="padding:30px 20px;">{content}{button}</div>'
        f'<div style="padding:20px;background:{BRAND_BACKGROUND};font-size:12px;color:#666666;'
        f'text-align:center;">Perfect Match Schools</div>'
        f"</div></body></html>"
    )


def _e(data: dict, key: str, default: str = "") -> str:
    value = data.get(key)
    return html.escape(str(value)) if value not in (None, "") else default


STATUS_MESSAGES = {
    "reviewed": ("Application Under Review", "Your application has been reviewed by the school."),
    "under_review": ("Application Under Review", "The school is reviewing your application."),
    "contacted": ("School Contacted You", "The school has reached out regarding your application."),
    "shortlisted": ("You've Been Shortlisted!", "Congratulations! You've been shortlisted for this position."),
    "interview_scheduled": ("Interview Scheduled", "The school would like to interview you."),
    "offer_made": ("You've Received an Offer!", "The school has made you an offer for this position."),
    "hired": ("Congratulations! You're Hired!", "Great news! You've been selected for this position."),
    "rejected": (
        "Application Update",
        "Thank you for your interest. Unfortunately, you were not selected for this position.",
    ),
}


def render_application_status_changed(data: dict) -> RenderedEmail:
    title, message = STATUS_MESSAGES.get(data.get("new_status"), STATUS_MESSAGES["reviewed"])
    content = (
        f"<p>Hi {_e(data, 'teacher_name', 'there')},</p>"
        f"<p>Your application for <strong>{_e(data, 'job_title')}</strong> at "
        f"<strong>{_e(data, 'school_name')}</strong> has been updated.</p>"
        f"<h2>{html.escape(title)}</h2><p>{html.escape(message)}</p>"
    )
    if data.get("note"):
        content += f"<p><em>\"{_e(data, 'note')}\"</em></p>"
    markup = _layout("Application Status Update", content, "View Application", data.get("dashboard_url"))
    return RenderedEmail(markup, html_to_text(markup))


def render_new_job_match(data: dict) -> RenderedEmail:
    content = (
        f"<p>Hi {_e(data, 'teacher_name', 'there')},</p>"
        f"<p>We found a <strong>{_e(data, 'match_score')}% match</strong> for you: "
        f"<strong>{_e(data, 'job_title')}</strong> at <strong>{_e(data, 'school_name')}</strong>.</p>"
    )
    if data.get("location"):
        content += f"<p>Location: {_e(data, 'location')}</p>"
    if data.get("salary"):
        content += f"<p>Salary: {_e(data, 'salary')}</p>"
    markup = _layout("New Job Match!", content, "View Job", data.get("job_url"))
    return RenderedEmail(markup, html_to_text(markup))


def render_new_message(data: dict) -> RenderedEmail:
    content = (
        f"<p>Hi {_e(data, 'recipient_name', 'there')},</p>"
        f"<p>You have received a new message from <strong>{_e(data, 'sender_name')}</strong>.</p>"
    )
    if data.get("job_title"):
        content += f"<p><strong>Regarding:</strong> {_e(data, 'job_title')}</p>"
    content += f"<p><em>\"{_e(data, 'message_preview')}\"</em></p>"
    markup = _layout(f"New Message from {data.get('sender_name', '')}", content, "View Message",
                     data.get("conversation_url"))
    return RenderedEmail(markup, html_to_text(markup))


def render_interview_invite(data: dict) -> RenderedEmail:
    content = (
        f"<p>Hi {_e(data, 'teacher_name', 'there')},</p>"
        f"<p><strong>{_e(data, 'school_name')}</strong> has invited you to interview for "
        f"<strong>{_e(data, 'job_title')}</strong>.</p>"
        f"<p>When: {_e(data, 'scheduled_at')} ({_e(data, 'duration_minutes')} minutes)</p>"
        f"<p>Format: {_e(data, 'interview_type')}</p>"
    )
    if data.get("location"):
        content += f"<p>Where: {_e(data, 'location')}</p>"
    if data.get("meeting_link"):
        content += f"<p>Meeting link: {_e(data, 'meeting_link')}</p>"
    markup = _layout("Interview Invitation", content, "Respond to Invite", data.get("dashboard_url"))
    return RenderedEmail(markup, html_to_text(markup))


def render_offer_extended(data: dict) -> RenderedEmail:
    content = (
        f"<p>Hi {_e(data, 'teacher_name', 'there')},</p>"
        f"<p><strong>{_e(data, 'school_name')}</strong> has extended you an offer for "
        f"<strong>{_e(data, 'job_title')}</strong>.</p>"
    )
    if data.get("salary_amount"):
        content += f"<p>Salary: {_e(data, 'salary_amount')}</p>"
    if data.get("start_date"):
        content += f"<p>Start date: {_e(data, 'start_date')}</p>"
    if data.get("expiration_date"):
        content += f"<p>Please respond by {_e(data, 'expiration_date')}.</p>"
    markup = _layout("You've Received an Offer!", content, "Review Offer", data.get("dashboard_url"))
    return RenderedEmail(markup, html_to_text(markup))


TEMPLATES: Dict[str, Callable[[dict], RenderedEmail]] = {
    "application_status_changed": render_application_status_changed,
    "new_job_match": render_new_job_match,
    "new_message": render_new_message,
    "interview_invite": render_interview_invite,
    "offer_extended": render_offer_extended,
}


def render_template(template_name: str, data: dict) -> RenderedEmail:
    renderer = TEMPLATES.get(template_name)
    if renderer is None:
        raise EmailError(f"Unknown email template '{template_name}'")
    return renderer(data or {})


# ============================================================
# QUEUE
# ============================================================

def queue_email(
    recipient_email: str,
    subject: str,
    template_name: str,
    template_data: dict,
    recipient_name: Optional[str] = None,
    db=None,
) -> int:
    """Insert a pending email. Returns the queue row id."""
    if template_name not in TEMPLATES:
        raise ValueError(f"Unknown email template '{template_name}'")

    stmt = insert(tables.email_queue).values(
        recipient_email=recipient_email,
        recipient_name=recipient_name,
        subject=subject,
        template_name=template_name,
        template_data=template_data,
        status="pending",
        attempts=0,
    )
    if db is not None:
        email_id = db.execute(stmt).inserted_primary_key[0]
    else:
        with get_db_session() as session:
            email_id = session.execute(stmt).inserted_primary_key[0]
    logger.info("Queued %s email to %s", template_name, recipient_email)
    return email_id


def flush_email_queue(limit: int = 50) -> Dict[str, int]:
    """
    Render and deliver pending emails, oldest first.

    Returns:
        {"processed", "sent", "failed", "retrying"}
    """
    settings = get_settings()
    eq = tables.email_queue
    counts = {"processed": 0, "sent": 0, "failed": 0, "retrying": 0}

    with get_db_session() as db:
        pending = [
            dict(r) for r in db.execute(
                select(eq).where(eq.c.status == "pending").order_by(eq.c.id).limit(limit)
            ).mappings().fetchall()
        ]

    for row in pending:
        counts["processed"] += 1
        attempts = row["attempts"] + 1
        try:
            rendered = render_template(row["template_name"], row["template_data"])
            provider_id = send_email(
                [row["recipient_email"]], row["subject"], rendered.html, text=rendered.text,
                tags=[{"name": "template", "value": row["template_name"]}],
            )
        except EmailError as e:
            status = "failed" if attempts >= settings.email_max_attempts else "pending"
            counts["failed" if status == "failed" else "retrying"] += 1
            with get_db_session() as db:
                db.execute(
                    update(eq).where(eq.c.id == row["id"])
                    .values(attempts=attempts, last_error=str(e), status=status)
                )
            logger.warning("Email %s attempt %d failed: %s", row["id"], attempts, e)
            continue

        counts["sent"] += 1
        with get_db_session() as db:
            db.execute(
                update(eq).where(eq.c.id == row["id"]).values(
                    attempts=attempts, status="sent", provider_id=provider_id, sent_at=utcnow(), last_error=None
                )
            )

    logger.info("Email queue flush: %s", counts)
    return counts


# ============================================================
# SCENARIO HELPERS (respect notification preferences)
# ============================================================

def _allowed(db, user_id: int, preference: str) -> bool:
    return notification_service.get_preferences(user_id, db=db)[preference]


def queue_application_status_email(
    db, teacher: dict, school_name: str, job_title: str,
    old_status: Optional[str], new_status: str, note: Optional[str] = None,
) -> Optional[int]:
    if not _allowed(db, teacher["user_id"], "email_application_updates"):
        logger.info("User %s has disabled application update emails", teacher["user_id"])
        return None
    base_url = get_settings().app_base_url
    return queue_email(
        teacher["email"],
        f"Your application to {school_name} has been updated",
        "application_status_changed",
        {
            "teacher_name": teacher["full_name"],
            "school_name": school_name,
            "job_title": job_title,
            "old_status": old_status,
            "new_status": new_status,
            "note": note,
            "dashboard_url": f"{base_url}/teacher/dashboard",
        },
        recipient_name=teacher["full_name"],
        db=db,
    )


def queue_new_match_email(db, teacher: dict, job: dict, match_score: int) -> Optional[int]:
    if not _allowed(db, teacher["user_id"], "email_new_matches"):
        return None
    base_url = get_settings().app_base_url
    return queue_email(
        teacher["email"],
        f"New {match_score}% match: {job['title']}",
        "new_job_match",
        {
            "teacher_name": teacher["full_name"],
            "job_title": job["title"],
            "school_name": job.get("school_name"),
            "match_score": match_score,
            "salary": job.get("salary"),
            "location": job.get("location"),
            "job_url": f"{base_url}/jobs/{job['id']}",
        },
        recipient_name=teacher["full_name"],
        db=db,
    )


def queue_new_message_email(
    db, recipient_user: dict, sender_name: str, conversation_id: int,
    preview: str, job_title: Optional[str] = None,
) -> Optional[int]:
    if not _allowed(db, recipient_user["id"], "email_messages"):
        return None
    base_url = get_settings().app_base_url
    if len(preview) > 140:
        preview = preview[:137] + "..."
    return queue_email(
        recipient_user["email"],
        f"New message from {sender_name}",
        "new_message",
        {
            "recipient_name": recipient_user["full_name"],
            "sender_name": sender_name,
            "message_preview": preview,
            "job_title": job_title,
            "conversation_url": f"{base_url}/messages?conversation={conversation_id}",
        },
        recipient_name=recipient_user["full_name"],
        db=db,
    )


def queue_interview_invite_email(db, teacher: dict, invite: dict, school_name: str, job_title: str) -> Optional[int]:
    if not _allowed(db, teacher["user_id"], "email_application_updates"):
        return None
    return queue_email(
        teacher["email"],
        f"Interview invitation from {school_name}",
        "interview_invite",
        {
            "teacher_name": teacher["full_name"],
            "school_name": school_name,
            "job_title": job_title,
            "scheduled_at": invite["scheduled_at"].strftime("%B %d, %Y at %I:%M %p UTC"),
            "duration_minutes": invite["duration_minutes"],
            "interview_type": invite["interview_type"].replace("_", " "),
            "location": invite.get("location"),
            "meeting_link": invite.get("meeting_link"),
            "dashboard_url": f"{get_settings().app_base_url}/teacher/dashboard",
        },
        recipient_name=teacher["full_name"],
        db=db,
    )


def queue_offer_extended_email(db, teacher: dict, offer: dict, school_name: str, job_title: str) -> Optional[int]:
    if not _allowed(db, teacher["user_id"], "email_application_updates"):
        return None

    def _date(value):
        return value.strftime("%B %d, %Y") if value else None

    return queue_email(
        teacher["email"],
        f"Offer from {school_name}: {job_title}",
        "offer_extended",
        {
            "teacher_name": teacher["full_name"],
            "school_name": school_name,
            "job_title": job_title,
            "salary_amount": f"${offer['salary_amount']:,.0f}" if offer.get("salary_amount") else None,
            "start_date": _date(offer.get("start_date")),
            "expiration_date": _date(offer.get("expiration_date")),
            "dashboard_url": f"{get_settings().app_base_url}/teacher/dashboard",
        },
        recipient_name=teacher["full_name"],
        db=db,
    )
