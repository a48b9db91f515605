"""
Teacher <-> school conversations.

There is one conversation per (teacher, school) pair; the job it started
from is kept for context. Only the two participants can read or write.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow
from perfectmatch.services import email_service, notification_service

logger = logging.getLogger(__name__)


def _conversation_select():
    c, t, s = tables.conversations, tables.teachers, tables.schools
    return select(
        c,
        t.c.full_name.label("teacher_name"),
        t.c.user_id.label("teacher_user_id"),
        s.c.school_name.label("school_name"),
        s.c.user_id.label("school_user_id"),
    ).select_from(c.join(t, c.c.teacher_id == t.c.id).join(s, c.c.school_id == s.c.id))


def _get(db, conversation_id: int) -> Optional[dict]:
    row = db.execute(
        _conversation_select().where(tables.conversations.c.id == conversation_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def is_participant(conversation: dict, user_id: int) -> bool:
    return user_id in (conversation["teacher_user_id"], conversation["school_user_id"])


def get_conversation(conversation_id: int, user_id: int) -> dict:
    """
    Raises:
        LookupError: no such conversation
        PermissionError: caller isn't a participant
    """
    with get_db_session() as db:
        conversation = _get(db, conversation_id)
    if not conversation:
        raise LookupError("Conversation not found")
    if not is_participant(conversation, user_id):
        raise PermissionError("Not a participant in this conversation")
    return conversation


def get_or_create_conversation(
    teacher_id: int, school_id: int, job_id: Optional[int] = None
) -> Tuple[dict, bool]:
    """
    Returns:
        (conversation, is_new)
    """
    c = tables.conversations
    with get_db_session() as db:
        if not db.execute(select(tables.teachers.c.id).where(tables.teachers.c.id == teacher_id)).fetchone():
            raise LookupError("Teacher not found")
        if not db.execute(select(tables.schools.c.id).where(tables.schools.c.id == school_id)).fetchone():
            raise LookupError("School not found")

        existing = db.execute(
            select(c.c.id, c.c.job_id).where(c.c.teacher_id == teacher_id, c.c.school_id == school_id)
        ).fetchone()
        if existing:
            conversation_id, current_job = existing
            if current_job is None and job_id is not None:
                db.execute(update(c).where(c.c.id == conversation_id).values(job_id=job_id))
            return _get(db, conversation_id), False

        conversation_id = db.execute(insert(c).values(
            teacher_id=teacher_id, school_id=school_id, job_id=job_id
        )).inserted_primary_key[0]
        logger.info("Conversation %s started (teacher %s, school %s)", conversation_id, teacher_id, school_id)
        return _get(db, conversation_id), True


def list_conversations(user_id: int, teacher_id: Optional[int] = None, school_id: Optional[int] = None) -> List[dict]:
    """Caller's conversations, most recent activity first, with unread counts."""
    c, m = tables.conversations, tables.messages
    query = _conversation_select()
    if teacher_id is not None:
        query = query.where(c.c.teacher_id == teacher_id)
    elif school_id is not None:
        query = query.where(c.c.school_id == school_id)
    else:
        return []
    query = query.order_by(c.c.last_message_at.desc(), c.c.id.desc())

    with get_db_session() as db:
        conversations = [dict(r) for r in db.execute(query).mappings().fetchall()]
        for conversation in conversations:
            conversation["unread_count"] = db.execute(
                select(func.count()).select_from(m).where(
                    m.c.conversation_id == conversation["id"],
                    m.c.sender_id != user_id,
                    m.c.is_read.is_(False),
                )
            ).scalar_one()
    return conversations


def list_messages(conversation_id: int, user_id: int) -> List[dict]:
    get_conversation(conversation_id, user_id)
    m = tables.messages
    with get_db_session() as db:
        rows = db.execute(
            select(m).where(m.c.conversation_id == conversation_id).order_by(m.c.sent_at, m.c.id)
        ).mappings().fetchall()
    return [dict(r) for r in rows]


def send_message(conversation_id: int, sender_id: int, content: str) -> dict:
    """
    Store a message, bump last_message_at, and tell the other side
    (notification always, email if they allow message emails).
    """
    conversation = get_conversation(conversation_id, sender_id)
    m, c = tables.messages, tables.conversations
    now = utcnow()

    with get_db_session() as db:
        message_id = db.execute(insert(m).values(
            conversation_id=conversation_id, sender_id=sender_id, content=content, sent_at=now
        )).inserted_primary_key[0]
        db.execute(update(c).where(c.c.id == conversation_id).values(last_message_at=now))
        message = dict(db.execute(select(m).where(m.c.id == message_id)).mappings().fetchone())

    if sender_id == conversation["teacher_user_id"]:
        recipient_id, sender_name = conversation["school_user_id"], conversation["teacher_name"]
    else:
        recipient_id, sender_name = conversation["teacher_user_id"], conversation["school_name"]

    try:
        notification_service.notify_new_message(recipient_id, conversation_id, sender_name)
        with get_db_session() as db:
            recipient = db.execute(
                select(tables.users).where(tables.users.c.id == recipient_id)
            ).mappings().fetchone()
            job_title = None
            if conversation["job_id"]:
                job_title = db.execute(
                    select(tables.jobs.c.title).where(tables.jobs.c.id == conversation["job_id"])
                ).scalar()
            email_service.queue_new_message_email(
                db, dict(recipient), sender_name, conversation_id, content, job_title=job_title
            )
    except Exception:
        logger.exception("Failed to announce message %s", message_id)

    return message


def mark_conversation_read(conversation_id: int, user_id: int) -> int:
    """Mark the other participant's messages read. Returns how many changed."""
    get_conversation(conversation_id, user_id)
    m = tables.messages
    with get_db_session() as db:
        result = db.execute(
            update(m).where(
                m.c.conversation_id == conversation_id,
                m.c.sender_id != user_id,
                m.c.is_read.is_(False),
            ).values(is_read=True)
        )
        return result.rowcount
