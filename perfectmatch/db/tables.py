"""
Database schema - SQLAlchemy Core table definitions.

List and object fields (subjects, grade levels, archetype tags, filters,
notification metadata) are JSON columns so the same schema runs on
PostgreSQL in production and SQLite in tests.

All timestamps are naive UTC.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData,
    String, Table, Text, UniqueConstraint
)

metadata = MetaData()


def utcnow() -> datetime:
    """Current UTC time without tzinfo (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _created_at() -> Column:
    return Column("created_at", DateTime, nullable=False, default=utcnow)


def _updated_at() -> Column:
    return Column("updated_at", DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ============================================================
# ACCOUNTS & PROFILES
# ============================================================

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False),
    Column("full_name", String(200), nullable=False, default=""),
    Column("is_active", Boolean, nullable=False, default=True),
    _created_at(),
)

teachers = Table(
    "teachers", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("full_name", String(200), nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone", String(50)),
    Column("location", String(200)),
    Column("bio", Text),
    Column("years_experience", String(50)),
    Column("subjects", JSON, nullable=False, default=list),
    Column("grade_levels", JSON, nullable=False, default=list),
    Column("certifications", JSON),
    Column("archetype", String(100)),
    Column("archetype_tags", JSON, nullable=False, default=list),
    Column("teaching_philosophy", Text),
    Column("resume_url", String(500)),
    Column("profile_photo_url", String(500)),
    Column("portfolio_url", String(500)),
    Column("profile_complete", Boolean, nullable=False, default=False),
    _created_at(),
    _updated_at(),
)

schools = Table(
    "schools", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("school_name", String(200), nullable=False),
    Column("school_type", String(100)),
    Column("location", String(200)),
    Column("description", Text),
    Column("website", String(500)),
    Column("logo_url", String(500)),
    Column("profile_complete", Boolean, nullable=False, default=False),
    Column("approval_status", String(20), nullable=False, default="pending"),
    Column("approved_at", DateTime),
    Column("approved_by", Integer, ForeignKey("users.id")),
    Column("rejected_at", DateTime),
    Column("rejection_reason", Text),
    Column("verification_notes", Text),
    _created_at(),
    _updated_at(),
)

notification_preferences = Table(
    "notification_preferences", metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("email_application_updates", Boolean, nullable=False, default=True),
    Column("email_new_matches", Boolean, nullable=False, default=True),
    Column("email_messages", Boolean, nullable=False, default=True),
)


# ============================================================
# JOBS & MATCHING
# ============================================================

jobs = Table(
    "jobs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("school_id", Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(200), nullable=False),
    Column("department", String(200)),
    Column("subject", String(100)),
    Column("grade_level", String(100)),
    Column("job_type", String(50), nullable=False, default="full-time"),
    Column("location", String(200)),
    Column("salary", String(100)),
    Column("description", Text),
    Column("requirements", Text),
    Column("benefits", Text),
    Column("archetype_tags", JSON, nullable=False, default=list),
    Column("application_requirements", JSON, nullable=False, default=dict),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("posted_at", DateTime, nullable=False, default=utcnow),
    _updated_at(),
)

job_candidates = Table(
    "job_candidates", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("match_score", Float, nullable=False),
    Column("match_reason", Text),
    Column("status", String(20), nullable=False, default="new"),
    Column("school_notes", Text),
    _created_at(),
    _updated_at(),
    UniqueConstraint("job_id", "teacher_id", name="uq_job_candidates_job_teacher"),
)

teacher_job_matches = Table(
    "teacher_job_matches", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("match_score", Float, nullable=False),
    Column("match_reason", Text),
    Column("is_favorited", Boolean, nullable=False, default=False),
    Column("is_hidden", Boolean, nullable=False, default=False),
    _created_at(),
    UniqueConstraint("teacher_id", "job_id", name="uq_teacher_job_matches_teacher_job"),
)

saved_jobs = Table(
    "saved_jobs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    _created_at(),
    UniqueConstraint("teacher_id", "job_id", name="uq_saved_jobs_teacher_job"),
)


# ============================================================
# APPLICATIONS / ATS
# ============================================================

applications = Table(
    "applications", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("cover_letter", Text),
    Column("desired_salary", String(100)),
    Column("status", String(30), nullable=False, default="pending"),
    Column("school_notes", Text),
    Column("applied_at", DateTime, nullable=False, default=utcnow),
    _updated_at(),
    Column("interview_scheduled_at", DateTime),
    Column("offer_made_at", DateTime),
    Column("rejected_at", DateTime),
    UniqueConstraint("job_id", "teacher_id", name="uq_applications_job_teacher"),
)

application_status_history = Table(
    "application_status_history", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("application_id", Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False),
    Column("old_status", String(30)),
    Column("new_status", String(30), nullable=False),
    Column("changed_by", Integer, ForeignKey("users.id")),
    Column("note", Text),
    Column("changed_at", DateTime, nullable=False, default=utcnow),
)

pipeline_stages = Table(
    "pipeline_stages", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("school_id", Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE")),
    Column("name", String(100), nullable=False),
    Column("order_index", Integer, nullable=False),
    Column("type", String(20), nullable=False, default="custom"),
    _created_at(),
)

offers = Table(
    "offers", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("application_id", Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False),
    Column("created_by", Integer, ForeignKey("users.id"), nullable=False),
    Column("status", String(30), nullable=False, default="draft"),
    Column("salary_amount", Float),
    Column("start_date", DateTime),
    Column("benefits_summary", Text),
    Column("additional_terms", Text),
    Column("expiration_date", DateTime),
    Column("offer_letter_url", String(500)),
    _created_at(),
    _updated_at(),
)

interview_invites = Table(
    "interview_invites", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("application_id", Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("school_id", Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("scheduled_at", DateTime, nullable=False),
    Column("duration_minutes", Integer, nullable=False, default=30),
    Column("interview_type", String(20), nullable=False, default="video"),
    Column("location", String(300)),
    Column("meeting_link", String(500)),
    Column("notes", Text),
    Column("status", String(20), nullable=False, default="pending"),
    Column("teacher_response_at", DateTime),
    Column("teacher_notes", Text),
    _created_at(),
)


# ============================================================
# MESSAGING & NOTIFICATIONS
# ============================================================

conversations = Table(
    "conversations", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("teacher_id", Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
    Column("school_id", Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="SET NULL")),
    Column("last_message_at", DateTime, nullable=False, default=utcnow),
    _created_at(),
    UniqueConstraint("teacher_id", "school_id", name="uq_conversations_teacher_school"),
)

messages = Table(
    "messages", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("conversation_id", Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
    Column("sender_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("content", Text, nullable=False),
    Column("sent_at", DateTime, nullable=False, default=utcnow),
    Column("is_read", Boolean, nullable=False, default=False),
)

notifications = Table(
    "notifications", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("type", String(40), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("link_url", String(500)),
    Column("link_text", String(100)),
    Column("icon", String(20)),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("read_at", DateTime),
    _created_at(),
    Column("metadata", JSON, nullable=False, default=dict),
)

email_queue = Table(
    "email_queue", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("recipient_email", String(255), nullable=False),
    Column("recipient_name", String(200)),
    Column("subject", String(300), nullable=False),
    Column("template_name", String(100), nullable=False),
    Column("template_data", JSON, nullable=False, default=dict),
    Column("status", String(20), nullable=False, default="pending"),
    Column("attempts", Integer, nullable=False, default=0),
    Column("last_error", Text),
    Column("provider_id", String(200)),
    _created_at(),
    Column("sent_at", DateTime),
)

email_templates = Table(
    "email_templates", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("school_id", Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(200), nullable=False),
    Column("subject", String(300), nullable=False),
    Column("body", Text, nullable=False),
    Column("category", String(20)),
    Column("is_default", Boolean, nullable=False, default=False),
    _created_at(),
    _updated_at(),
)


# ============================================================
# SEARCH
# ============================================================

saved_searches = Table(
    "saved_searches", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(200), nullable=False),
    Column("search_query", String(300)),
    Column("filters", JSON, nullable=False, default=dict),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("notify_on_match", Boolean, nullable=False, default=True),
    Column("last_checked_at", DateTime, nullable=False, default=utcnow),
    _created_at(),
    _updated_at(),
)

search_history = Table(
    "search_history", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("search_query", String(300)),
    Column("filters", JSON, nullable=False, default=dict),
    Column("result_count", Integer, nullable=False, default=0),
    Column("searched_at", DateTime, nullable=False, default=utcnow),
)


# ============================================================
# REVIEWS
# ============================================================

# review_type names who is reviewed: teacher_review is a school reviewing a
# teacher, school_review a teacher reviewing a school
reviews = Table(
    "reviews", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("reviewer_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("reviewee_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("review_type", String(20), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="SET NULL")),
    Column("interview_id", Integer, ForeignKey("interview_invites.id", ondelete="SET NULL")),
    Column("rating", Integer, nullable=False),
    Column("title", String(200)),
    Column("comment", Text),
    Column("categories", JSON, nullable=False, default=dict),
    Column("is_anonymous", Boolean, nullable=False, default=False),
    Column("is_verified", Boolean, nullable=False, default=False),
    _created_at(),
    UniqueConstraint("reviewer_id", "reviewee_id", "job_id", name="uq_reviews_reviewer_reviewee_job"),
)


def init_schema(bind) -> None:
    """Create all tables that don't exist yet."""
    metadata.create_all(bind)


def drop_schema(bind) -> None:
    metadata.drop_all(bind)
