"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    teacher = "teacher"
    school = "school"
    admin = "admin"


class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    contract = "contract"
    substitute = "substitute"
    long_term_sub = "long-term-sub"


class ApplicationStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    reviewed = "reviewed"
    contacted = "contacted"
    shortlisted = "shortlisted"
    interview_scheduled = "interview_scheduled"
    offer_made = "offer_made"
    hired = "hired"
    rejected = "rejected"
    withdrawn = "withdrawn"


class CandidateStatus(str, Enum):
    new = "new"
    reviewed = "reviewed"
    contacted = "contacted"
    shortlisted = "shortlisted"
    hired = "hired"
    hidden = "hidden"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class StageType(str, Enum):
    system = "system"
    custom = "custom"


class ReviewType(str, Enum):
    teacher_review = "teacher_review"
    school_review = "school_review"


class OfferStatus(str, Enum):
    draft = "draft"
    approval_pending = "approval_pending"
    extended = "extended"
    accepted = "accepted"
    declined = "declined"


class OfferResponseStatus(str, Enum):
    accepted = "accepted"
    declined = "declined"


class InterviewType(str, Enum):
    video = "video"
    phone = "phone"
    in_person = "in_person"


class NotificationType(str, Enum):
    new_job_match = "new_job_match"
    new_candidate_match = "new_candidate_match"
    new_application = "new_application"
    application_status = "application_status"
    message = "message"
    profile_viewed = "profile_viewed"
    achievement_unlocked = "achievement_unlocked"
    job_posted = "job_posted"
    candidate_contacted = "candidate_contacted"


class TemplateCategory(str, Enum):
    rejection = "rejection"
    interview = "interview"
    offer = "offer"
    general = "general"


class UploadKind(str, Enum):
    resume = "resume"
    profile_image = "profileImage"
    portfolio = "portfolio"
    school_logo = "schoolLogo"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    role: UserRole
    full_name: str = Field("", max_length=200)

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("admin accounts cannot self-register")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str


class UserResponse(BaseModel):
    id: int
    email: str
    role: str
    full_name: str
    is_active: bool
    created_at: datetime


class PasswordStrengthResponse(BaseModel):
    score: int
    label: str
    feedback: List[str]
    meets_minimum: bool


class PasswordCheckRequest(BaseModel):
    password: str


# ============================================================
# TEACHER SCHEMAS
# ============================================================

class TeacherCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=200)
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    years_experience: Optional[str] = None
    subjects: List[str] = []
    grade_levels: List[str] = []
    certifications: Optional[List[str]] = None
    archetype: Optional[str] = None
    archetype_tags: List[str] = []
    teaching_philosophy: Optional[str] = None


class TeacherUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    years_experience: Optional[str] = None
    subjects: Optional[List[str]] = None
    grade_levels: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    archetype: Optional[str] = None
    archetype_tags: Optional[List[str]] = None
    teaching_philosophy: Optional[str] = None


class TeacherResponse(BaseModel):
    id: int
    user_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    years_experience: Optional[str] = None
    subjects: List[str] = []
    grade_levels: List[str] = []
    certifications: Optional[List[str]] = None
    archetype: Optional[str] = None
    archetype_tags: List[str] = []
    teaching_philosophy: Optional[str] = None
    resume_url: Optional[str] = None
    profile_photo_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    profile_complete: bool = False
    created_at: datetime


class PublicTeacherResponse(BaseModel):
    id: int
    full_name: str
    location: Optional[str] = None
    bio: Optional[str] = None
    years_experience: Optional[str] = None
    subjects: List[str] = []
    grade_levels: List[str] = []
    certifications: Optional[List[str]] = None
    archetype: Optional[str] = None
    teaching_philosophy: Optional[str] = None
    profile_photo_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class ProfileCompletionResponse(BaseModel):
    percentage: int
    missing_fields: List[str]
    is_complete: bool


class UploadResponse(BaseModel):
    kind: str
    url: str
    filename: str
    size_bytes: int


# ============================================================
# SCHOOL SCHEMAS
# ============================================================

class SchoolCreate(BaseModel):
    school_name: str = Field(..., min_length=2, max_length=200)
    school_type: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None


class SchoolUpdate(BaseModel):
    school_name: Optional[str] = Field(None, min_length=2, max_length=200)
    school_type: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None


class SchoolResponse(BaseModel):
    id: int
    user_id: int
    school_name: str
    school_type: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    profile_complete: bool = False
    approval_status: str
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class SchoolRejectRequest(BaseModel):
    reason: str = Field(..., min_length=3)
    verification_notes: Optional[str] = None


class SchoolApproveRequest(BaseModel):
    verification_notes: Optional[str] = None


class UserActiveUpdate(BaseModel):
    is_active: bool


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    department: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    job_type: JobType = JobType.full_time
    location: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    archetype_tags: List[str] = []
    application_requirements: Dict[str, bool] = {}


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    department: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    job_type: Optional[JobType] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    archetype_tags: Optional[List[str]] = None
    application_requirements: Optional[Dict[str, bool]] = None
    is_active: Optional[bool] = None


class JobResponse(BaseModel):
    id: int
    school_id: int
    school_name: str
    school_logo: Optional[str] = None
    title: str
    department: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    job_type: str
    location: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    archetype_tags: List[str] = []
    application_requirements: Dict[str, bool] = {}
    is_active: bool
    posted_at: datetime


class JobCreatedResponse(JobResponse):
    matched_teachers: int = 0


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    page_size: int


class SavedJobResponse(BaseModel):
    id: int
    job: JobResponse
    created_at: datetime


# ============================================================
# MATCHING SCHEMAS
# ============================================================

class CandidateMatchResponse(BaseModel):
    id: int
    job_id: int
    teacher_id: int
    match_score: float
    match_reason: Optional[str] = None
    status: str
    school_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    job_title: str
    school_name: str
    job_subject: Optional[str] = None
    job_grade_level: Optional[str] = None
    job_location: Optional[str] = None
    teacher_name: str
    teacher_email: str
    teacher_archetype: Optional[str] = None
    teacher_subjects: List[str] = []
    teacher_grade_levels: List[str] = []
    years_experience: Optional[str] = None
    teacher_location: Optional[str] = None
    profile_photo_url: Optional[str] = None
    resume_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class TeacherJobMatchResponse(BaseModel):
    id: int
    teacher_id: int
    job_id: int
    match_score: float
    match_reason: Optional[str] = None
    is_favorited: bool
    is_hidden: bool
    created_at: datetime
    job: JobResponse


class CandidateStatusUpdate(BaseModel):
    status: CandidateStatus
    notes: Optional[str] = None


class TeacherJobMatchUpdate(BaseModel):
    is_favorited: Optional[bool] = None
    is_hidden: Optional[bool] = None


class MatchRunResponse(BaseModel):
    matched: int
    message: str


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    cover_letter: Optional[str] = None
    desired_salary: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = None


class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    teacher_id: int
    teacher_name: str
    job_title: str
    school_name: str
    status: str
    cover_letter: Optional[str] = None
    desired_salary: Optional[str] = None
    school_notes: Optional[str] = None
    applied_at: datetime
    updated_at: datetime
    interview_scheduled_at: Optional[datetime] = None
    offer_made_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None


class ApplicationStatsResponse(BaseModel):
    total: int
    pending: int
    under_review: int
    interview_scheduled: int
    offer_made: int
    rejected: int
    withdrawn: int
    this_week: int


class TimelineStep(BaseModel):
    status: str
    label: str
    description: str
    state: str  # completed | current | upcoming


class StatusHistoryEntry(BaseModel):
    old_status: Optional[str] = None
    new_status: str
    note: Optional[str] = None
    changed_at: datetime


class ApplicationTimelineResponse(BaseModel):
    application_id: int
    current_status: str
    current_label: str
    steps: List[TimelineStep]
    next_steps: List[TimelineStep]
    history: List[StatusHistoryEntry]


# ============================================================
# PIPELINE SCHEMAS
# ============================================================

class PipelineStageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    job_id: Optional[int] = None
    order_index: Optional[int] = Field(None, ge=0)


class PipelineStageResponse(BaseModel):
    id: int
    school_id: int
    job_id: Optional[int] = None
    name: str
    order_index: int
    type: str
    created_at: datetime


class StageReorderRequest(BaseModel):
    stage_ids: List[int] = Field(..., min_length=1)


# ============================================================
# OFFER SCHEMAS
# ============================================================

class OfferCreate(BaseModel):
    application_id: int
    status: OfferStatus = OfferStatus.draft
    salary_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    benefits_summary: Optional[str] = None
    additional_terms: Optional[str] = None
    expiration_date: Optional[datetime] = None
    offer_letter_url: Optional[str] = None


class OfferUpdate(BaseModel):
    status: Optional[OfferStatus] = None
    salary_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    benefits_summary: Optional[str] = None
    additional_terms: Optional[str] = None
    expiration_date: Optional[datetime] = None
    offer_letter_url: Optional[str] = None


class OfferRespondRequest(BaseModel):
    status: OfferResponseStatus


class OfferResponse(BaseModel):
    id: int
    application_id: int
    created_by: int
    status: str
    display_status: str
    display_label: str
    salary_amount: Optional[float] = None
    start_date: Optional[datetime] = None
    benefits_summary: Optional[str] = None
    additional_terms: Optional[str] = None
    expiration_date: Optional[datetime] = None
    offer_letter_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    job_id: Optional[int] = None
    job_title: Optional[str] = None
    teacher_name: Optional[str] = None


# ============================================================
# INTERVIEW SCHEMAS
# ============================================================

class InterviewInviteCreate(BaseModel):
    application_id: int
    scheduled_at: datetime
    duration_minutes: int = Field(30, ge=5, le=480)
    interview_type: InterviewType = InterviewType.video
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None


class InterviewRespondRequest(BaseModel):
    teacher_notes: Optional[str] = None


class InterviewInviteResponse(BaseModel):
    id: int
    application_id: int
    teacher_id: int
    school_id: int
    job_id: int
    scheduled_at: datetime
    duration_minutes: int
    interview_type: str
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    status: str
    teacher_response_at: Optional[datetime] = None
    teacher_notes: Optional[str] = None
    created_at: datetime
    job_title: Optional[str] = None
    school_name: Optional[str] = None
    teacher_name: Optional[str] = None


# ============================================================
# MESSAGING SCHEMAS
# ============================================================

class ConversationCreate(BaseModel):
    teacher_id: Optional[int] = None
    school_id: Optional[int] = None
    job_id: Optional[int] = None


class ConversationResponse(BaseModel):
    id: int
    teacher_id: int
    school_id: int
    job_id: Optional[int] = None
    last_message_at: datetime
    created_at: datetime
    teacher_name: Optional[str] = None
    school_name: Optional[str] = None
    unread_count: int = 0


class ConversationOpenResponse(BaseModel):
    conversation: ConversationResponse
    is_new: bool


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ChatMessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    sent_at: datetime
    is_read: bool


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    link_url: Optional[str] = None
    link_text: Optional[str] = None
    icon: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    metadata: Dict[str, Any] = {}


class UnreadCountResponse(BaseModel):
    unread: int


class NotificationPreferences(BaseModel):
    email_application_updates: bool = True
    email_new_matches: bool = True
    email_messages: bool = True


class NotificationPreferencesUpdate(BaseModel):
    email_application_updates: Optional[bool] = None
    email_new_matches: Optional[bool] = None
    email_messages: Optional[bool] = None


# ============================================================
# EMAIL SCHEMAS
# ============================================================

class SendEmailRequest(BaseModel):
    to: List[EmailStr] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    html: str = Field(..., min_length=1)
    text: Optional[str] = None
    reply_to: Optional[EmailStr] = None
    tags: List[Dict[str, str]] = []


class SendEmailResponse(BaseModel):
    success: bool
    message_id: Optional[str] = None


class EmailTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(..., min_length=1, max_length=300)
    body: str = Field(..., min_length=1)
    category: Optional[TemplateCategory] = None
    is_default: bool = False


class EmailTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    subject: Optional[str] = Field(None, min_length=1, max_length=300)
    body: Optional[str] = Field(None, min_length=1)
    category: Optional[TemplateCategory] = None
    is_default: Optional[bool] = None


class EmailTemplateResponse(BaseModel):
    id: int
    school_id: int
    name: str
    subject: str
    body: str
    category: Optional[str] = None
    is_default: bool
    variables: List[str] = []
    created_at: datetime
    updated_at: datetime


class TemplatePreviewResponse(BaseModel):
    subject: str
    body: str


# ============================================================
# SEARCH SCHEMAS
# ============================================================

class JobFilters(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject: Optional[str] = None
    grade_level: Optional[str] = None
    job_type: Optional[str] = None
    location: Optional[str] = None
    archetype: Optional[str] = None


class SavedSearchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    search_query: Optional[str] = None
    filters: JobFilters = JobFilters()
    notify_on_match: bool = True


class SavedSearchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    search_query: Optional[str] = None
    filters: Optional[JobFilters] = None
    notify_on_match: Optional[bool] = None


class SavedSearchResponse(BaseModel):
    id: int
    user_id: int
    name: str
    search_query: Optional[str] = None
    filters: Dict[str, Any] = {}
    is_active: bool
    notify_on_match: bool
    last_checked_at: datetime
    created_at: datetime
    updated_at: datetime


class SearchHistoryResponse(BaseModel):
    id: int
    user_id: int
    search_query: Optional[str] = None
    filters: Dict[str, Any] = {}
    result_count: int
    searched_at: datetime


# ============================================================
# REVIEW SCHEMAS
# ============================================================

class ReviewCreate(BaseModel):
    reviewee_id: int
    review_type: ReviewType
    rating: int = Field(..., ge=1, le=5)
    job_id: Optional[int] = None
    interview_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=200)
    comment: str = Field(..., min_length=1)
    categories: Dict[str, int] = {}
    is_anonymous: bool = False

    @field_validator("categories")
    @classmethod
    def categories_are_star_ratings(cls, v: Dict[str, int]) -> Dict[str, int]:
        for name, score in v.items():
            if not 1 <= score <= 5:
                raise ValueError(f"Category '{name}' must be rated 1 to 5")
        return v


class ReviewResponse(BaseModel):
    id: int
    reviewer_id: Optional[int] = None
    reviewer_name: Optional[str] = None
    reviewee_id: int
    review_type: str
    job_id: Optional[int] = None
    interview_id: Optional[int] = None
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    categories: Dict[str, int] = {}
    is_anonymous: bool
    is_verified: bool
    created_at: datetime


class RatingSummaryResponse(BaseModel):
    average_rating: float
    total_reviews: int


class CanReviewResponse(BaseModel):
    can_review: bool


# ============================================================
# ANALYTICS SCHEMAS
# ============================================================

class TimeToHireMetric(BaseModel):
    job_id: int
    job_title: str
    days_to_hire: int
    posted_at: datetime
    hired_at: datetime


class ConversionRates(BaseModel):
    application_to_interview: float
    interview_to_offer: float
    offer_to_acceptance: float
    overall_conversion: float


class ConversionMetricsResponse(BaseModel):
    total_applications: int
    interviewed: int
    offers_extended: int
    offers_accepted: int
    conversion_rate: ConversionRates


class AnalyticsOverviewResponse(BaseModel):
    total_jobs: int
    active_jobs: int
    total_applications: int
    avg_time_to_hire: int
    offer_acceptance_rate: int


class JobFunnelResponse(BaseModel):
    job_id: int
    candidates_by_status: Dict[str, int]
    applications_by_status: Dict[str, int]


class AdminOverviewResponse(BaseModel):
    users_by_role: Dict[str, int]
    schools_pending_approval: int
    active_jobs: int
    total_applications: int


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    detail: str
