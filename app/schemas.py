"""
ExecBoard - Pydantic schemas for request/response validation.

Defines data models for API request bodies, query strings and responses,
including validation rules and serialization configuration. Free-text
fields are passed through sanitize_plain_text before they reach a handler.
"""
from pydantic import BaseModel, Field, field_validator, model_validator, EmailStr
from datetime import datetime
from typing import Optional, List
from enum import Enum
import json
import re

from .auth.schemas import UserRole, UserStatus
from .security import sanitize_optional, sanitize_plain_text


# --- Enums for validated fields ---

class JobLevel(str, Enum):
    C_SUITE = "C_SUITE"
    VP = "VP"
    DIRECTOR = "DIRECTOR"
    MANAGER = "MANAGER"
    OTHER_EXECUTIVE = "OTHER_EXECUTIVE"


class JobStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PENDING_ADMIN_REVIEW = "PENDING_ADMIN_REVIEW"
    LIVE = "LIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"


class ApplicationStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    INTERVIEW = "INTERVIEW"
    OFFER = "OFFER"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class EmployerApplicationStatus(str, Enum):
    """Statuses an employer may set; WITHDRAWN belongs to the candidate."""
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    INTERVIEW = "INTERVIEW"
    OFFER = "OFFER"
    HIRED = "HIRED"
    REJECTED = "REJECTED"


class MessageType(str, Enum):
    APPLICATION_INQUIRY = "APPLICATION_INQUIRY"
    GENERAL_INQUIRY = "GENERAL_INQUIRY"
    INTERVIEW_FOLLOWUP = "INTERVIEW_FOLLOWUP"
    OFFER_DISCUSSION = "OFFER_DISCUSSION"


class MessageFolder(str, Enum):
    INBOX = "inbox"
    SENT = "sent"


class NotificationType(str, Enum):
    APPLICATION_RECEIVED = "APPLICATION_RECEIVED"
    APPLICATION_STATUS_CHANGED = "APPLICATION_STATUS_CHANGED"
    JOB_APPROVED = "JOB_APPROVED"
    JOB_REJECTED = "JOB_REJECTED"
    EMPLOYER_APPROVED = "EMPLOYER_APPROVED"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    NEW_MESSAGE = "NEW_MESSAGE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"


class InterviewStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"
    NO_SHOW = "NO_SHOW"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"


# --- Helper validators ---

def validate_url(url: Optional[str]) -> Optional[str]:
    """Validate URL format if provided."""
    if url is None or url.strip() == "":
        return None
    url = url.strip()
    url_pattern = re.compile(
        r'^https?://'  # http:// or https://
        r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,63}\.?|'  # domain
        r'localhost|'  # localhost
        r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # or IP
        r'(?::\d+)?'  # optional port
        r'(?:/?|[/?]\S+)$', re.IGNORECASE)
    if not url_pattern.match(url):
        raise ValueError('Invalid URL format')
    return url


def clean_text(value: Optional[str], max_len: int) -> Optional[str]:
    """Sanitize optional free text; blank becomes None."""
    return sanitize_optional(value, max_len)


def clean_required(value: str, max_len: int) -> str:
    cleaned = sanitize_plain_text(value, max_len)
    if not cleaned:
        raise ValueError('must not be empty')
    return cleaned


def clean_json_text(value: Optional[str], max_len: int = 20000) -> Optional[str]:
    """Sanitize a JSON-encoded string field and make sure it still parses."""
    cleaned = sanitize_optional(value, max_len)
    if cleaned is None:
        return None
    try:
        json.loads(cleaned)
    except ValueError:
        raise ValueError('must be valid JSON')
    return cleaned


# --- Profile Schemas ---

CANDIDATE_JSON_FIELDS = (
    "relocation_regions_json", "preferred_settings_json",
    "primary_service_lines_json", "ehr_experience_json", "regulatory_experience_json",
)


class CandidateProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    current_title: Optional[str] = None
    current_org: Optional[str] = None
    primary_location: Optional[str] = None
    willing_to_relocate: Optional[bool] = None
    relocation_regions_json: Optional[str] = None
    preferred_settings_json: Optional[str] = None
    preferred_employment_type: Optional[str] = None
    target_levels_json: Optional[str] = None
    budget_managed_min: Optional[int] = Field(None, ge=0)
    budget_managed_max: Optional[int] = Field(None, ge=0)
    team_size_min: Optional[int] = Field(None, ge=0)
    team_size_max: Optional[int] = Field(None, ge=0)
    primary_service_lines_json: Optional[str] = None
    ehr_experience_json: Optional[str] = None
    regulatory_experience_json: Optional[str] = None
    summary: Optional[str] = None

    @field_validator('full_name', 'current_title', 'current_org', 'primary_location', 'preferred_employment_type')
    @classmethod
    def clean_short_text(cls, v):
        return clean_text(v, 120)

    @field_validator('target_levels_json')
    @classmethod
    def clean_target_levels(cls, v):
        return clean_json_text(v, 10000)

    @field_validator(*CANDIDATE_JSON_FIELDS)
    @classmethod
    def clean_json_fields(cls, v):
        return clean_json_text(v)

    @field_validator('summary')
    @classmethod
    def clean_summary(cls, v):
        return clean_text(v, 20000)


class EmployerProfileUpdate(BaseModel):
    org_name: Optional[str] = None
    org_type: Optional[str] = None
    hq_location: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    about: Optional[str] = None

    @field_validator('org_name', 'hq_location')
    @classmethod
    def clean_names(cls, v):
        return clean_text(v, 200)

    @field_validator('org_type')
    @classmethod
    def clean_org_type(cls, v):
        return clean_text(v, 80)

    @field_validator('website')
    @classmethod
    def validate_website(cls, v):
        return validate_url(v)

    @field_validator('about')
    @classmethod
    def clean_about(cls, v):
        return clean_text(v, 20000)


class CandidateProfileResponse(BaseModel):
    id: int
    user_id: int
    full_name: str
    current_title: Optional[str] = None
    current_org: Optional[str] = None
    primary_location: Optional[str] = None
    willing_to_relocate: Optional[bool] = None
    relocation_regions_json: Optional[str] = None
    preferred_settings_json: Optional[str] = None
    preferred_employment_type: Optional[str] = None
    target_levels_json: Optional[str] = None
    budget_managed_min: Optional[int] = None
    budget_managed_max: Optional[int] = None
    team_size_min: Optional[int] = None
    team_size_max: Optional[int] = None
    primary_service_lines_json: Optional[str] = None
    ehr_experience_json: Optional[str] = None
    regulatory_experience_json: Optional[str] = None
    summary: Optional[str] = None
    ai_summary: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EmployerProfileResponse(BaseModel):
    id: int
    user_id: int
    org_name: str
    org_type: str
    hq_location: Optional[str] = None
    website: Optional[str] = None
    about: Optional[str] = None
    admin_approved: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Tier & Job Schemas ---

class TierResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price_cents: int
    currency: str
    duration_days: int
    is_featured: bool
    is_premium: bool

    class Config:
        from_attributes = True


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1)
    level: JobLevel
    org_name_override: Optional[str] = None
    location: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = None
    remote_allowed: bool = False
    compensation_min: Optional[int] = Field(None, ge=0)
    compensation_max: Optional[int] = Field(None, ge=0)
    compensation_currency: str = Field("USD", min_length=3, max_length=3)
    description_rich: str = Field(..., min_length=1)
    key_responsibilities_json: Optional[str] = None
    required_licenses_json: Optional[str] = None
    required_certifications_json: Optional[str] = None
    required_ehr_experience_json: Optional[str] = None
    required_setting_experience_json: Optional[str] = None
    required_experience_years: Optional[int] = Field(None, ge=0, le=60)
    tier_id: int

    @field_validator('title')
    @classmethod
    def clean_title(cls, v):
        return clean_required(v, 120)

    @field_validator('org_name_override')
    @classmethod
    def clean_org_name(cls, v):
        return clean_text(v, 200)

    @field_validator('location', 'location_city', 'location_state', 'location_country')
    @classmethod
    def clean_location(cls, v):
        return clean_text(v, 120)

    @field_validator('description_rich')
    @classmethod
    def clean_description(cls, v):
        return clean_required(v, 50000)

    @field_validator(
        'key_responsibilities_json', 'required_licenses_json', 'required_certifications_json',
        'required_ehr_experience_json', 'required_setting_experience_json',
    )
    @classmethod
    def clean_requirements(cls, v):
        return clean_json_text(v)

    @field_validator('compensation_currency')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()

    @model_validator(mode='after')
    def check_location_and_compensation(self):
        if not self.location:
            parts = [p for p in (self.location_city, self.location_state, self.location_country) if p]
            if not parts:
                raise ValueError('location is required')
            self.location = ", ".join(parts)[:120]
        if (
            self.compensation_min is not None
            and self.compensation_max is not None
            and self.compensation_min > self.compensation_max
        ):
            raise ValueError('compensation_min must not exceed compensation_max')
        return self


MAX_LIST_TAKE = 50


class JobListQuery(BaseModel):
    take: int = Field(20, ge=1, le=MAX_LIST_TAKE)


class JobSummary(BaseModel):
    id: int
    title: str
    org_name: Optional[str] = None
    level: str
    location: str
    remote_allowed: bool
    compensation_min: Optional[int] = None
    compensation_max: Optional[int] = None
    compensation_currency: Optional[str] = None
    status: str
    tier_id: int
    published_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class JobDetail(JobSummary):
    employer_id: int
    description_rich: str
    key_responsibilities_json: Optional[str] = None
    required_licenses_json: Optional[str] = None
    required_certifications_json: Optional[str] = None
    required_ehr_experience_json: Optional[str] = None
    required_setting_experience_json: Optional[str] = None
    required_experience_years: Optional[int] = None


# --- Application Schemas ---

class ApplicationCreate(BaseModel):
    job_id: int
    resume_id: Optional[int] = None
    candidate_note: Optional[str] = None

    @field_validator('candidate_note')
    @classmethod
    def clean_note(cls, v):
        return clean_text(v, 20000)


class ApplicationStatusUpdate(BaseModel):
    status: EmployerApplicationStatus


class ApplicationListQuery(BaseModel):
    status: Optional[ApplicationStatus] = None


class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    candidate_id: int
    resume_id: Optional[int] = None
    candidate_note: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Saved Job Schemas ---

class SavedJobCreate(BaseModel):
    job_id: int


class SavedJobQuery(BaseModel):
    job_id: Optional[int] = None


# --- Message Schemas ---

class MessageCreate(BaseModel):
    recipient_id: int
    application_id: Optional[int] = None
    parent_message_id: Optional[int] = None
    message_type: MessageType = MessageType.GENERAL_INQUIRY
    subject: Optional[str] = None
    body: str = Field(..., min_length=1)

    @field_validator('subject')
    @classmethod
    def clean_subject(cls, v):
        return clean_text(v, 200)

    @field_validator('body')
    @classmethod
    def clean_body(cls, v):
        return clean_required(v, 20000)


class MessageListQuery(BaseModel):
    folder: MessageFolder = MessageFolder.INBOX
    application_id: Optional[int] = None
    limit: int = Field(50, ge=1, le=100)


class MessageReadUpdate(BaseModel):
    read: bool


class MessageResponse(BaseModel):
    id: int
    sender_id: int
    recipient_id: int
    application_id: Optional[int] = None
    parent_message_id: Optional[int] = None
    message_type: str
    subject: Optional[str] = None
    body: str
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Notification Schemas ---

class NotificationListQuery(BaseModel):
    unread: Optional[bool] = None
    limit: int = Field(50, ge=1, le=100)


class NotificationUpdate(BaseModel):
    mark_all: Optional[bool] = None
    notification_id: Optional[int] = None


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    link_url: Optional[str] = None
    metadata_json: Optional[str] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Interview Schemas ---

class InterviewCreate(BaseModel):
    application_id: int
    scheduled_at: datetime
    location: Optional[str] = None
    meeting_url: Optional[str] = Field(None, max_length=500)
    duration_minutes: int = Field(60, ge=15, le=480)
    interviewer_name: Optional[str] = None
    interviewer_email: Optional[EmailStr] = None
    notes: Optional[str] = None

    @field_validator('location', 'interviewer_name')
    @classmethod
    def clean_short(cls, v):
        return clean_text(v, 200)

    @field_validator('meeting_url')
    @classmethod
    def validate_meeting_url(cls, v):
        return validate_url(v)

    @field_validator('notes')
    @classmethod
    def clean_notes(cls, v):
        return clean_text(v, 5000)


class InterviewUpdate(BaseModel):
    scheduled_at: Optional[datetime] = None
    location: Optional[str] = None
    meeting_url: Optional[str] = Field(None, max_length=500)
    duration_minutes: Optional[int] = Field(None, ge=15, le=480)
    interviewer_name: Optional[str] = None
    interviewer_email: Optional[EmailStr] = None
    notes: Optional[str] = None
    status: Optional[InterviewStatus] = None

    @field_validator('location', 'interviewer_name')
    @classmethod
    def clean_short(cls, v):
        return clean_text(v, 200)

    @field_validator('meeting_url')
    @classmethod
    def validate_meeting_url(cls, v):
        return validate_url(v)

    @field_validator('notes')
    @classmethod
    def clean_notes(cls, v):
        return clean_text(v, 5000)


class InterviewListQuery(BaseModel):
    application_id: Optional[int] = None
    upcoming: bool = False


class InterviewResponse(BaseModel):
    id: int
    application_id: int
    scheduled_at: datetime
    location: Optional[str] = None
    meeting_url: Optional[str] = None
    duration_minutes: int
    interviewer_name: Optional[str] = None
    interviewer_email: Optional[str] = None
    notes: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Resume Schemas ---

class ResumeUpdate(BaseModel):
    resume_id: int
    is_primary: bool


class ResumeResponse(BaseModel):
    id: int
    file_name: str
    file_mime_type: Optional[str] = None
    file_size: Optional[int] = None
    is_primary: bool
    uploaded_at: datetime

    class Config:
        from_attributes = True


# --- Admin Schemas ---

class AdminJobApprove(BaseModel):
    job_id: int


class AdminJobReject(BaseModel):
    job_id: int
    reason: Optional[str] = None

    @field_validator('reason')
    @classmethod
    def clean_reason(cls, v):
        return clean_text(v, 1000)


class AdminEmployerApprove(BaseModel):
    employer_id: int


class AdminUserUpdate(BaseModel):
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class AdminUserResponse(BaseModel):
    id: int
    email: str
    role: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: int
    actor_user_id: Optional[int] = None
    action_type: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    details_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- AI Schemas ---

class AnalyzeResumeRequest(BaseModel):
    resume_text: Optional[str] = Field(None, min_length=50, max_length=50000)
    resume_id: Optional[int] = None
    candidate_profile_id: Optional[int] = None

    @field_validator('resume_text')
    @classmethod
    def clean_resume_text(cls, v):
        return clean_text(v, 50000)


class MatchJobRequest(BaseModel):
    job_id: int
    limit: int = Field(10, ge=1, le=50)


class MatchCandidateRequest(BaseModel):
    candidate_profile_id: Optional[int] = None
    job_id: Optional[int] = None
    limit: int = Field(10, ge=1, le=50)


class GenerateJobDescriptionRequest(BaseModel):
    title: str = Field(..., min_length=1)
    level: JobLevel
    location: str = Field(..., min_length=1)
    remote_allowed: bool = False
    org_name: Optional[str] = None
    org_type: Optional[str] = None
    key_points: Optional[List[str]] = Field(None, max_length=20)

    @field_validator('title', 'location')
    @classmethod
    def clean_required_fields(cls, v):
        return clean_required(v, 120)

    @field_validator('org_name', 'org_type')
    @classmethod
    def clean_org(cls, v):
        return clean_text(v, 200)

    @field_validator('key_points')
    @classmethod
    def clean_points(cls, v):
        if v is None:
            return None
        return [p for p in (sanitize_optional(item, 500) for item in v) if p]


class InterviewQuestionsRequest(BaseModel):
    job_id: int
    candidate_profile_id: int
    question_count: int = Field(8, ge=1, le=20)


class ScreenApplicationRequest(BaseModel):
    candidate_profile_id: int
    job_id: int
    application_text: Optional[str] = None

    @field_validator('application_text')
    @classmethod
    def clean_application_text(cls, v):
        return clean_text(v, 20000)


class MarketInsightsRequest(BaseModel):
    org_type: Optional[str] = None
    job_level: Optional[JobLevel] = None
    location: Optional[str] = None

    @field_validator('org_type', 'location')
    @classmethod
    def clean_fields(cls, v):
        return clean_text(v, 120)


# --- Payment Schemas ---

class PaymentIntentCreate(BaseModel):
    job_id: int
    tier_id: int


class SubscriptionCreate(BaseModel):
    tier_id: int


class SubscriptionCancel(BaseModel):
    cancel_at_period_end: bool = True


class SubscriptionResponse(BaseModel):
    id: int
    tier_id: int
    stripe_subscription_id: Optional[str] = None
    status: str
    billing_interval: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
