"""
ExecBoard - SQLAlchemy ORM models

Profiles, job postings, applications, messaging, notifications, interviews,
resumes, and billing records. Account and audit models live in app.auth.models.

Enum-like columns are plain strings; the allowed values are listed next to
each column and enforced by the request schemas in app.schemas.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class CandidateProfile(Base):
    __tablename__ = "candidate_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    full_name = Column(String, nullable=False, default="")
    current_title = Column(String)
    current_org = Column(String)
    primary_location = Column(String)
    willing_to_relocate = Column(Boolean, default=False)
    relocation_regions_json = Column(Text, default="[]")
    preferred_settings_json = Column(Text, default="[]")
    preferred_employment_type = Column(String)
    target_levels_json = Column(Text, default="[]")
    budget_managed_min = Column(Integer)
    budget_managed_max = Column(Integer)
    team_size_min = Column(Integer)
    team_size_max = Column(Integer)
    primary_service_lines_json = Column(Text, default="[]")
    ehr_experience_json = Column(Text, default="[]")
    regulatory_experience_json = Column(Text, default="[]")
    summary = Column(Text)
    ai_summary = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="candidate_profile")
    applications = relationship("Application", back_populates="candidate")
    resumes = relationship("Resume", back_populates="candidate", cascade="all, delete-orphan")


class EmployerProfile(Base):
    __tablename__ = "employer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    org_name = Column(String, nullable=False, default="")
    org_type = Column(String, nullable=False, default="OTHER")  # HOSPITAL, HEALTH_SYSTEM, CLINIC, PAYER, OTHER...
    hq_location = Column(String)
    website = Column(String)
    about = Column(Text)
    admin_approved = Column(Boolean, default=False, nullable=False)
    approved_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="employer_profile", foreign_keys=[user_id])
    jobs = relationship("Job", back_populates="employer")


class Tier(Base):
    """Posting package an employer pays for."""
    __tablename__ = "tiers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String, default="usd")
    duration_days = Column(Integer, default=30)
    is_featured = Column(Boolean, default=False)
    is_premium = Column(Boolean, default=False)
    active = Column(Boolean, default=True)
    stripe_price_id = Column(String)  # recurring price, used by subscriptions


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, ForeignKey("employer_profiles.id"), nullable=False, index=True)
    tier_id = Column(Integer, ForeignKey("tiers.id"), nullable=False)
    title = Column(String, nullable=False)
    org_name_override = Column(String)
    level = Column(String, nullable=False)  # C_SUITE, VP, DIRECTOR, MANAGER, OTHER_EXECUTIVE
    location = Column(String, nullable=False)
    remote_allowed = Column(Boolean, default=False)
    compensation_min = Column(Integer)
    compensation_max = Column(Integer)
    compensation_currency = Column(String, default="USD")
    description_rich = Column(Text, nullable=False)
    key_responsibilities_json = Column(Text)
    required_licenses_json = Column(Text)
    required_certifications_json = Column(Text)
    required_ehr_experience_json = Column(Text)
    required_setting_experience_json = Column(Text)
    required_experience_years = Column(Integer)
    # DRAFT, PENDING_PAYMENT, PENDING_ADMIN_REVIEW, LIVE, SUSPENDED, EXPIRED
    status = Column(String, nullable=False, default="PENDING_ADMIN_REVIEW", index=True)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    employer = relationship("EmployerProfile", back_populates="jobs")
    tier = relationship("Tier")
    applications = relationship("Application", back_populates="job")
    payments = relationship("JobPayment", back_populates="job")


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    file_url = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    file_mime_type = Column(String)
    file_size = Column(Integer)
    is_primary = Column(Boolean, default=False)
    parsed_text = Column(Text)
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    candidate = relationship("CandidateProfile", back_populates="resumes")


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id"), nullable=False, index=True)
    resume_id = Column(Integer, ForeignKey("resumes.id", ondelete="SET NULL"), nullable=True)
    candidate_note = Column(Text)
    # SUBMITTED, UNDER_REVIEW, INTERVIEW, OFFER, HIRED, REJECTED, WITHDRAWN
    status = Column(String, nullable=False, default="SUBMITTED")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    job = relationship("Job", back_populates="applications")
    candidate = relationship("CandidateProfile", back_populates="applications")
    resume = relationship("Resume")
    interviews = relationship("Interview", back_populates="application")

    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="uix_application_job_candidate"),
    )


class JobMatch(Base):
    """AI match score between a candidate and a job."""
    __tablename__ = "job_matches"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id"), nullable=False, index=True)
    match_score = Column(Float, default=0)
    matching_factors_json = Column(Text)
    missing_requirements_json = Column(Text)
    recommendation = Column(Text)
    applied = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="uix_match_job_candidate"),
    )


class SavedJob(Base):
    __tablename__ = "saved_jobs"

    id = Column(Integer, primary_key=True, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("Job")

    __table_args__ = (
        UniqueConstraint("candidate_id", "job_id", name="uix_saved_candidate_job"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=True)
    parent_message_id = Column(Integer, ForeignKey("messages.id"), nullable=True)
    # APPLICATION_INQUIRY, GENERAL_INQUIRY, INTERVIEW_FOLLOWUP, OFFER_DISCUSSION
    message_type = Column(String, nullable=False)
    subject = Column(String)
    body = Column(Text, nullable=False)
    read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    parent = relationship("Message", remote_side=[id], back_populates="replies")
    replies = relationship("Message", back_populates="parent", order_by="Message.created_at")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # JOB_APPROVED, NEW_MESSAGE, ... see services.notifications
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link_url = Column(String)
    metadata_json = Column(Text)
    read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    scheduled_at = Column(DateTime, nullable=False)
    location = Column(String)
    meeting_url = Column(String)
    duration_minutes = Column(Integer, default=60)
    interviewer_name = Column(String)
    interviewer_email = Column(String)
    notes = Column(Text)
    # SCHEDULED, CONFIRMED, COMPLETED, CANCELLED, RESCHEDULED, NO_SHOW
    status = Column(String, nullable=False, default="SCHEDULED")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    application = relationship("Application", back_populates="interviews")


class JobPayment(Base):
    __tablename__ = "job_payments"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    employer_id = Column(Integer, ForeignKey("employer_profiles.id"), nullable=False)
    tier_id = Column(Integer, ForeignKey("tiers.id"), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String, default="usd")
    stripe_payment_intent_id = Column(String, unique=True, index=True)
    stripe_charge_id = Column(String)
    status = Column(String, nullable=False, default="pending")  # pending, paid, failed
    paid_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("Job", back_populates="payments")


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, ForeignKey("employer_profiles.id"), nullable=False, index=True)
    tier_id = Column(Integer, ForeignKey("tiers.id"), nullable=False)
    stripe_subscription_id = Column(String, unique=True, index=True)
    stripe_customer_id = Column(String)
    status = Column(String, nullable=False, default="ACTIVE")  # ACTIVE, PAST_DUE, CANCELLED
    billing_interval = Column(String, default="month")
    current_period_start = Column(DateTime)
    current_period_end = Column(DateTime)
    cancel_at_period_end = Column(Boolean, default=False)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tier = relationship("Tier")
