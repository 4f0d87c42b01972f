"""Initial schema: accounts, profiles, jobs, applications, messaging, billing.

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), primary_key=True)


def _created() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=True)


def _updated() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(), nullable=True)


def upgrade() -> None:
    # --- Accounts ---
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="CANDIDATE"),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        _created(),
        _updated(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "refresh_tokens",
        _id(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("revoked", sa.Boolean(), server_default=sa.false()),
        _created(),
    )
    op.create_index("ix_refresh_tokens_token", "refresh_tokens", ["token"], unique=True)

    op.create_table(
        "audit_log",
        _id(),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("target_type", sa.String()),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        _created(),
    )
    op.create_index("ix_audit_log_actor_user_id", "audit_log", ["actor_user_id"])
    op.create_index("ix_audit_log_action_type", "audit_log", ["action_type"])
    op.create_index("ix_audit_log_target_id", "audit_log", ["target_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])

    # --- Profiles ---
    op.create_table(
        "candidate_profiles",
        _id(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("full_name", sa.String(), nullable=False, server_default=""),
        sa.Column("current_title", sa.String()),
        sa.Column("current_org", sa.String()),
        sa.Column("primary_location", sa.String()),
        sa.Column("willing_to_relocate", sa.Boolean(), server_default=sa.false()),
        sa.Column("relocation_regions_json", sa.Text()),
        sa.Column("preferred_settings_json", sa.Text()),
        sa.Column("preferred_employment_type", sa.String()),
        sa.Column("target_levels_json", sa.Text()),
        sa.Column("budget_managed_min", sa.Integer()),
        sa.Column("budget_managed_max", sa.Integer()),
        sa.Column("team_size_min", sa.Integer()),
        sa.Column("team_size_max", sa.Integer()),
        sa.Column("primary_service_lines_json", sa.Text()),
        sa.Column("ehr_experience_json", sa.Text()),
        sa.Column("regulatory_experience_json", sa.Text()),
        sa.Column("summary", sa.Text()),
        sa.Column("ai_summary", sa.Text()),
        _created(),
        _updated(),
    )

    op.create_table(
        "employer_profiles",
        _id(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("org_name", sa.String(), nullable=False, server_default=""),
        sa.Column("org_type", sa.String(), nullable=False, server_default="OTHER"),
        sa.Column("hq_location", sa.String()),
        sa.Column("website", sa.String()),
        sa.Column("about", sa.Text()),
        sa.Column("admin_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_by_admin_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _created(),
        _updated(),
    )

    # --- Jobs ---
    op.create_table(
        "tiers",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(), server_default="usd"),
        sa.Column("duration_days", sa.Integer(), server_default="30"),
        sa.Column("is_featured", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_premium", sa.Boolean(), server_default=sa.false()),
        sa.Column("active", sa.Boolean(), server_default=sa.true()),
        sa.Column("stripe_price_id", sa.String()),
    )

    op.create_table(
        "jobs",
        _id(),
        sa.Column("employer_id", sa.Integer(), sa.ForeignKey("employer_profiles.id"), nullable=False),
        sa.Column("tier_id", sa.Integer(), sa.ForeignKey("tiers.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("org_name_override", sa.String()),
        sa.Column("level", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=False),
        sa.Column("remote_allowed", sa.Boolean(), server_default=sa.false()),
        sa.Column("compensation_min", sa.Integer()),
        sa.Column("compensation_max", sa.Integer()),
        sa.Column("compensation_currency", sa.String(), server_default="USD"),
        sa.Column("description_rich", sa.Text(), nullable=False),
        sa.Column("key_responsibilities_json", sa.Text()),
        sa.Column("required_licenses_json", sa.Text()),
        sa.Column("required_certifications_json", sa.Text()),
        sa.Column("required_ehr_experience_json", sa.Text()),
        sa.Column("required_setting_experience_json", sa.Text()),
        sa.Column("required_experience_years", sa.Integer()),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING_ADMIN_REVIEW"),
        sa.Column("published_at", sa.DateTime()),
        _created(),
        _updated(),
    )
    op.create_index("ix_jobs_employer_id", "jobs", ["employer_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])
    op.create_index("ix_jobs_created_at", "jobs", ["created_at"])

    op.create_table(
        "resumes",
        _id(),
        sa.Column("candidate_id", sa.Integer(), sa.ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_mime_type", sa.String()),
        sa.Column("file_size", sa.Integer()),
        sa.Column("is_primary", sa.Boolean(), server_default=sa.false()),
        sa.Column("parsed_text", sa.Text()),
        sa.Column("uploaded_at", sa.DateTime()),
    )
    op.create_index("ix_resumes_candidate_id", "resumes", ["candidate_id"])

    op.create_table(
        "applications",
        _id(),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("candidate_id", sa.Integer(), sa.ForeignKey("candidate_profiles.id"), nullable=False),
        sa.Column("resume_id", sa.Integer(), sa.ForeignKey("resumes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("candidate_note", sa.Text()),
        sa.Column("status", sa.String(), nullable=False, server_default="SUBMITTED"),
        _created(),
        _updated(),
        sa.UniqueConstraint("job_id", "candidate_id", name="uix_application_job_candidate"),
    )
    op.create_index("ix_applications_job_id", "applications", ["job_id"])
    op.create_index("ix_applications_candidate_id", "applications", ["candidate_id"])

    op.create_table(
        "job_matches",
        _id(),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("candidate_id", sa.Integer(), sa.ForeignKey("candidate_profiles.id"), nullable=False),
        sa.Column("match_score", sa.Float(), server_default="0"),
        sa.Column("matching_factors_json", sa.Text()),
        sa.Column("missing_requirements_json", sa.Text()),
        sa.Column("recommendation", sa.Text()),
        sa.Column("applied", sa.Boolean(), server_default=sa.false()),
        _created(),
        sa.UniqueConstraint("job_id", "candidate_id", name="uix_match_job_candidate"),
    )

    op.create_table(
        "saved_jobs",
        _id(),
        sa.Column("candidate_id", sa.Integer(), sa.ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        _created(),
        sa.UniqueConstraint("candidate_id", "job_id", name="uix_saved_candidate_job"),
    )

    # --- Messaging ---
    op.create_table(
        "messages",
        _id(),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("applications.id"), nullable=True),
        sa.Column("parent_message_id", sa.Integer(), sa.ForeignKey("messages.id"), nullable=True),
        sa.Column("message_type", sa.String(), nullable=False),
        sa.Column("subject", sa.String()),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.false()),
        sa.Column("read_at", sa.DateTime()),
        _created(),
    )
    op.create_index("ix_messages_recipient_id", "messages", ["recipient_id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])

    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link_url", sa.String()),
        sa.Column("metadata_json", sa.Text()),
        sa.Column("read", sa.Boolean(), server_default=sa.false()),
        sa.Column("read_at", sa.DateTime()),
        _created(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "interviews",
        _id(),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String()),
        sa.Column("meeting_url", sa.String()),
        sa.Column("duration_minutes", sa.Integer(), server_default="60"),
        sa.Column("interviewer_name", sa.String()),
        sa.Column("interviewer_email", sa.String()),
        sa.Column("notes", sa.Text()),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        _created(),
        _updated(),
    )
    op.create_index("ix_interviews_application_id", "interviews", ["application_id"])

    # --- Billing ---
    op.create_table(
        "job_payments",
        _id(),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("employer_id", sa.Integer(), sa.ForeignKey("employer_profiles.id"), nullable=False),
        sa.Column("tier_id", sa.Integer(), sa.ForeignKey("tiers.id"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(), server_default="usd"),
        sa.Column("stripe_payment_intent_id", sa.String()),
        sa.Column("stripe_charge_id", sa.String()),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("paid_at", sa.DateTime()),
        _created(),
    )
    op.create_index("ix_job_payments_job_id", "job_payments", ["job_id"])
    op.create_index(
        "ix_job_payments_stripe_payment_intent_id", "job_payments", ["stripe_payment_intent_id"], unique=True
    )

    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("employer_id", sa.Integer(), sa.ForeignKey("employer_profiles.id"), nullable=False),
        sa.Column("tier_id", sa.Integer(), sa.ForeignKey("tiers.id"), nullable=False),
        sa.Column("stripe_subscription_id", sa.String()),
        sa.Column("stripe_customer_id", sa.String()),
        sa.Column("status", sa.String(), nullable=False, server_default="ACTIVE"),
        sa.Column("billing_interval", sa.String(), server_default="month"),
        sa.Column("current_period_start", sa.DateTime()),
        sa.Column("current_period_end", sa.DateTime()),
        sa.Column("cancel_at_period_end", sa.Boolean(), server_default=sa.false()),
        sa.Column("cancelled_at", sa.DateTime()),
        _created(),
        _updated(),
    )
    op.create_index("ix_subscriptions_employer_id", "subscriptions", ["employer_id"])
    op.create_index(
        "ix_subscriptions_stripe_subscription_id", "subscriptions", ["stripe_subscription_id"], unique=True
    )


def downgrade() -> None:
    for table in (
        "subscriptions",
        "job_payments",
        "interviews",
        "notifications",
        "messages",
        "saved_jobs",
        "job_matches",
        "applications",
        "resumes",
        "jobs",
        "tiers",
        "employer_profiles",
        "candidate_profiles",
        "audit_log",
        "refresh_tokens",
        "users",
    ):
        op.drop_table(table)
