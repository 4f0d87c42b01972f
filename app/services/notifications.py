"""
ExecBoard - In-app notifications.

Notifications are non-critical: create_notification runs after the primary
write has committed, never raises, and returns None when the insert fails.
Each notify_* helper also mirrors the notification by email through
FastAPI BackgroundTasks, so delivery happens after the response is sent
and a failed send is only logged.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.models import User
from ..models import Notification
from ..schemas import NotificationType
from .email_service import email_service

logger = logging.getLogger("execboard.notifications")


def create_notification(
    db: Session,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    """Insert a notification row; on failure roll back, log, and return None."""
    try:
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type).value,
            title=title,
            message=message,
            link_url=link_url,
            metadata_json=json.dumps(metadata, default=str) if metadata else None,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to create %s notification for user %s: %s", type, user_id, e)
        return None


def _notify(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Notification]:
    notification = create_notification(db, user_id, type, title, message, link_url, metadata)

    if background_tasks is not None:
        try:
            user = db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Could not look up user %s for %s email: %s", user_id, type, e)
            return notification
        if user:
            background_tasks.add_task(
                email_service.send_notification_email, user.email, title, message, link_url
            )
    return notification


# -----------------------------------------------------------------------------
# Domain events
# -----------------------------------------------------------------------------

def notify_application_received(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    employer_user_id: int,
    application_id: int,
    job_title: str,
    candidate_name: str,
):
    return _notify(
        db, background_tasks, employer_user_id,
        NotificationType.APPLICATION_RECEIVED,
        "New Application Received",
        f"{candidate_name} applied for {job_title}",
        "/dashboard/applications",
        {"applicationId": application_id, "jobTitle": job_title, "candidateName": candidate_name},
    )


def notify_application_status_changed(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    candidate_user_id: int,
    application_id: int,
    job_title: str,
    new_status: str,
):
    return _notify(
        db, background_tasks, candidate_user_id,
        NotificationType.APPLICATION_STATUS_CHANGED,
        "Application Status Updated",
        f"Your application for {job_title} is now {new_status}",
        "/dashboard/applications",
        {"applicationId": application_id, "jobTitle": job_title, "status": new_status},
    )


def notify_job_approved(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    employer_user_id: int,
    job_id: int,
    job_title: str,
):
    return _notify(
        db, background_tasks, employer_user_id,
        NotificationType.JOB_APPROVED,
        "Job Approved",
        f'Your job posting "{job_title}" has been approved and is now live',
        f"/dashboard/jobs/{job_id}",
        {"jobId": job_id, "jobTitle": job_title},
    )


def notify_job_rejected(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    employer_user_id: int,
    job_id: int,
    job_title: str,
    reason: Optional[str] = None,
):
    suffix = f": {reason}" if reason else ""
    return _notify(
        db, background_tasks, employer_user_id,
        NotificationType.JOB_REJECTED,
        "Job Rejected",
        f'Your job posting "{job_title}" was not approved{suffix}',
        f"/dashboard/jobs/{job_id}",
        {"jobId": job_id, "jobTitle": job_title, "reason": reason},
    )


def notify_employer_approved(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    employer_user_id: int,
):
    return _notify(
        db, background_tasks, employer_user_id,
        NotificationType.EMPLOYER_APPROVED,
        "Account Approved",
        "Your employer account has been approved. You can now post jobs!",
        "/dashboard/jobs/new",
    )


def notify_interview_scheduled(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    candidate_user_id: int,
    interview_id: int,
    job_title: str,
    scheduled_at: datetime,
):
    return _notify(
        db, background_tasks, candidate_user_id,
        NotificationType.INTERVIEW_SCHEDULED,
        "Interview Scheduled",
        f"An interview has been scheduled for {job_title} on {scheduled_at:%B %d, %Y}",
        "/dashboard/applications",
        {"interviewId": interview_id, "jobTitle": job_title, "scheduledAt": scheduled_at.isoformat()},
    )


def notify_new_message(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    recipient_user_id: int,
    message_id: int,
    sender_name: str,
    subject: Optional[str] = None,
):
    suffix = f": {subject}" if subject else ""
    return _notify(
        db, background_tasks, recipient_user_id,
        NotificationType.NEW_MESSAGE,
        "New Message",
        f"You received a message from {sender_name}{suffix}",
        "/dashboard/messages",
        {"messageId": message_id, "senderName": sender_name, "subject": subject},
    )


def notify_payment_received(
    db: Session,
    background_tasks: Optional[BackgroundTasks],
    employer_user_id: int,
    job_id: int,
    job_title: str,
    amount_cents: int,
    currency: str,
):
    amount = f"{amount_cents / 100:,.2f} {currency.upper()}"
    return _notify(
        db, background_tasks, employer_user_id,
        NotificationType.PAYMENT_RECEIVED,
        "Payment Received",
        f'We received your payment of {amount} for "{job_title}". It is now awaiting review.',
        f"/dashboard/jobs/{job_id}",
        {"jobId": job_id, "amountCents": amount_cents, "currency": currency},
    )
