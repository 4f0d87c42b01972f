"""
ExecBoard - Admin API Endpoints

Job review, employer approval, user management, audit log and AI usage.
All endpoints require the ADMIN role via the get_current_admin dependency.

Every mutation is written to the audit log after it has committed. Status
transitions are applied with a conditional UPDATE so that two admins
clicking at once move a job (and notify its employer) only once.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session, joinedload
from datetime import datetime
import json
import logging

from ..auth.dependencies import get_current_admin, log_admin_action
from ..auth.models import AuditLog, RefreshToken, User
from ..auth.schemas import SessionUser, UserRole, UserStatus
from ..database import get_db
from ..errors import Conflict, ValidationFailed
from ..models import CandidateProfile, EmployerProfile, Job
from ..query_helpers import get_or_404, paginate
from ..rate_limit import RateLimit, get_client_ip
from ..responses import success_response
from ..schemas import (
    AdminEmployerApprove, AdminJobApprove, AdminJobReject, AdminUserResponse,
    AdminUserUpdate, AuditLogResponse, EmployerProfileResponse, JobStatus,
)
from ..services.ai_service import get_ai_usage_stats
from ..services.notifications import notify_employer_approved, notify_job_approved, notify_job_rejected
from .jobs import invalidate_job_list_cache, serialize_job

logger = logging.getLogger("execboard.admin")
router = APIRouter(dependencies=[Depends(RateLimit("rl:admin", 60, 60))])

APPROVABLE_JOB_STATUSES = (JobStatus.PENDING_ADMIN_REVIEW.value, JobStatus.SUSPENDED.value)


# =============================================================================
# Job review
# =============================================================================

@router.post("/admin/approve-job")
async def approve_job(
    request: Request,
    body: AdminJobApprove,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    """Publish a job awaiting review. A LIVE job is rejected with 409 and nobody is notified."""
    job = get_or_404(db, Job, body.job_id, "Job")
    if job.status == JobStatus.LIVE.value:
        raise Conflict("Job is already live", status_code=409)
    if job.status not in APPROVABLE_JOB_STATUSES:
        raise Conflict(f"Job cannot be approved from status {job.status}", status_code=409)

    previous = job.status
    updated = db.query(Job).filter(
        Job.id == job.id,
        Job.status.in_(APPROVABLE_JOB_STATUSES),
    ).update(
        {"status": JobStatus.LIVE.value, "published_at": datetime.utcnow()},
        synchronize_session=False,
    )
    db.commit()
    if not updated:
        raise Conflict("Job is already live", status_code=409)
    db.refresh(job)

    log_admin_action(
        db, admin.id, "approve_job", "JOB", job.id,
        {"previousStatus": previous, "title": job.title},
        get_client_ip(request),
    )
    notify_job_approved(db, background_tasks, job.employer.user_id, job.id, job.title)
    await invalidate_job_list_cache()

    return success_response(serialize_job(job), "Job approved")


@router.post("/admin/reject-job")
async def reject_job(
    request: Request,
    body: AdminJobReject,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    """Suspend a job and tell the employer why."""
    job = get_or_404(db, Job, body.job_id, "Job")
    if job.status == JobStatus.SUSPENDED.value:
        raise Conflict("Job is already suspended", status_code=409)

    previous = job.status
    updated = db.query(Job).filter(
        Job.id == job.id,
        Job.status != JobStatus.SUSPENDED.value,
    ).update({"status": JobStatus.SUSPENDED.value}, synchronize_session=False)
    db.commit()
    if not updated:
        raise Conflict("Job is already suspended", status_code=409)
    db.refresh(job)

    log_admin_action(
        db, admin.id, "reject_job", "JOB", job.id,
        {"previousStatus": previous, "reason": body.reason},
        get_client_ip(request),
    )
    notify_job_rejected(db, background_tasks, job.employer.user_id, job.id, job.title, body.reason)
    await invalidate_job_list_cache()

    return success_response(serialize_job(job), "Job rejected")


@router.get("/admin/pending-jobs")
def list_pending_jobs(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    """Jobs awaiting review, oldest first."""
    query = (
        db.query(Job)
        .options(joinedload(Job.employer))
        .filter(Job.status == JobStatus.PENDING_ADMIN_REVIEW.value)
        .order_by(Job.created_at.asc(), Job.id.asc())
    )
    return success_response(paginate(query, page, per_page, lambda j: serialize_job(j, detail=True)))


# =============================================================================
# Employer approval
# =============================================================================

@router.post("/admin/approve-employer")
def approve_employer(
    request: Request,
    body: AdminEmployerApprove,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    employer = get_or_404(db, EmployerProfile, body.employer_id, "Employer")
    if employer.admin_approved:
        raise Conflict("Employer is already approved", status_code=409)

    updated = db.query(EmployerProfile).filter(
        EmployerProfile.id == employer.id,
        EmployerProfile.admin_approved == False,
    ).update(
        {"admin_approved": True, "approved_by_admin_id": admin.id},
        synchronize_session=False,
    )
    db.commit()
    if not updated:
        raise Conflict("Employer is already approved", status_code=409)
    db.refresh(employer)

    log_admin_action(
        db, admin.id, "approve_employer", "EMPLOYER", employer.id,
        {"orgName": employer.org_name},
        get_client_ip(request),
    )
    notify_employer_approved(db, background_tasks, employer.user_id)

    return success_response(EmployerProfileResponse.model_validate(employer).model_dump(), "Employer approved")


@router.get("/admin/pending-employers")
def list_pending_employers(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    query = (
        db.query(EmployerProfile)
        .filter(EmployerProfile.admin_approved == False)
        .order_by(EmployerProfile.created_at.asc(), EmployerProfile.id.asc())
    )
    return success_response(
        paginate(query, page, per_page, lambda e: EmployerProfileResponse.model_validate(e).model_dump())
    )


# =============================================================================
# User management
# =============================================================================

@router.get("/admin/users")
def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    query = db.query(User).order_by(User.created_at.desc(), User.id.desc())
    return success_response(
        paginate(query, page, per_page, lambda u: AdminUserResponse.model_validate(u).model_dump())
    )


@router.patch("/admin/users/{user_id}")
def update_user(
    request: Request,
    user_id: int,
    body: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    """
    Change a user's role and/or status.

    Admins cannot suspend themselves or change their own role. Suspending
    revokes the user's refresh tokens; a role change creates the matching
    empty profile when the user has none.
    """
    if body.role is None and body.status is None:
        raise ValidationFailed("Role or status must be provided")
    if user_id == admin.id:
        if body.status == UserStatus.SUSPENDED:
            raise ValidationFailed("You cannot suspend yourself")
        if body.role is not None and body.role != UserRole.ADMIN:
            raise ValidationFailed("You cannot change your own role")

    user = get_or_404(db, User, user_id, "User")
    changes = {}

    if body.role is not None and user.role != body.role.value:
        changes["role"] = {"from": user.role, "to": body.role.value}
        user.role = body.role.value
        if body.role == UserRole.CANDIDATE and not user.candidate_profile:
            db.add(CandidateProfile(user_id=user.id, full_name=""))
        elif body.role == UserRole.EMPLOYER and not user.employer_profile:
            db.add(EmployerProfile(user_id=user.id, org_name="", org_type="OTHER"))

    if body.status is not None and user.status != body.status.value:
        changes["status"] = {"from": user.status, "to": body.status.value}
        user.status = body.status.value
        if body.status == UserStatus.SUSPENDED:
            db.query(RefreshToken).filter(
                RefreshToken.user_id == user.id,
                RefreshToken.revoked == False,
            ).update({"revoked": True}, synchronize_session=False)

    db.commit()
    db.refresh(user)

    if changes:
        log_admin_action(db, admin.id, "update_user", "USER", user.id, changes, get_client_ip(request))

    return success_response(AdminUserResponse.model_validate(user).model_dump(), "User updated")


# =============================================================================
# Audit log & AI usage
# =============================================================================

@router.get("/admin/audit-log")
def list_audit_log(
    action: str = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    """Paginated audit log, newest first, optionally filtered by action type."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action_type == action)
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    def serialize(entry: AuditLog) -> dict:
        data = AuditLogResponse.model_validate(entry).model_dump()
        data["details"] = json.loads(entry.details_json) if entry.details_json else None
        return data

    return success_response(paginate(query, page, per_page, serialize))


@router.get("/admin/ai-usage")
def ai_usage(
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(get_current_admin),
):
    return success_response(get_ai_usage_stats(db))
