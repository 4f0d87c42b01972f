"""
ExecBoard - Job applications.

Candidates apply to LIVE jobs and may withdraw; the employer that owns the
job moves the application through the hiring pipeline. Notifications go out
after the application change has committed.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
import logging

from ..auth.dependencies import get_current_session, require_candidate_profile, require_employer_profile
from ..auth.schemas import SessionUser, UserRole
from ..database import get_db
from ..errors import Conflict, Forbidden, NotFound, ValidationFailed
from ..models import Application, EmployerProfile, Job, JobMatch, Resume
from ..query_helpers import get_or_404
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import (
    ApplicationCreate, ApplicationListQuery, ApplicationResponse,
    ApplicationStatus, ApplicationStatusUpdate, JobStatus,
)
from ..services.notifications import notify_application_received, notify_application_status_changed
from ..validation import validate_payload

logger = logging.getLogger("execboard.applications")
router = APIRouter()


def serialize_application(application: Application) -> dict:
    data = ApplicationResponse.model_validate(application).model_dump()
    if application.job:
        data["job_title"] = application.job.title
    if application.candidate:
        data["candidate_name"] = application.candidate.full_name
    return data


@router.post("/applications", status_code=201, dependencies=[Depends(RateLimit("rl:applications", 20, 60))])
def create_application(
    application_data: ApplicationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """Apply to a LIVE job, optionally attaching one of the candidate's resumes."""
    candidate_id = session.candidate_profile_id

    job = get_or_404(db, Job, application_data.job_id, "Job")
    if job.status != JobStatus.LIVE.value:
        raise ValidationFailed("Job is not available for applications")

    existing = db.query(Application).filter(
        Application.job_id == job.id,
        Application.candidate_id == candidate_id,
    ).first()
    if existing:
        raise Conflict("You have already applied to this job")

    if application_data.resume_id is not None:
        resume = db.query(Resume).filter(
            Resume.id == application_data.resume_id,
            Resume.candidate_id == candidate_id,
        ).first()
        if not resume:
            raise NotFound("Resume not found")

    application = Application(
        job_id=job.id,
        candidate_id=candidate_id,
        resume_id=application_data.resume_id,
        candidate_note=application_data.candidate_note,
        status=ApplicationStatus.SUBMITTED.value,
    )
    db.add(application)
    db.query(JobMatch).filter(
        JobMatch.job_id == job.id,
        JobMatch.candidate_id == candidate_id,
    ).update({"applied": True}, synchronize_session=False)
    try:
        db.commit()
    except IntegrityError:
        # Unique (job, candidate) caught a concurrent duplicate
        db.rollback()
        raise Conflict("You have already applied to this job")
    db.refresh(application)
    logger.info(f"Candidate {candidate_id} applied to job {job.id} (application {application.id})")

    employer = db.query(EmployerProfile).filter(EmployerProfile.id == job.employer_id).first()
    if employer:
        notify_application_received(
            db, background_tasks, employer.user_id, application.id, job.title,
            application.candidate.full_name or "A candidate",
        )

    return created_response(serialize_application(application), "Application submitted successfully")


@router.get("/applications", dependencies=[Depends(RateLimit("rl:api"))])
def list_applications(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Candidates see their own applications; employers see applications to their jobs."""
    filters = validate_payload(ApplicationListQuery, request.query_params)

    query = db.query(Application).options(
        joinedload(Application.job), joinedload(Application.candidate)
    )
    if session.role == UserRole.CANDIDATE and session.candidate_profile_id:
        query = query.filter(Application.candidate_id == session.candidate_profile_id)
    elif session.role == UserRole.EMPLOYER and session.employer_profile_id:
        query = query.join(Job, Application.job_id == Job.id).filter(
            Job.employer_id == session.employer_profile_id
        )
    else:
        raise Forbidden()

    if filters.status:
        query = query.filter(Application.status == filters.status.value)

    applications = query.order_by(Application.created_at.desc(), Application.id.desc()).all()
    return success_response([serialize_application(a) for a in applications])


@router.patch("/applications/{application_id}", dependencies=[Depends(RateLimit("rl:applications", 20, 60))])
def update_application_status(
    application_id: int,
    update: ApplicationStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    """Move an application to a new status; the employer must own the job."""
    application = get_or_404(db, Application, application_id, "Application")
    if application.job.employer_id != session.employer_profile_id:
        raise Forbidden()

    previous = application.status
    application.status = update.status.value
    db.commit()
    db.refresh(application)
    logger.info(f"Application {application.id} status {previous} -> {application.status}")

    if previous != application.status:
        notify_application_status_changed(
            db, background_tasks, application.candidate.user_id, application.id,
            application.job.title, application.status,
        )

    return success_response(serialize_application(application), "Application updated")


@router.post("/applications/{application_id}/withdraw", dependencies=[Depends(RateLimit("rl:applications", 20, 60))])
def withdraw_application(
    application_id: int,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """Withdraw one of the candidate's own applications."""
    application = get_or_404(db, Application, application_id, "Application")
    if application.candidate_id != session.candidate_profile_id:
        raise Forbidden()

    application.status = ApplicationStatus.WITHDRAWN.value
    db.commit()
    db.refresh(application)
    logger.info(f"Application {application.id} withdrawn by candidate {session.candidate_profile_id}")
    return success_response(serialize_application(application), "Application withdrawn")
