"""
ExecBoard - Interview scheduling.

The employer that owns the job schedules and edits interviews; the
candidate can see them and confirm. Scheduling moves the application to
INTERVIEW and notifies the candidate.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from datetime import datetime
import logging

from ..auth.dependencies import get_current_session
from ..auth.schemas import SessionUser, UserRole
from ..database import get_db
from ..errors import Forbidden, NotFound
from ..models import Application, Interview, Job
from ..query_helpers import get_or_404
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import (
    ApplicationStatus, InterviewCreate, InterviewListQuery,
    InterviewResponse, InterviewStatus, InterviewUpdate,
)
from ..services.notifications import notify_interview_scheduled
from ..validation import validate_payload

logger = logging.getLogger("execboard.interviews")
router = APIRouter()


def _is_employer_of(session: SessionUser, interview: Interview) -> bool:
    return (
        session.employer_profile_id is not None
        and interview.application.job.employer_id == session.employer_profile_id
    )


def _is_candidate_of(session: SessionUser, interview: Interview) -> bool:
    return (
        session.candidate_profile_id is not None
        and interview.application.candidate_id == session.candidate_profile_id
    )


def _get_participant_interview(db: Session, interview_id: int, session: SessionUser) -> Interview:
    interview = get_or_404(db, Interview, interview_id, "Interview")
    if not (_is_employer_of(session, interview) or _is_candidate_of(session, interview)):
        raise Forbidden()
    return interview


def serialize_interview(interview: Interview) -> dict:
    data = InterviewResponse.model_validate(interview).model_dump()
    application = interview.application
    data["job_title"] = application.job.title if application and application.job else None
    data["candidate_name"] = application.candidate.full_name if application and application.candidate else None
    return data


@router.post("/interviews", status_code=201, dependencies=[Depends(RateLimit("rl:api"))])
def schedule_interview(
    interview_data: InterviewCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    if session.role != UserRole.EMPLOYER or not session.employer_profile_id:
        raise Forbidden("Only employers can schedule interviews")

    application = get_or_404(db, Application, interview_data.application_id, "Application")
    if application.job.employer_id != session.employer_profile_id:
        raise Forbidden()

    interview = Interview(
        application_id=application.id,
        scheduled_at=interview_data.scheduled_at,
        location=interview_data.location,
        meeting_url=interview_data.meeting_url,
        duration_minutes=interview_data.duration_minutes,
        interviewer_name=interview_data.interviewer_name,
        interviewer_email=interview_data.interviewer_email,
        notes=interview_data.notes,
        status=InterviewStatus.SCHEDULED.value,
    )
    db.add(interview)
    application.status = ApplicationStatus.INTERVIEW.value
    db.commit()
    db.refresh(interview)
    logger.info(f"Interview {interview.id} scheduled for application {application.id}")

    notify_interview_scheduled(
        db, background_tasks, application.candidate.user_id, interview.id,
        application.job.title, interview.scheduled_at,
    )

    return created_response(serialize_interview(interview), "Interview scheduled")


@router.get("/interviews", dependencies=[Depends(RateLimit("rl:api"))])
def list_interviews(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Interviews the caller takes part in, soonest first."""
    filters = validate_payload(InterviewListQuery, request.query_params)

    query = db.query(Interview).join(Application, Interview.application_id == Application.id)
    if session.role == UserRole.CANDIDATE and session.candidate_profile_id:
        query = query.filter(Application.candidate_id == session.candidate_profile_id)
    elif session.role == UserRole.EMPLOYER and session.employer_profile_id:
        query = query.join(Job, Application.job_id == Job.id).filter(
            Job.employer_id == session.employer_profile_id
        )
    else:
        raise Forbidden()

    if filters.application_id is not None:
        query = query.filter(Interview.application_id == filters.application_id)
    if filters.upcoming:
        query = query.filter(
            Interview.scheduled_at >= datetime.utcnow(),
            Interview.status.notin_([InterviewStatus.CANCELLED.value, InterviewStatus.COMPLETED.value]),
        )

    interviews = query.order_by(Interview.scheduled_at.asc(), Interview.id.asc()).all()
    return success_response([serialize_interview(i) for i in interviews])


@router.get("/interviews/{interview_id}", dependencies=[Depends(RateLimit("rl:api"))])
def get_interview(
    interview_id: int,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    interview = _get_participant_interview(db, interview_id, session)
    return success_response(serialize_interview(interview))


@router.patch("/interviews/{interview_id}", dependencies=[Depends(RateLimit("rl:api"))])
def update_interview(
    interview_id: int,
    update: InterviewUpdate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """The employer may change any field; the candidate may only confirm."""
    interview = _get_participant_interview(db, interview_id, session)
    changes = update.model_dump(exclude_unset=True)

    if not _is_employer_of(session, interview):
        if set(changes) != {"status"} or update.status != InterviewStatus.CONFIRMED:
            raise Forbidden("Candidates can only confirm interviews")

    for field, value in changes.items():
        if field == "status" and value is not None:
            value = InterviewStatus(value).value
        setattr(interview, field, value)

    db.commit()
    db.refresh(interview)
    logger.info(f"Interview {interview.id} updated by user {session.id}: {sorted(changes)}")
    return success_response(serialize_interview(interview), "Interview updated")
