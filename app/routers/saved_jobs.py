"""
ExecBoard - Candidate saved jobs (bookmarks).
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, joinedload
import logging

from ..auth.dependencies import get_current_session
from ..auth.schemas import SessionUser, UserRole
from ..database import get_db
from ..errors import Conflict, Forbidden, NotFound, ValidationFailed
from ..models import Job, SavedJob
from ..query_helpers import get_or_404
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import SavedJobCreate, SavedJobQuery
from ..validation import validate_payload
from .jobs import serialize_job

logger = logging.getLogger("execboard.saved_jobs")
router = APIRouter()


async def require_saving_candidate(session: SessionUser = Depends(get_current_session)) -> SessionUser:
    if session.role != UserRole.CANDIDATE:
        raise Forbidden("Only candidates can save jobs")
    if not session.candidate_profile_id:
        raise NotFound("Candidate profile not found")
    return session


@router.get("/saved-jobs", dependencies=[Depends(RateLimit("rl:saved", 120, 60))])
def list_saved_jobs(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_saving_candidate),
):
    """With ``?job_id=`` answer whether that job is saved; otherwise list saved jobs."""
    query = validate_payload(SavedJobQuery, request.query_params)
    base = db.query(SavedJob).filter(SavedJob.candidate_id == session.candidate_profile_id)

    if query.job_id is not None:
        saved = base.filter(SavedJob.job_id == query.job_id).first() is not None
        return success_response({"saved": saved})

    saved_jobs = (
        base.options(joinedload(SavedJob.job).joinedload(Job.employer))
        .order_by(SavedJob.created_at.desc(), SavedJob.id.desc())
        .all()
    )
    return success_response([
        {"id": s.id, "job_id": s.job_id, "created_at": s.created_at, "job": serialize_job(s.job)}
        for s in saved_jobs
    ])


@router.post("/saved-jobs", status_code=201, dependencies=[Depends(RateLimit("rl:saved", 60, 60))])
def save_job(
    saved_data: SavedJobCreate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_saving_candidate),
):
    job = get_or_404(db, Job, saved_data.job_id, "Job")

    existing = db.query(SavedJob).filter(
        SavedJob.candidate_id == session.candidate_profile_id,
        SavedJob.job_id == job.id,
    ).first()
    if existing:
        raise Conflict("Job already saved")

    saved = SavedJob(candidate_id=session.candidate_profile_id, job_id=job.id)
    db.add(saved)
    db.commit()
    db.refresh(saved)
    return created_response({"id": saved.id, "job_id": job.id}, "Job saved")


@router.delete("/saved-jobs", dependencies=[Depends(RateLimit("rl:saved", 60, 60))])
def unsave_job(
    request: Request,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_saving_candidate),
):
    query = validate_payload(SavedJobQuery, request.query_params)
    if query.job_id is None:
        raise ValidationFailed("job_id is required")

    saved = db.query(SavedJob).filter(
        SavedJob.candidate_id == session.candidate_profile_id,
        SavedJob.job_id == query.job_id,
    ).first()
    if not saved:
        raise NotFound("Saved job not found")

    db.delete(saved)
    db.commit()
    return success_response(message="Job removed from saved jobs")
