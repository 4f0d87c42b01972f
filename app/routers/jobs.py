"""
ExecBoard - Job postings and tiers.

Employers post jobs into admin review; the public board lists LIVE jobs.
The public listing is cached briefly in the key-value store.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, joinedload
from typing import Optional
import logging

from ..auth.dependencies import get_optional_session, require_employer_profile
from ..auth.schemas import SessionUser, UserRole
from ..cache import cache_delete, cache_get_json, cache_set_json
from ..config import settings
from ..database import get_db
from ..errors import Forbidden, NotFound, ValidationFailed
from ..models import EmployerProfile, Job, Tier
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import MAX_LIST_TAKE, JobCreate, JobDetail, JobListQuery, JobStatus, JobSummary, TierResponse
from ..validation import validate_payload

logger = logging.getLogger("execboard.jobs")
router = APIRouter()


def job_list_cache_key(take: int) -> str:
    return f"jobs:list:live:{take}"


async def invalidate_job_list_cache() -> None:
    """Drop every cached page of the public listing after a job enters or leaves LIVE."""
    await cache_delete(*(job_list_cache_key(take) for take in range(1, MAX_LIST_TAKE + 1)))


def _org_name(job: Job) -> Optional[str]:
    if job.org_name_override:
        return job.org_name_override
    return job.employer.org_name if job.employer else None


def serialize_job(job: Job, detail: bool = False) -> dict:
    schema = JobDetail if detail else JobSummary
    data = schema.model_validate(job).model_dump()
    data["org_name"] = _org_name(job)
    return data


# =============================================================================
# Tiers
# =============================================================================

@router.get("/tiers", dependencies=[Depends(RateLimit("rl:api"))])
def list_tiers(db: Session = Depends(get_db)):
    """Active posting tiers, cheapest first."""
    tiers = db.query(Tier).filter(Tier.active == True).order_by(Tier.price_cents.asc()).all()
    return success_response([TierResponse.model_validate(t).model_dump() for t in tiers])


# =============================================================================
# Jobs
# =============================================================================

@router.post("/jobs", status_code=201, dependencies=[Depends(RateLimit("rl:jobs", 20, 60))])
def create_job(
    job_data: JobCreate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    """Create a job in PENDING_ADMIN_REVIEW for an approved employer."""
    employer = db.query(EmployerProfile).filter(EmployerProfile.id == session.employer_profile_id).first()
    if not employer:
        raise NotFound("Employer profile not found")
    if not employer.admin_approved:
        raise Forbidden("Employer account must be approved to post jobs")

    tier = db.query(Tier).filter(Tier.id == job_data.tier_id, Tier.active == True).first()
    if not tier:
        raise ValidationFailed("Invalid tier")

    job = Job(
        employer_id=employer.id,
        tier_id=tier.id,
        title=job_data.title,
        org_name_override=job_data.org_name_override,
        level=job_data.level.value,
        location=job_data.location,
        remote_allowed=job_data.remote_allowed,
        compensation_min=job_data.compensation_min,
        compensation_max=job_data.compensation_max,
        compensation_currency=job_data.compensation_currency,
        description_rich=job_data.description_rich,
        key_responsibilities_json=job_data.key_responsibilities_json,
        required_licenses_json=job_data.required_licenses_json,
        required_certifications_json=job_data.required_certifications_json,
        required_ehr_experience_json=job_data.required_ehr_experience_json,
        required_setting_experience_json=job_data.required_setting_experience_json,
        required_experience_years=job_data.required_experience_years,
        status=JobStatus.PENDING_ADMIN_REVIEW.value,
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    logger.info(f"Employer {employer.id} posted job {job.id} on tier {tier.id}")
    return created_response(
        {"jobId": job.id},
        "Job posted successfully. It will be reviewed by an administrator.",
    )


@router.get("/jobs/list", dependencies=[Depends(RateLimit("rl:jobs-list", 120, 60))])
async def list_live_jobs(request: Request, db: Session = Depends(get_db)):
    """LIVE jobs, newest first. ``take`` defaults to 20, at most 50."""
    query = validate_payload(JobListQuery, request.query_params)
    cache_key = job_list_cache_key(query.take)

    cached = await cache_get_json(cache_key)
    if cached is not None:
        return success_response(cached)

    jobs = (
        db.query(Job)
        .options(joinedload(Job.employer))
        .filter(Job.status == JobStatus.LIVE.value)
        .order_by(Job.published_at.desc(), Job.created_at.desc(), Job.id.desc())
        .limit(query.take)
        .all()
    )
    data = [serialize_job(job) for job in jobs]
    await cache_set_json(cache_key, data, settings.job_list_cache_seconds)
    return success_response(data)


@router.get("/jobs/mine", dependencies=[Depends(RateLimit("rl:api"))])
def list_my_jobs(
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_employer_profile),
):
    """The employer's own jobs in every status."""
    jobs = (
        db.query(Job)
        .filter(Job.employer_id == session.employer_profile_id)
        .order_by(Job.created_at.desc(), Job.id.desc())
        .all()
    )
    return success_response([serialize_job(job) for job in jobs])


@router.get("/jobs/{job_id}", dependencies=[Depends(RateLimit("rl:api"))])
def get_job(
    job_id: int,
    db: Session = Depends(get_db),
    session: Optional[SessionUser] = Depends(get_optional_session),
):
    """A LIVE job for anyone; other statuses only for the owning employer and admins."""
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFound("Job not found")

    if job.status != JobStatus.LIVE.value:
        is_owner = session is not None and session.employer_profile_id == job.employer_id
        is_admin = session is not None and session.role == UserRole.ADMIN
        if not (is_owner or is_admin):
            raise NotFound("Job not found")

    return success_response(serialize_job(job, detail=True))
