"""
ExecBoard - AI assistance endpoints.

Resume analysis, candidate/job matching, job description drafting,
interview questions, application screening and market insights. All routes
share one quota and require a signed-in user. Completed operations are
recorded as ai_<operation> rows in the audit log for the admin usage view.

Errors:
    503 - no AI API key configured
    502 - the provider call failed after retries or returned unusable output
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, joinedload
from typing import Any, Dict, List
import json
import logging

from ..auth.dependencies import get_current_session, require_role
from ..auth.schemas import SessionUser, UserRole
from ..database import get_db
from ..errors import DependencyUnavailable, Forbidden, NotFound, UpstreamFailed, ValidationFailed
from ..models import Application, CandidateProfile, Job, JobMatch, Resume
from ..query_helpers import get_or_404
from ..rate_limit import RateLimit, get_client_ip
from ..responses import success_response
from ..schemas import (
    AnalyzeResumeRequest, GenerateJobDescriptionRequest, InterviewQuestionsRequest,
    JobStatus, MarketInsightsRequest, MatchCandidateRequest, MatchJobRequest,
    ScreenApplicationRequest,
)
from ..services.ai_service import AINotConfiguredError, AIServiceError, ai_service, log_ai_operation

logger = logging.getLogger("execboard.ai")
router = APIRouter(dependencies=[Depends(RateLimit("rl:ai", 10, 60))])

AI_UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable"


def _require_configured() -> None:
    if not ai_service.is_configured():
        raise DependencyUnavailable("AI service not configured")


async def _run(call):
    """Await an AI call, translating service errors into API errors."""
    try:
        return await call
    except AINotConfiguredError:
        raise DependencyUnavailable("AI service not configured")
    except AIServiceError as e:
        logger.warning(f"AI operation failed: {e}")
        raise UpstreamFailed(AI_UNAVAILABLE_MESSAGE)


def _is_admin(session: SessionUser) -> bool:
    return session.role == UserRole.ADMIN


def _require_job_access(session: SessionUser, job: Job) -> None:
    """The job's employer or an admin."""
    if _is_admin(session):
        return
    if session.employer_profile_id is None or job.employer_id != session.employer_profile_id:
        raise Forbidden()


def _save_match(db: Session, result: Dict[str, Any], applied: bool = False) -> None:
    match = db.query(JobMatch).filter(
        JobMatch.job_id == result["jobId"],
        JobMatch.candidate_id == result["candidateProfileId"],
    ).first()
    if not match:
        match = JobMatch(job_id=result["jobId"], candidate_id=result["candidateProfileId"])
        db.add(match)
    match.match_score = result["matchScore"]
    match.matching_factors_json = json.dumps(result["matchingFactors"])
    match.missing_requirements_json = json.dumps(result["missingRequirements"])
    match.recommendation = result["recommendation"]
    match.applied = applied or bool(match.applied)


async def _score_pairs(pairs) -> List[Dict[str, Any]]:
    """Score (candidate, job) pairs, skipping individual failures; 502 only if every call failed."""
    results = []
    failures = 0
    for candidate, job in pairs:
        try:
            results.append(await ai_service.score_match(candidate, job))
        except AINotConfiguredError:
            raise DependencyUnavailable("AI service not configured")
        except AIServiceError as e:
            failures += 1
            logger.warning(f"Match scoring failed for candidate {candidate.id} / job {job.id}: {e}")
    if failures and not results:
        raise UpstreamFailed(AI_UNAVAILABLE_MESSAGE)
    results.sort(key=lambda r: r["matchScore"], reverse=True)
    return results


# =============================================================================
# Resume analysis
# =============================================================================

@router.post("/ai/analyze-resume")
async def analyze_resume(
    request: Request,
    body: AnalyzeResumeRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Analyze pasted resume text or a stored resume; the summary is saved to the profile."""
    _require_configured()

    profile_id = body.candidate_profile_id or session.candidate_profile_id
    if profile_id is not None and not _is_admin(session) and profile_id != session.candidate_profile_id:
        raise Forbidden("You can only analyze your own resume")

    resume_text = body.resume_text
    if resume_text is None and body.resume_id is not None:
        resume = get_or_404(db, Resume, body.resume_id, "Resume")
        if not _is_admin(session) and resume.candidate_id != session.candidate_profile_id:
            raise Forbidden("You can only analyze your own resume")
        if not resume.parsed_text or len(resume.parsed_text) < 50:
            raise ValidationFailed("No readable text could be extracted from this resume")
        resume_text = resume.parsed_text
        profile_id = profile_id or resume.candidate_id
    if not resume_text:
        raise ValidationFailed("resume_text or resume_id is required")

    analysis = await _run(ai_service.analyze_resume(resume_text))

    if profile_id is not None and analysis.get("aiSummary"):
        profile = db.query(CandidateProfile).filter(CandidateProfile.id == profile_id).first()
        if profile:
            profile.ai_summary = str(analysis["aiSummary"])
            db.commit()

    log_ai_operation(
        db, "resume_analysis", session.id,
        {"candidateProfileId": profile_id, "textLength": len(resume_text)},
        get_client_ip(request),
    )
    return success_response(analysis)


# =============================================================================
# Matching
# =============================================================================

@router.post("/ai/match-job")
async def match_candidates_for_job(
    request: Request,
    body: MatchJobRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_role(UserRole.EMPLOYER, UserRole.ADMIN)),
):
    """Rank candidates who have not applied yet for one of the employer's LIVE jobs."""
    _require_configured()

    job = db.query(Job).options(joinedload(Job.employer)).filter(Job.id == body.job_id).first()
    if not job:
        raise NotFound("Job not found")
    _require_job_access(session, job)
    if job.status != JobStatus.LIVE.value:
        raise ValidationFailed("Job must be live to match candidates")

    applied = db.query(Application.candidate_id).filter(Application.job_id == job.id)
    candidates = (
        db.query(CandidateProfile)
        .filter(CandidateProfile.id.notin_(applied))
        .order_by(CandidateProfile.updated_at.desc(), CandidateProfile.id.desc())
        .limit(body.limit)
        .all()
    )

    matches = await _score_pairs((candidate, job) for candidate in candidates)
    for result in matches:
        _save_match(db, result)
    db.commit()

    log_ai_operation(
        db, "candidate_matching", session.id,
        {"jobId": job.id, "candidatesScored": len(matches)},
        get_client_ip(request),
    )
    return success_response({"jobId": job.id, "matches": matches})


@router.post("/ai/match-candidate")
async def match_jobs_for_candidate(
    request: Request,
    body: MatchCandidateRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Rank LIVE jobs for a candidate, or score the candidate against one job."""
    _require_configured()

    profile_id = body.candidate_profile_id or session.candidate_profile_id
    if profile_id is None:
        raise ValidationFailed("candidate_profile_id is required")
    candidate = get_or_404(db, CandidateProfile, profile_id, "Candidate profile")

    query = db.query(Job).options(joinedload(Job.employer)).filter(Job.status == JobStatus.LIVE.value)
    if body.job_id is not None:
        query = query.filter(Job.id == body.job_id)

    if not _is_admin(session) and candidate.id != session.candidate_profile_id:
        # Employers may score a candidate only against their own job
        if body.job_id is None or session.employer_profile_id is None:
            raise Forbidden()
        query = query.filter(Job.employer_id == session.employer_profile_id)

    jobs = query.order_by(Job.published_at.desc(), Job.id.desc()).limit(body.limit).all()
    if body.job_id is not None and not jobs:
        raise NotFound("Job not found")

    applied_job_ids = {
        row.job_id for row in db.query(Application.job_id).filter(Application.candidate_id == candidate.id)
    }
    matches = await _score_pairs((candidate, job) for job in jobs)
    for result in matches:
        _save_match(db, result, applied=result["jobId"] in applied_job_ids)
    db.commit()

    log_ai_operation(
        db, "job_matching", session.id,
        {"candidateProfileId": candidate.id, "jobsScored": len(matches)},
        get_client_ip(request),
    )
    return success_response({"candidateProfileId": candidate.id, "matches": matches})


# =============================================================================
# Employer tools
# =============================================================================

@router.post("/ai/generate-job-description")
async def generate_job_description(
    request: Request,
    body: GenerateJobDescriptionRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_role(UserRole.EMPLOYER, UserRole.ADMIN)),
):
    _require_configured()

    result = await _run(ai_service.generate_job_description(
        title=body.title,
        level=body.level.value,
        location=body.location,
        remote_allowed=body.remote_allowed,
        org_name=body.org_name,
        org_type=body.org_type,
        key_points=body.key_points,
    ))

    log_ai_operation(
        db, "job_description", session.id,
        {"title": body.title, "level": body.level.value},
        get_client_ip(request),
    )
    return success_response(result)


@router.post("/ai/generate-interview-questions")
async def generate_interview_questions(
    request: Request,
    body: InterviewQuestionsRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_role(UserRole.EMPLOYER, UserRole.ADMIN)),
):
    _require_configured()

    job = get_or_404(db, Job, body.job_id, "Job")
    _require_job_access(session, job)
    candidate = get_or_404(db, CandidateProfile, body.candidate_profile_id, "Candidate profile")

    result = await _run(ai_service.generate_interview_questions(job, candidate, body.question_count))

    log_ai_operation(
        db, "interview_questions", session.id,
        {"jobId": job.id, "candidateProfileId": candidate.id, "questionCount": len(result["questions"])},
        get_client_ip(request),
    )
    return success_response(result)


@router.post("/ai/screen-application")
async def screen_application(
    request: Request,
    body: ScreenApplicationRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_role(UserRole.EMPLOYER, UserRole.ADMIN)),
):
    _require_configured()

    job = get_or_404(db, Job, body.job_id, "Job")
    _require_job_access(session, job)
    candidate = get_or_404(db, CandidateProfile, body.candidate_profile_id, "Candidate profile")

    application_text = body.application_text
    if application_text is None:
        application = db.query(Application).filter(
            Application.job_id == job.id,
            Application.candidate_id == candidate.id,
        ).first()
        if application:
            application_text = application.candidate_note

    result = await _run(ai_service.screen_application(candidate, job, application_text))

    log_ai_operation(
        db, "application_screening", session.id,
        {"jobId": job.id, "candidateProfileId": candidate.id, "fitScore": result["fitScore"]},
        get_client_ip(request),
    )
    return success_response(result)


@router.post("/ai/market-insights")
async def market_insights(
    request: Request,
    body: MarketInsightsRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    _require_configured()

    job_level = body.job_level.value if body.job_level else None
    result = await _run(ai_service.market_insights(body.org_type, job_level, body.location))

    log_ai_operation(
        db, "market_insights", session.id,
        {"orgType": body.org_type, "jobLevel": job_level, "location": body.location},
        get_client_ip(request),
    )
    return success_response(result)
