"""
ExecBoard - AI Service (OpenAI-compatible chat completions)

Abstraction layer for the LLM calls behind the AI-assisted recruiting features.

Setup:
1. Set EXECBOARD_OPENAI_API_KEY (and optionally EXECBOARD_OPENAI_BASE_URL
   for any OpenAI-compatible provider, EXECBOARD_OPENAI_MODEL)
2. Without a key the AI routes answer 503 "AI service not configured"

This service provides:
- JSON-mode completions with a per-attempt timeout and bounded retries
- Robust extraction of a JSON object from model output
- Job description generation, candidate/job matching, resume analysis,
  interview questions, application screening, and market insights
- Audit logging of completed AI operations
"""
from datetime import date
from typing import Any, Callable, Dict, List, Optional
import asyncio
import json
import logging
import random
import re
import time

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.dependencies import log_admin_action
from ..auth.models import AuditLog
from ..config import settings
from . import ai_prompts

logger = logging.getLogger("execboard.ai")


class AIServiceError(Exception):
    """Custom exception for AI service errors."""
    pass


class AINotConfiguredError(AIServiceError):
    pass


class AIProviderError(AIServiceError):
    """The provider answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AIResponseFormatError(AIServiceError):
    pass


# -----------------------------------------------------------------------------
# JSON extraction
# -----------------------------------------------------------------------------

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")


def _try_parse(raw: str) -> Optional[Any]:
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    # Scalars are not structured output
    if isinstance(parsed, (dict, list)):
        return parsed
    return None


def extract_json_object(raw: str) -> Any:
    """
    Robustly extract JSON from an LLM response.

    Handles, in order:
    - raw JSON
    - a ```json ... ``` block, then any ``` ... ``` block
    - extra prose before/after the first top-level {...} object

    Raises:
        AIResponseFormatError: nothing parseable was found
    """
    direct = _try_parse(raw)
    if direct is not None:
        return direct

    fenced = _FENCED_JSON.search(raw) or _FENCED_ANY.search(raw)
    if fenced and fenced.group(1):
        parsed = _try_parse(fenced.group(1).strip())
        if parsed is not None:
            return parsed

    first_brace = raw.find("{")
    if first_brace >= 0:
        depth = 0
        for i in range(first_brace, len(raw)):
            ch = raw[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
            if depth == 0:
                parsed = _try_parse(raw[first_brace:i + 1])
                if parsed is not None:
                    return parsed
                break

    raise AIResponseFormatError("AI response was not valid JSON")


def is_retryable_error(exc: Exception) -> bool:
    """Rate limits, server errors, timeouts and transport failures are transient."""
    if isinstance(exc, AIProviderError):
        status = exc.status_code or 0
        return status == 429 or status >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


def backoff_delay(attempt: int) -> float:
    """Exponential backoff (factor 2) with jitter, bounded by the configured min/max."""
    base = settings.ai.ai_retry_min_delay * (2 ** attempt)
    return min(settings.ai.ai_retry_max_delay, base * random.uniform(1, 2))


# -----------------------------------------------------------------------------
# Helpers for prompt building
# -----------------------------------------------------------------------------

def _json_list(raw: Optional[str]) -> List[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        return []
    return value if isinstance(value, list) else []


def _joined(raw: Optional[str]) -> str:
    items = _json_list(raw)
    return ", ".join(str(i) for i in items) if items else "Not specified"


def _money(value: Optional[int]) -> str:
    return f"${value:,}" if value else "Not specified"


def _compensation(job) -> str:
    if job.compensation_min and job.compensation_max:
        return f"${job.compensation_min:,} - ${job.compensation_max:,}"
    if job.compensation_max:
        return f"Up to ${job.compensation_max:,}"
    return "Not specified"


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _score(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, score))


class AIService:
    """
    AI Service for JSON completions against an OpenAI-compatible API.

    ``transport`` lets tests plug in an httpx.MockTransport; ``sleep`` lets
    them skip the real backoff.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable = asyncio.sleep,
    ):
        self._transport = transport
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(settings.ai.openai_api_key)

    @property
    def model(self) -> str:
        return settings.ai.openai_model

    async def _chat_completion(
        self,
        client: httpx.AsyncClient,
        system_prompt: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        response = await client.post(
            "/chat/completions",
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": {"type": "json_object"},
            },
        )
        if response.status_code != 200:
            logger.error(f"AI provider returned {response.status_code}: {response.text[:300]}")
            raise AIProviderError(
                f"AI provider returned status {response.status_code}", response.status_code
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise AIResponseFormatError("Malformed response from AI provider")
        if not content:
            raise AIResponseFormatError("No response content from AI provider")
        return content

    async def complete_json(
        self,
        system_prompt: str,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """
        Run a JSON-mode completion and return the parsed object.

        Each attempt has its own timeout. Only errors classified by
        is_retryable_error are retried, up to ``ai_retries`` extra attempts.

        Raises:
            AINotConfiguredError: no API key
            AIServiceError: the call ultimately failed
        """
        if not self.is_configured():
            raise AINotConfiguredError("AI service not configured")

        temperature = settings.ai.ai_temperature if temperature is None else temperature
        max_tokens = max_tokens or settings.ai.ai_max_tokens
        retries = max(0, settings.ai.ai_retries)

        async with httpx.AsyncClient(
            base_url=settings.ai.openai_base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {settings.ai.openai_api_key}"},
            timeout=settings.ai.ai_timeout_seconds,
            transport=self._transport,
        ) as client:
            for attempt in range(retries + 1):
                started = time.monotonic()
                try:
                    content = await self._chat_completion(
                        client, system_prompt, prompt, temperature, max_tokens
                    )
                    parsed = extract_json_object(content)
                except (AIServiceError, httpx.HTTPError) as exc:
                    latency_ms = int((time.monotonic() - started) * 1000)
                    if not is_retryable_error(exc):
                        logger.warning(
                            f"AI call failed (model={self.model}, attempt={attempt + 1}, "
                            f"latency_ms={latency_ms}), not retrying: {exc}"
                        )
                        if isinstance(exc, AIServiceError):
                            raise
                        raise AIServiceError(f"AI request failed: {exc}") from exc
                    if attempt >= retries:
                        logger.error(f"AI call failed after {attempt + 1} attempts: {exc}")
                        raise AIServiceError(f"AI request failed after {attempt + 1} attempts") from exc
                    delay = backoff_delay(attempt)
                    logger.warning(
                        f"Retrying AI call (model={self.model}, attempt={attempt + 1}, "
                        f"latency_ms={latency_ms}) in {delay:.2f}s: {exc}"
                    )
                    await self._sleep(delay)
                    continue

                logger.info(
                    f"AI JSON completion (model={self.model}, attempt={attempt + 1}, "
                    f"latency_ms={int((time.monotonic() - started) * 1000)})"
                )
                return parsed

        raise AIServiceError("AI request failed")

    # -------------------------------------------------------------------------
    # Recruiting operations
    # -------------------------------------------------------------------------

    async def generate_job_description(
        self,
        title: str,
        level: str,
        location: str,
        remote_allowed: bool,
        org_name: Optional[str] = None,
        org_type: Optional[str] = None,
        key_points: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        prompt = ai_prompts.JOB_DESCRIPTION_PROMPT.format(
            title=title,
            level=level,
            location=location,
            remote="Yes" if remote_allowed else "No",
            org_name=org_name or "Healthcare Organization",
            org_type=org_type or "Healthcare System",
            key_points=", ".join(key_points) if key_points else "Leadership and Management",
        )
        result = await self.complete_json(
            ai_prompts.JOB_DESCRIPTION_SYSTEM, prompt, temperature=0.7, max_tokens=2000
        )
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        return {
            "jobDescription": str(result.get("jobDescription") or ""),
            "keyResponsibilities": _string_list(result.get("keyResponsibilities")),
            "outreachSnippet": str(result.get("outreachSnippet") or ""),
            "skillsAnalysis": str(result.get("skillsAnalysis") or ""),
            "marketInsights": str(result.get("marketInsights") or ""),
        }

    async def score_match(self, candidate, job) -> Dict[str, Any]:
        """Score one candidate profile against one job."""
        description = job.description_rich or ""
        prompt = ai_prompts.MATCH_PROMPT.format(
            job_title=job.title,
            job_level=job.level,
            org_type=job.employer.org_type if job.employer else "Not specified",
            required_experience=job.required_experience_years or "Not specified",
            job_location=job.location,
            remote="Yes" if job.remote_allowed else "No",
            compensation=_compensation(job),
            description=description[:500] + ("..." if len(description) > 500 else ""),
            current_title=candidate.current_title or "Not specified",
            current_org=candidate.current_org or "Not specified",
            target_levels=_joined(candidate.target_levels_json),
            preferred_settings=_joined(candidate.preferred_settings_json),
            service_lines=_joined(candidate.primary_service_lines_json),
            budget_managed=_money(candidate.budget_managed_min),
            team_size=candidate.team_size_min or "Not specified",
            candidate_location=candidate.primary_location or "Not specified",
            relocate="Yes" if candidate.willing_to_relocate else "No",
            summary=candidate.summary or "Not provided",
        )
        result = await self.complete_json(ai_prompts.MATCH_SYSTEM, prompt, temperature=0.3, max_tokens=900)
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        return {
            "candidateProfileId": candidate.id,
            "jobId": job.id,
            "matchScore": _score(result.get("matchScore")),
            "matchingFactors": _string_list(result.get("matchingFactors")),
            "missingRequirements": _string_list(result.get("missingRequirements")),
            "recommendation": str(result.get("recommendation") or ""),
        }

    async def analyze_resume(self, resume_text: str) -> Dict[str, Any]:
        prompt = ai_prompts.RESUME_ANALYSIS_PROMPT.format(resume_text=resume_text)
        result = await self.complete_json(
            ai_prompts.RESUME_ANALYSIS_SYSTEM, prompt, temperature=0.4, max_tokens=1500
        )
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        return {
            "extractedSkills": _string_list(result.get("extractedSkills")),
            "experienceLevel": result.get("experienceLevel"),
            "industryFocus": result.get("industryFocus"),
            "certifications": _string_list(result.get("certifications")),
            "leadershipExperience": result.get("leadershipExperience"),
            "careerTrajectory": result.get("careerTrajectory"),
            "aiSummary": result.get("aiSummary"),
            "suggestedJobLevels": _string_list(result.get("suggestedJobLevels")),
            "recommendedServiceLines": _string_list(result.get("recommendedServiceLines")),
        }

    async def generate_interview_questions(self, job, candidate, question_count: int = 8) -> Dict[str, Any]:
        prompt = ai_prompts.INTERVIEW_QUESTIONS_PROMPT.format(
            job_title=job.title,
            job_level=job.level,
            org_name=(job.org_name_override or (job.employer.org_name if job.employer else "")) or "Not specified",
            org_type=job.employer.org_type if job.employer else "Not specified",
            responsibilities=_joined(job.key_responsibilities_json),
            current_title=candidate.current_title or "Not specified",
            current_org=candidate.current_org or "Not specified",
            service_lines=_joined(candidate.primary_service_lines_json),
            summary=candidate.summary or "Not provided",
            question_count=question_count,
        )
        result = await self.complete_json(
            ai_prompts.INTERVIEW_QUESTIONS_SYSTEM, prompt, temperature=0.6, max_tokens=1200
        )
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        questions = [q for q in result.get("questions") or [] if isinstance(q, dict)]
        return {
            "questions": questions[:question_count],
            "evaluationCriteria": _string_list(result.get("evaluationCriteria")),
            "redFlags": _string_list(result.get("redFlags")),
        }

    async def screen_application(self, candidate, job, application_text: Optional[str] = None) -> Dict[str, Any]:
        prompt = ai_prompts.SCREENING_PROMPT.format(
            full_name=candidate.full_name or "Not specified",
            current_title=candidate.current_title or "Not specified",
            current_org=candidate.current_org or "Not specified",
            target_levels=_joined(candidate.target_levels_json),
            summary=candidate.summary or "Not provided",
            job_title=job.title,
            job_level=job.level,
            required_experience=job.required_experience_years or "Not specified",
            org_name=(job.employer.org_name if job.employer else "") or "Not specified",
            org_type=job.employer.org_type if job.employer else "Not specified",
            application_text=application_text or "No additional note provided",
        )
        result = await self.complete_json(ai_prompts.SCREENING_SYSTEM, prompt, temperature=0.3, max_tokens=1000)
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        return {
            "fitScore": _score(result.get("fitScore")),
            "strengths": _string_list(result.get("strengths")),
            "concerns": _string_list(result.get("concerns")),
            "recommendation": result.get("recommendation"),
            "keyReasons": _string_list(result.get("keyReasons")),
            "suggestedInterviewFocus": _string_list(result.get("suggestedInterviewFocus")),
        }

    async def market_insights(
        self,
        org_type: Optional[str] = None,
        job_level: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        prompt = ai_prompts.MARKET_INSIGHTS_PROMPT.format(
            org_type=org_type or "Healthcare Systems",
            job_level=job_level or "Director level",
            location=location or "United States",
            today=date.today().isoformat(),
        )
        result = await self.complete_json(
            ai_prompts.MARKET_INSIGHTS_SYSTEM, prompt, temperature=0.4, max_tokens=1000
        )
        if not isinstance(result, dict):
            raise AIResponseFormatError("AI response was not valid JSON")
        return result


# Global service instance for convenience
ai_service = AIService()


# -----------------------------------------------------------------------------
# Usage tracking
# -----------------------------------------------------------------------------

def log_ai_operation(
    db: Session,
    operation: str,
    user_id: Optional[int],
    metadata: Dict[str, Any],
    ip_address: Optional[str] = None,
) -> None:
    """Record a completed AI operation as an ``ai_<operation>`` audit row (best effort)."""
    log_admin_action(
        db,
        actor_user_id=user_id,
        action_type=f"ai_{operation}",
        target_type="AI_SYSTEM",
        details=metadata,
        ip_address=ip_address,
    )


def get_ai_usage_stats(db: Session, recent: int = 50) -> Dict[str, Any]:
    rows = (
        db.query(AuditLog.action_type, func.count(AuditLog.id))
        .filter(AuditLog.action_type.like("ai\\_%", escape="\\"))
        .group_by(AuditLog.action_type)
        .all()
    )
    recent_rows = (
        db.query(AuditLog)
        .filter(AuditLog.action_type.like("ai\\_%", escape="\\"))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(recent)
        .all()
    )
    by_type = {action[len("ai_"):]: count for action, count in rows}
    return {
        "totalOperations": sum(by_type.values()),
        "operationsByType": by_type,
        "recentActivity": [
            {
                "type": r.action_type[len("ai_"):],
                "timestamp": r.created_at,
                "userId": r.actor_user_id,
            }
            for r in recent_rows
        ],
    }
