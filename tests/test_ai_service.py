import asyncio
import json

import httpx
import pytest

from app.auth.models import AuditLog
from app.config import settings
from app.routers import ai as ai_router
from app.services.ai_service import (
    AINotConfiguredError,
    AIResponseFormatError,
    AIService,
    AIServiceError,
    extract_json_object,
    get_ai_usage_stats,
)
from conftest import bearer


def completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.fixture
def ai_configured(monkeypatch):
    monkeypatch.setattr(settings.ai, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings.ai, "ai_retries", 2)


def make_service(responses):
    calls = []

    def handler(request):
        calls.append(json.loads(request.content))
        return responses.pop(0)

    async def no_sleep(delay):
        pass

    return AIService(transport=httpx.MockTransport(handler), sleep=no_sleep), calls


# =============================================================================
# JSON extraction
# =============================================================================

def test_extract_plain_json():
    assert extract_json_object('{"score": 90}') == {"score": 90}


def test_extract_fenced_json():
    raw = 'Here you go:\n```json\n{"questions": ["Why?"]}\n```\nThanks'
    assert extract_json_object(raw) == {"questions": ["Why?"]}


def test_extract_untagged_fence():
    assert extract_json_object('```\n{"a": 1}\n```') == {"a": 1}


def test_extract_first_object_from_prose():
    assert extract_json_object('Sure! {"fit": {"score": 70}} Let me know.') == {"fit": {"score": 70}}


def test_extract_rejects_non_json():
    with pytest.raises(AIResponseFormatError):
        extract_json_object("I cannot help with that.")
    with pytest.raises(AIResponseFormatError):
        extract_json_object("42")


@pytest.mark.parametrize("obj", [
    {},
    [],
    {"score": 0, "strengths": []},
    {"candidate": {"name": "Dana", "history": [{"org": "Mercy", "years": 4}]}, "notes": None},
    [{"q": "Why this role?"}, {"q": "Biggest turnaround?"}],
])
def test_extract_fenced_serialization_returns_equal_value(obj):
    fenced = "```json\n" + json.dumps(obj, indent=2) + "\n```"
    assert extract_json_object(fenced) == obj
    assert extract_json_object(json.dumps(obj)) == obj


# =============================================================================
# Completions
# =============================================================================

def test_not_configured_raises(monkeypatch):
    monkeypatch.setattr(settings.ai, "openai_api_key", None)
    service, calls = make_service([])
    with pytest.raises(AINotConfiguredError):
        asyncio.run(service.complete_json("system", "prompt"))
    assert calls == []


def test_server_error_is_retried(ai_configured):
    service, calls = make_service([
        httpx.Response(500, text="upstream exploded"),
        completion('{"jobDescription": "Lead the system.", "keyResponsibilities": ["Budget"]}'),
    ])

    result = asyncio.run(service.generate_job_description("CFO", "C_SUITE", "Remote", True))

    assert len(calls) == 2
    assert result["jobDescription"] == "Lead the system."
    assert result["keyResponsibilities"] == ["Budget"]
    assert calls[0]["response_format"] == {"type": "json_object"}


def test_client_error_is_not_retried(ai_configured):
    service, calls = make_service([httpx.Response(400, text="bad request")])
    with pytest.raises(AIServiceError):
        asyncio.run(service.complete_json("system", "prompt"))
    assert len(calls) == 1


def test_retries_are_bounded(ai_configured):
    service, calls = make_service([httpx.Response(503) for _ in range(5)])
    with pytest.raises(AIServiceError):
        asyncio.run(service.complete_json("system", "prompt"))
    assert len(calls) == 3


def test_unparseable_answer_is_a_format_error(ai_configured):
    service, calls = make_service([completion("no json here")])
    with pytest.raises(AIResponseFormatError):
        asyncio.run(service.complete_json("system", "prompt"))
    assert len(calls) == 1


# =============================================================================
# Routes
# =============================================================================

def test_ai_route_without_key_is_503(client, monkeypatch, candidate):
    monkeypatch.setattr(settings.ai, "openai_api_key", None)
    response = client.post("/api/ai/market-insights", json={}, headers=bearer(candidate))
    assert response.status_code == 503
    assert response.json()["error"] == "AI service not configured"


def test_ai_route_records_usage(client, db, monkeypatch, ai_configured, candidate):
    service, _ = make_service([completion('{"salaryTrends": "up"}')])
    monkeypatch.setattr(ai_router, "ai_service", service)

    response = client.post(
        "/api/ai/market-insights",
        json={"org_type": "Academic Medical Center"},
        headers=bearer(candidate),
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"salaryTrends": "up"}
    db.expire_all()
    row = db.query(AuditLog).filter(AuditLog.action_type == "ai_market_insights").one()
    assert row.actor_user_id == candidate.id
    assert get_ai_usage_stats(db)["operationsByType"] == {"market_insights": 1}


def test_ai_provider_failure_is_502(client, monkeypatch, ai_configured, employer):
    service, _ = make_service([httpx.Response(401, text="bad key")])
    monkeypatch.setattr(ai_router, "ai_service", service)

    response = client.post(
        "/api/ai/generate-job-description",
        json={"title": "COO", "level": "C_SUITE", "location": "Chicago, IL"},
        headers=bearer(employer),
    )
    assert response.status_code == 502
    assert response.json()["error"] == "AI service is temporarily unavailable"


def test_candidates_cannot_generate_job_descriptions(client, ai_configured, candidate):
    response = client.post(
        "/api/ai/generate-job-description",
        json={"title": "COO", "level": "C_SUITE", "location": "Chicago, IL"},
        headers=bearer(candidate),
    )
    assert response.status_code == 403
