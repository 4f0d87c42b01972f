import pytest

from app.errors import ValidationFailed
from app.models import Job
from app.schemas import JobCreate, JobListQuery
from app.security import sanitize_optional, sanitize_plain_text
from app.validation import validate_payload
from conftest import bearer


def test_sanitize_plain_text_normalizes_and_truncates():
    raw = "  Line one\r\nLine\x00 two\x07\x1f\x7f  "
    assert sanitize_plain_text(raw) == "Line one\nLine two"
    assert sanitize_plain_text("abcdef", 3) == "abc"
    # tab and newline are kept
    assert sanitize_plain_text("a\tb\nc") == "a\tb\nc"


def test_sanitize_optional_blank_becomes_none():
    assert sanitize_optional(None) is None
    assert sanitize_optional("   \x00 ") is None


def test_validate_payload_lists_every_bad_field():
    with pytest.raises(ValidationFailed) as exc_info:
        validate_payload(JobCreate, {"title": "", "level": "INTERN", "description_rich": "x", "tier_id": "abc"})

    paths = {d["path"] for d in exc_info.value.details}
    assert {"title", "level", "tier_id"} <= paths
    assert exc_info.value.message.startswith("Validation failed: ")


def test_validate_payload_does_not_mutate_input():
    data = {"take": "5"}
    parsed = validate_payload(JobListQuery, data)
    assert parsed.take == 5
    assert data == {"take": "5"}


def test_job_location_built_from_legacy_fields():
    job = JobCreate(
        title="VP of Operations",
        level="VP",
        location_city="Denver",
        location_state="CO",
        description_rich="Run operations.",
        tier_id=1,
    )
    assert job.location == "Denver, CO"


def test_compensation_range_must_be_ordered():
    with pytest.raises(ValueError):
        JobCreate(
            title="CFO", level="C_SUITE", location="Remote", description_rich="Finance.",
            tier_id=1, compensation_min=300000, compensation_max=200000,
        )


def test_malformed_body_is_rejected_without_side_effects(client, db, employer, tier):
    response = client.post(
        "/api/jobs",
        json={"title": "CNO", "level": "NOT_A_LEVEL", "tier_id": tier.id},
        headers=bearer(employer),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"].startswith("Validation failed")
    assert "timestamp" in body
    assert any(d["path"] == "level" for d in body["details"])
    assert db.query(Job).count() == 0


def test_query_string_validation_uses_same_envelope(client):
    response = client.get("/api/jobs/list?take=500")
    assert response.status_code == 400
    assert response.json()["details"][0]["path"] == "take"


def test_free_text_is_sanitized_before_persistence(client, db, employer, tier):
    response = client.post(
        "/api/jobs",
        json={
            "title": "  Chief\x00 Medical Officer  ",
            "level": "C_SUITE",
            "location": "Austin, TX",
            "description_rich": "Lead\r\nclinical quality.",
            "tier_id": tier.id,
        },
        headers=bearer(employer),
    )
    assert response.status_code == 201
    job = db.query(Job).one()
    assert job.title == "Chief Medical Officer"
    assert job.description_rich == "Lead\nclinical quality."


def test_success_envelope_shape(client, tier):
    body = client.get("/api/tiers").json()
    assert body["success"] is True
    assert body["data"][0]["name"] == "Standard"


def test_unexpected_errors_do_not_leak(client, monkeypatch, tier):
    from app.routers import jobs

    class ExplodingSchema:
        @classmethod
        def model_validate(cls, obj):
            raise RuntimeError("secret connection string")

    monkeypatch.setattr(jobs, "TierResponse", ExplodingSchema)
    response = client.get("/api/tiers")
    assert response.status_code == 500
    assert "secret" not in response.text
    assert response.json()["error"] == "An unexpected error occurred. Please try again later."
