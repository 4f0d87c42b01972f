from app.models import Job
from conftest import bearer, create_job, create_tier

JOB_BODY = {
    "title": "Chief Operating Officer",
    "level": "C_SUITE",
    "location": "Nashville, TN",
    "description_rich": "Own hospital operations across the region.",
    "compensation_min": 350000,
    "compensation_max": 450000,
}


def test_tiers_are_listed_cheapest_first(client, db):
    create_tier(db, "Premium", 79900)
    create_tier(db, "Standard", 29900)
    create_tier(db, "Retired", 100, active=False)

    names = [t["name"] for t in client.get("/api/tiers").json()["data"]]
    assert names == ["Standard", "Premium"]


def test_post_job_goes_to_review(client, db, employer, tier):
    response = client.post("/api/jobs", json={**JOB_BODY, "tier_id": tier.id}, headers=bearer(employer))

    assert response.status_code == 201
    assert response.json()["message"] == "Job posted successfully. It will be reviewed by an administrator."
    job = db.get(Job, response.json()["data"]["jobId"])
    assert job.status == "PENDING_ADMIN_REVIEW"
    assert job.employer_id == employer.employer_profile.id


def test_post_job_with_unknown_tier(client, db, employer):
    response = client.post("/api/jobs", json={**JOB_BODY, "tier_id": 42}, headers=bearer(employer))
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid tier"
    assert db.query(Job).count() == 0


def test_job_under_review_is_hidden_from_public(client, db, employer, admin_user, candidate, tier):
    job = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW")
    url = f"/api/jobs/{job.id}"

    assert client.get(url).status_code == 404
    assert client.get(url, headers=bearer(candidate)).status_code == 404
    assert client.get(url, headers=bearer(employer)).status_code == 200
    assert client.get(url, headers=bearer(admin_user)).status_code == 200


def test_live_job_detail_is_public(client, db, employer, tier):
    job = create_job(db, employer, tier)
    data = client.get(f"/api/jobs/{job.id}", headers={"Authorization": "Bearer expired"}).json()["data"]
    assert data["description_rich"].startswith("Lead nursing strategy")
    assert data["org_name"] == "Mercy Health"


def test_my_jobs_include_every_status(client, db, employer, tier):
    create_job(db, employer, tier, status="DRAFT")
    create_job(db, employer, tier, status="LIVE")
    statuses = {j["status"] for j in client.get("/api/jobs/mine", headers=bearer(employer)).json()["data"]}
    assert statuses == {"DRAFT", "LIVE"}


def test_public_listing_respects_take(client, db, employer, tier):
    for i in range(3):
        create_job(db, employer, tier, title=f"Director {i}")
    assert len(client.get("/api/jobs/list?take=2").json()["data"]) == 2


def test_listing_is_cached_until_a_job_goes_live(client, db, counter_store, admin_user, employer, tier):
    create_job(db, employer, tier)
    assert len(client.get("/api/jobs/list").json()["data"]) == 1
    assert "jobs:list:live:20" in counter_store.values

    pending = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW", title="CFO")
    # served from the cache
    assert len(client.get("/api/jobs/list").json()["data"]) == 1

    client.post("/api/admin/approve-job", json={"job_id": pending.id}, headers=bearer(admin_user))
    assert len(client.get("/api/jobs/list").json()["data"]) == 2


def test_health_without_optional_services(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["cache"] == "not_configured"


def test_health_reports_degraded_cache(client, failing_store):
    data = client.get("/api/health").json()["data"]
    assert data["status"] == "degraded"
    assert data["checks"]["cache"] == "error"


def test_security_headers(client):
    response = client.get("/api/tiers")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
