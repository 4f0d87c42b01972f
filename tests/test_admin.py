import json

from app.auth.models import AuditLog, RefreshToken, User
from app.models import EmployerProfile, Job, Notification
from conftest import PASSWORD, bearer, create_job, create_user


def notifications_of(db, user, type_):
    return db.query(Notification).filter(Notification.user_id == user.id, Notification.type == type_).all()


def test_admin_routes_require_admin(client, candidate):
    response = client.get("/api/admin/pending-jobs", headers=bearer(candidate))
    assert response.status_code == 403


def test_approve_job_goes_live_once(client, db, admin_user, employer, tier):
    job = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW")

    first = client.post("/api/admin/approve-job", json={"job_id": job.id}, headers=bearer(admin_user))
    second = client.post("/api/admin/approve-job", json={"job_id": job.id}, headers=bearer(admin_user))

    assert first.status_code == 200
    assert first.json()["data"]["status"] == "LIVE"
    assert second.status_code == 409
    assert second.json()["error"] == "Job is already live"

    db.expire_all()
    stored = db.get(Job, job.id)
    assert stored.status == "LIVE"
    assert stored.published_at is not None
    assert len(notifications_of(db, employer, "JOB_APPROVED")) == 1
    assert db.query(AuditLog).filter(AuditLog.action_type == "approve_job").count() == 1


def test_approved_job_appears_on_public_board(client, db, admin_user, employer, tier):
    job = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW")
    assert client.get("/api/jobs/list").json()["data"] == []

    client.post("/api/admin/approve-job", json={"job_id": job.id}, headers=bearer(admin_user))

    listed = client.get("/api/jobs/list").json()["data"]
    assert [j["id"] for j in listed] == [job.id]
    assert listed[0]["org_name"] == "Mercy Health"


def test_cannot_approve_unpaid_draft(client, db, admin_user, employer, tier):
    job = create_job(db, employer, tier, status="DRAFT")
    response = client.post("/api/admin/approve-job", json={"job_id": job.id}, headers=bearer(admin_user))
    assert response.status_code == 409


def test_approve_unknown_job(client, admin_user):
    response = client.post("/api/admin/approve-job", json={"job_id": 9999}, headers=bearer(admin_user))
    assert response.status_code == 404


def test_reject_job_notifies_with_reason(client, db, admin_user, employer, tier):
    job = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW")

    response = client.post(
        "/api/admin/reject-job",
        json={"job_id": job.id, "reason": "Compensation range missing"},
        headers=bearer(admin_user),
    )
    assert response.status_code == 200

    repeat = client.post("/api/admin/reject-job", json={"job_id": job.id}, headers=bearer(admin_user))
    assert repeat.status_code == 409

    db.expire_all()
    rejected = notifications_of(db, employer, "JOB_REJECTED")
    assert len(rejected) == 1
    assert "Compensation range missing" in rejected[0].message


def test_pending_jobs_are_paginated(client, db, admin_user, employer, tier):
    for i in range(3):
        create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW", title=f"Director {i}")
    create_job(db, employer, tier, status="LIVE")

    data = client.get("/api/admin/pending-jobs?per_page=2", headers=bearer(admin_user)).json()["data"]
    assert data["total"] == 3
    assert data["pages"] == 2
    assert [j["title"] for j in data["items"]] == ["Director 0", "Director 1"]


def test_approve_employer_once(client, db, admin_user):
    pending = create_user(db, "EMPLOYER", "clinic@example.com", org_name="Lakeside Clinic")
    profile_id = pending.employer_profile.id

    listed = client.get("/api/admin/pending-employers", headers=bearer(admin_user)).json()["data"]
    assert [e["id"] for e in listed["items"]] == [profile_id]

    first = client.post("/api/admin/approve-employer", json={"employer_id": profile_id}, headers=bearer(admin_user))
    second = client.post("/api/admin/approve-employer", json={"employer_id": profile_id}, headers=bearer(admin_user))

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "Employer is already approved"
    db.expire_all()
    assert db.get(EmployerProfile, profile_id).admin_approved is True
    assert len(notifications_of(db, pending, "EMPLOYER_APPROVED")) == 1


def test_update_user_requires_a_change(client, admin_user, candidate):
    response = client.patch(f"/api/admin/users/{candidate.id}", json={}, headers=bearer(admin_user))
    assert response.status_code == 400
    assert response.json()["error"] == "Role or status must be provided"


def test_admin_cannot_suspend_or_demote_self(client, admin_user):
    suspend = client.patch(
        f"/api/admin/users/{admin_user.id}", json={"status": "SUSPENDED"}, headers=bearer(admin_user)
    )
    demote = client.patch(
        f"/api/admin/users/{admin_user.id}", json={"role": "CANDIDATE"}, headers=bearer(admin_user)
    )
    assert suspend.status_code == 400
    assert suspend.json()["error"] == "You cannot suspend yourself"
    assert demote.json()["error"] == "You cannot change your own role"


def test_suspending_user_revokes_sessions(client, db, admin_user, candidate):
    client.post("/auth/login", data={"username": "candidate@example.com", "password": PASSWORD})

    response = client.patch(
        f"/api/admin/users/{candidate.id}", json={"status": "SUSPENDED"}, headers=bearer(admin_user)
    )
    assert response.status_code == 200

    db.expire_all()
    tokens = db.query(RefreshToken).filter(RefreshToken.user_id == candidate.id).all()
    assert tokens and all(t.revoked for t in tokens)
    assert client.get("/auth/me", headers=bearer(candidate)).status_code == 403

    entry = db.query(AuditLog).filter(AuditLog.action_type == "update_user").one()
    assert json.loads(entry.details_json)["status"] == {"from": "ACTIVE", "to": "SUSPENDED"}


def test_role_change_creates_missing_profile(client, db, admin_user, candidate):
    response = client.patch(
        f"/api/admin/users/{candidate.id}", json={"role": "EMPLOYER"}, headers=bearer(admin_user)
    )
    assert response.status_code == 200
    db.expire_all()
    user = db.get(User, candidate.id)
    assert user.role == "EMPLOYER"
    assert user.employer_profile is not None


def test_audit_log_filter(client, db, admin_user, employer, tier):
    job = create_job(db, employer, tier, status="PENDING_ADMIN_REVIEW")
    client.post("/api/admin/approve-job", json={"job_id": job.id}, headers=bearer(admin_user))

    data = client.get("/api/admin/audit-log?action=approve_job", headers=bearer(admin_user)).json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["details"]["previousStatus"] == "PENDING_ADMIN_REVIEW"
