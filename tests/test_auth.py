from app.auth.models import RefreshToken, User
from app.auth.tokens import generate_reset_token
from app.models import CandidateProfile, EmployerProfile, Job
from app.services.email_service import email_service
from conftest import PASSWORD, bearer, create_user


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", data={"username": email, "password": password})


def test_register_creates_account_and_profile(client, db):
    response = client.post(
        "/auth/register",
        json={"email": "New.Exec@Example.com", "password": "s3cure-pass", "role": "EMPLOYER"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Registration successful"
    user = db.query(User).filter(User.id == body["data"]["userId"]).one()
    assert user.email == "new.exec@example.com"
    assert user.status == "ACTIVE"
    profile = db.query(EmployerProfile).filter(EmployerProfile.user_id == user.id).one()
    assert profile.admin_approved is False


def test_register_duplicate_email(client, db, candidate):
    response = client.post(
        "/auth/register",
        json={"email": "CANDIDATE@example.com", "password": "s3cure-pass", "role": "CANDIDATE"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Email already registered"
    assert db.query(CandidateProfile).count() == 1


def test_register_cannot_choose_admin(client, db):
    response = client.post(
        "/auth/register",
        json={"email": "boss@example.com", "password": "s3cure-pass", "role": "ADMIN"},
    )
    assert response.status_code == 400
    assert db.query(User).count() == 0


def test_login_returns_token_pair(client, candidate):
    response = login(client, "candidate@example.com")
    assert response.status_code == 200
    tokens = response.json()["data"]
    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"] and tokens["refresh_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.json()["data"]["role"] == "CANDIDATE"
    assert me.json()["data"]["candidate_profile_id"] is not None


def test_login_wrong_password(client, candidate):
    response = login(client, "candidate@example.com", "not-the-password")
    assert response.status_code == 401
    assert response.json()["error"] == "Incorrect email or password"


def test_suspended_user_cannot_login_or_use_tokens(client, db):
    user = create_user(db, "CANDIDATE", "gone@example.com", status="SUSPENDED")
    assert login(client, "gone@example.com").status_code == 403
    assert client.get("/auth/me", headers=bearer(user)).status_code == 403


def test_refresh_rotates_token(client, db, candidate):
    refresh = login(client, "candidate@example.com").json()["data"]["refresh_token"]

    rotated = client.post("/auth/refresh", json={"refresh_token": refresh})
    assert rotated.status_code == 200
    assert rotated.json()["data"]["refresh_token"] != refresh

    replay = client.post("/auth/refresh", json={"refresh_token": refresh})
    assert replay.status_code == 401


def test_logout_revokes_refresh_token(client, candidate):
    refresh = login(client, "candidate@example.com").json()["data"]["refresh_token"]
    assert client.post("/auth/logout", json={"refresh_token": refresh}).status_code == 200
    assert client.post("/auth/refresh", json={"refresh_token": refresh}).status_code == 401


def test_protected_route_requires_token(client):
    response = client.get("/api/applications")
    assert response.status_code == 401
    body = response.json()
    assert "success" not in body
    assert body["error"]
    assert "timestamp" in body


def test_invalid_token_is_rejected(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_wrong_role_is_forbidden_without_side_effects(client, db, candidate, tier):
    response = client.post(
        "/api/jobs",
        json={
            "title": "Chief Strategy Officer",
            "level": "C_SUITE",
            "location": "Remote",
            "description_rich": "Set strategy.",
            "tier_id": tier.id,
        },
        headers=bearer(candidate),
    )
    assert response.status_code == 403
    assert db.query(Job).count() == 0


def test_unapproved_employer_cannot_post(client, db, tier):
    employer = create_user(db, "EMPLOYER", "new-employer@example.com")
    response = client.post(
        "/api/jobs",
        json={
            "title": "VP Finance",
            "level": "VP",
            "location": "Remote",
            "description_rich": "Own the budget.",
            "tier_id": tier.id,
        },
        headers=bearer(employer),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Employer account must be approved to post jobs"


def test_forgot_password_is_uniform(client, monkeypatch, candidate):
    sent = []

    async def capture(to_email, token):
        sent.append((to_email, token))
        return True

    monkeypatch.setattr(email_service, "send_password_reset_email", capture)

    known = client.post("/auth/forgot-password", json={"email": "candidate@example.com"})
    unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert known.json()["message"] == unknown.json()["message"]
    assert [email for email, _ in sent] == ["candidate@example.com"]


def test_reset_password_revokes_sessions_and_is_single_use(client, db, candidate):
    login(client, "candidate@example.com")
    token = generate_reset_token(candidate.id, candidate.hashed_password)

    response = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert response.status_code == 200

    db.expire_all()
    assert all(t.revoked for t in db.query(RefreshToken).filter(RefreshToken.user_id == candidate.id))
    assert login(client, "candidate@example.com", "brand-new-pass").status_code == 200

    reused = client.post("/auth/reset-password", json={"token": token, "new_password": "another-pass"})
    assert reused.status_code == 400
