import json

from app.models import CandidateProfile, EmployerProfile
from conftest import bearer


def test_get_own_profile(client, candidate):
    data = client.get("/api/profile", headers=bearer(candidate)).json()["data"]
    assert data["role"] == "CANDIDATE"
    assert data["profile"]["full_name"] == "Casey Candidate"


def test_partial_candidate_update(client, db, candidate):
    response = client.put(
        "/api/profile",
        json={
            "current_title": "  VP, Patient Care Services ",
            "willing_to_relocate": True,
            "target_levels_json": json.dumps(["C_SUITE", "VP"]),
        },
        headers=bearer(candidate),
    )

    assert response.status_code == 200
    db.expire_all()
    profile = db.query(CandidateProfile).one()
    assert profile.current_title == "VP, Patient Care Services"
    assert profile.willing_to_relocate is True
    # untouched fields keep their values
    assert profile.full_name == "Casey Candidate"


def test_invalid_json_field_is_rejected(client, db, candidate):
    response = client.put(
        "/api/profile", json={"target_levels_json": "[not json"}, headers=bearer(candidate)
    )
    assert response.status_code == 400
    assert response.json()["details"][0]["path"] == "target_levels_json"


def test_clearing_required_column_stores_default(client, db, employer):
    response = client.put("/api/profile", json={"org_name": None}, headers=bearer(employer))
    assert response.status_code == 200
    db.expire_all()
    assert db.query(EmployerProfile).one().org_name == ""


def test_employer_website_must_be_a_url(client, employer):
    response = client.put("/api/profile", json={"website": "javascript:alert(1)"}, headers=bearer(employer))
    assert response.status_code == 400


def test_admin_has_no_profile(client, admin_user):
    response = client.get("/api/profile", headers=bearer(admin_user))
    assert response.status_code == 400
    assert response.json()["error"] == "Unsupported role"
