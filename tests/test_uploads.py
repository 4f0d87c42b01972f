import os

import pytest

from app.config import settings
from app.models import Resume
from app.security import UploadValidationError, validate_resume_upload
from app.security.uploads import MAX_RESUME_BYTES, sanitize_filename
from conftest import bearer

PDF_BYTES = b"%PDF-1.4\n% resume body that is not a real document\n"
DOCX_BYTES = b"PK\x03\x04" + b"\x00" * 64


def stored_files():
    if not os.path.isdir(settings.upload_dir):
        return []
    return os.listdir(settings.upload_dir)


def upload(client, user, name, data, mime="application/pdf"):
    return client.post(
        "/api/resume/upload",
        files={"file": (name, data, mime)},
        headers=bearer(user),
    )


# =============================================================================
# Validator
# =============================================================================

@pytest.mark.parametrize("name, data, mime, message", [
    ("cv.pdf", b"", "application/pdf", "Empty file"),
    ("cv.pdf", b"%PDF-" + b"0" * MAX_RESUME_BYTES, "application/pdf", "File size must be less than 5MB"),
    ("cv.txt", b"plain text", "text/plain", "Invalid file type. Please upload PDF or Word document."),
    ("cv.pdf", b"MZ\x90\x00 not a pdf", "application/pdf", "Invalid file content for PDF"),
    ("cv.docx", PDF_BYTES, "application/pdf", "Invalid file content for DOCX"),
    ("cv.pdf", PDF_BYTES, "image/png", "Invalid file type. Please upload PDF or Word document."),
])
def test_validator_rejects(name, data, mime, message):
    with pytest.raises(UploadValidationError) as exc_info:
        validate_resume_upload(7, name, mime, data)
    assert str(exc_info.value) == message


def test_validator_accepts_octet_stream_when_signature_matches():
    result = validate_resume_upload(7, "My Resume (final).docx", "application/octet-stream", DOCX_BYTES)
    assert result.mime_type == "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    assert result.stored_file_name.startswith("7_")
    assert result.stored_file_name.endswith("_My_Resume_final.docx")
    assert result.extension == "docx"


def test_sanitize_filename_strips_paths():
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("C:\\Users\\me\\cv.pdf") == "cv.pdf"
    assert sanitize_filename("...") == "resume"


# =============================================================================
# Routes
# =============================================================================

def test_bad_signature_leaves_no_trace(client, db, candidate):
    response = upload(client, candidate, "resume.pdf", b"GIF89a pretending")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid file content for PDF"
    assert stored_files() == []
    assert db.query(Resume).count() == 0


def test_missing_file(client, candidate):
    response = client.post("/api/resume/upload", headers=bearer(candidate))
    assert response.status_code == 400
    assert response.json()["error"] == "No file provided"


def test_employers_cannot_upload_resumes(client, employer):
    assert upload(client, employer, "resume.pdf", PDF_BYTES).status_code == 403


def test_first_upload_becomes_primary(client, db, candidate):
    first = upload(client, candidate, "first.pdf", PDF_BYTES)
    second = upload(client, candidate, "second.pdf", PDF_BYTES)

    assert first.status_code == 201
    assert first.json()["data"]["is_primary"] is True
    assert second.json()["data"]["is_primary"] is False
    assert len(stored_files()) == 2

    listed = client.get("/api/resume", headers=bearer(candidate)).json()["data"]
    assert [r["file_name"] for r in listed] == ["first.pdf", "second.pdf"]


def test_primary_can_move_but_not_disappear(client, db, candidate):
    first_id = upload(client, candidate, "first.pdf", PDF_BYTES).json()["data"]["id"]
    second_id = upload(client, candidate, "second.pdf", PDF_BYTES).json()["data"]["id"]

    unset = client.patch("/api/resume", json={"resume_id": first_id, "is_primary": False}, headers=bearer(candidate))
    assert unset.status_code == 400
    assert unset.json()["error"] == "Cannot unset primary resume. At least one resume must be marked as primary."

    moved = client.patch("/api/resume", json={"resume_id": second_id, "is_primary": True}, headers=bearer(candidate))
    assert moved.status_code == 200

    db.expire_all()
    primaries = db.query(Resume).filter(Resume.is_primary == True).all()
    assert [r.id for r in primaries] == [second_id]


def test_delete_removes_row_and_file(client, db, candidate):
    resume_id = upload(client, candidate, "cv.pdf", PDF_BYTES).json()["data"]["id"]

    response = client.delete(f"/api/resume?id={resume_id}", headers=bearer(candidate))

    assert response.status_code == 200
    assert stored_files() == []
    assert db.query(Resume).count() == 0


def test_cannot_touch_another_candidates_resume(client, db, candidate):
    from conftest import create_user

    resume_id = upload(client, candidate, "cv.pdf", PDF_BYTES).json()["data"]["id"]
    other = create_user(db, "CANDIDATE", "other@example.com")

    response = client.delete(f"/api/resume?id={resume_id}", headers=bearer(other))
    assert response.status_code == 404
    assert len(stored_files()) == 1
