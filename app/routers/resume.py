"""
ExecBoard - Resume upload and management.

Uploads are validated in full (size, extension, MIME type, magic bytes)
before anything touches the disk or the database. Text is then extracted
best-effort so the AI resume analysis can work from a stored resume.
"""
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..auth.dependencies import require_candidate_profile
from ..auth.schemas import SessionUser
from ..database import get_db
from ..errors import NotFound, ValidationFailed
from ..models import Resume
from ..rate_limit import RateLimit
from ..responses import created_response, success_response
from ..schemas import ResumeResponse, ResumeUpdate
from ..security import UploadValidationError, validate_resume_upload
from ..services.resume_helper import delete_resume_file, extract_resume_text, store_resume_file

logger = logging.getLogger("execboard.uploads")
router = APIRouter()


def _get_own_resume(db: Session, resume_id: int, session: SessionUser) -> Resume:
    resume = db.query(Resume).filter(
        Resume.id == resume_id,
        Resume.candidate_id == session.candidate_profile_id,
    ).first()
    if not resume:
        raise NotFound("Resume not found")
    return resume


@router.post("/resume/upload", status_code=201, dependencies=[Depends(RateLimit("rl:resume-upload", 10, 60))])
async def upload_resume(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """
    Upload a PDF or Word resume.

    The candidate's first resume becomes their primary resume.
    """
    if file is None or not file.filename:
        raise ValidationFailed("No file provided")

    data = await file.read()
    try:
        upload = validate_resume_upload(session.candidate_profile_id, file.filename, file.content_type, data)
    except UploadValidationError as e:
        raise ValidationFailed(str(e))

    path = store_resume_file(upload)
    has_resume = db.query(Resume).filter(Resume.candidate_id == session.candidate_profile_id).first() is not None

    resume = Resume(
        candidate_id=session.candidate_profile_id,
        file_url=path,
        file_name=upload.original_file_name,
        file_mime_type=upload.mime_type,
        file_size=upload.size,
        is_primary=not has_resume,
        parsed_text=extract_resume_text(upload.data, upload.extension),
    )
    db.add(resume)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        delete_resume_file(path)
        raise
    db.refresh(resume)

    logger.info(f"Candidate {session.candidate_profile_id} uploaded resume {resume.id} ({upload.size} bytes)")
    return created_response(ResumeResponse.model_validate(resume).model_dump(), "Resume uploaded successfully")


@router.get("/resume", dependencies=[Depends(RateLimit("rl:resume", 60, 60))])
def list_resumes(
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """The candidate's resumes, primary first, then newest."""
    resumes = (
        db.query(Resume)
        .filter(Resume.candidate_id == session.candidate_profile_id)
        .order_by(Resume.is_primary.desc(), Resume.uploaded_at.desc(), Resume.id.desc())
        .all()
    )
    return success_response([ResumeResponse.model_validate(r).model_dump() for r in resumes])


@router.patch("/resume", dependencies=[Depends(RateLimit("rl:resume", 30, 60))])
def update_resume(
    update: ResumeUpdate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """Set or unset the primary flag; exactly one resume stays primary."""
    resume = _get_own_resume(db, update.resume_id, session)
    others = db.query(Resume).filter(
        Resume.candidate_id == session.candidate_profile_id,
        Resume.is_primary == True,
        Resume.id != resume.id,
    )

    if update.is_primary:
        others.update({"is_primary": False}, synchronize_session=False)
    elif others.first() is None:
        raise ValidationFailed(
            "Cannot unset primary resume. At least one resume must be marked as primary."
        )

    resume.is_primary = update.is_primary
    db.commit()
    db.refresh(resume)
    return success_response(ResumeResponse.model_validate(resume).model_dump())


@router.delete("/resume", dependencies=[Depends(RateLimit("rl:resume", 30, 60))])
def delete_resume(
    id: int = Query(...),
    db: Session = Depends(get_db),
    session: SessionUser = Depends(require_candidate_profile),
):
    """Delete a resume row and its file. A file that cannot be removed is only logged."""
    resume = _get_own_resume(db, id, session)
    path = resume.file_url

    db.delete(resume)
    db.commit()
    delete_resume_file(path)

    logger.info(f"Candidate {session.candidate_profile_id} deleted resume {id}")
    return success_response(message="Resume deleted")
