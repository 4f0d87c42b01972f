"""
ExecBoard - Profile management API.

Each account has one profile matching its role: candidates keep their
executive background, employers their organization details. The profile
for the caller's role is read and updated through the same two endpoints.
"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Any, Dict
import logging

from ..auth.dependencies import get_current_session
from ..auth.schemas import SessionUser, UserRole
from ..database import get_db
from ..errors import NotFound, ValidationFailed
from ..models import CandidateProfile, EmployerProfile
from ..rate_limit import RateLimit
from ..responses import success_response
from ..schemas import (
    CandidateProfileResponse, CandidateProfileUpdate,
    EmployerProfileResponse, EmployerProfileUpdate,
)
from ..validation import validate_payload

logger = logging.getLogger("execboard.profile")
router = APIRouter()

# role -> (model, update schema, response schema)
PROFILE_KINDS = {
    UserRole.CANDIDATE: (CandidateProfile, CandidateProfileUpdate, CandidateProfileResponse),
    UserRole.EMPLOYER: (EmployerProfile, EmployerProfileUpdate, EmployerProfileResponse),
}

# Clearing one of these columns stores its default instead of NULL
NOT_NULL_DEFAULTS = {"full_name": "", "org_name": "", "org_type": "OTHER"}


def _load_profile(db: Session, session: SessionUser):
    if session.role not in PROFILE_KINDS:
        raise ValidationFailed("Unsupported role")
    model, update_schema, response_schema = PROFILE_KINDS[session.role]
    profile = db.query(model).filter(model.user_id == session.id).first()
    if not profile:
        raise NotFound("Profile not found")
    return profile, update_schema, response_schema


@router.get("/profile", dependencies=[Depends(RateLimit("rl:api"))])
def get_profile(
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    profile, _, response_schema = _load_profile(db, session)
    return success_response({
        "role": session.role.value,
        "profile": response_schema.model_validate(profile).model_dump(),
    })


@router.put("/profile", dependencies=[Depends(RateLimit("rl:profile", 30, 60))])
def update_profile(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_current_session),
):
    """Update the caller's profile. Only fields present in the body are changed."""
    profile, update_schema, response_schema = _load_profile(db, session)
    update = validate_payload(update_schema, payload)

    changes = update.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in NOT_NULL_DEFAULTS:
            value = NOT_NULL_DEFAULTS[field]
        setattr(profile, field, value)

    db.commit()
    db.refresh(profile)
    logger.info(f"User {session.id} updated {session.role.value.lower()} profile fields {sorted(changes)}")
    return success_response(
        {"role": session.role.value, "profile": response_schema.model_validate(profile).model_dump()},
        "Profile updated successfully",
    )
