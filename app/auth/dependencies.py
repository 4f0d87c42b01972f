"""
ExecBoard - Authentication Dependencies

FastAPI dependencies for route protection and session injection.

Usage in routers:
    from ..auth.dependencies import get_current_session, require_role

    @router.post("/jobs")
    def create_job(session: SessionUser = Depends(require_employer_profile)):
        ...

Dependency hierarchy:
    get_current_user           - Base: resolves the bearer token to an ACTIVE user (401/403)
    get_current_session        - The user as a SessionUser with profile ids from the database
    get_optional_session       - Same, or None for anonymous callers (public routes)
    require_role(*roles)       - Adds: session role must be one of roles (403)
    require_candidate_profile  - Adds: CANDIDATE with a linked candidate profile (403/404)
    require_employer_profile   - Adds: EMPLOYER with a linked employer profile (403/404)
    get_current_admin          - Adds: ADMIN

Routes declare their rate limit in the decorator's ``dependencies=[...]``,
which FastAPI resolves before any parameter dependency, so a throttled
request never reaches authentication, and body validation errors are only
raised once every dependency has passed.
"""
import json
import logging
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import AuthenticationRequired, Forbidden, NotFound
from .models import User, AuditLog
from .schemas import SessionUser, UserRole
from .service import auth_service

logger = logging.getLogger("execboard.auth")

# auto_error=False so a missing token goes through our 401 envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# -----------------------------------------------------------------------------
# Core Authentication Dependencies
# -----------------------------------------------------------------------------

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from the JWT in the Authorization header.

    Raises:
        AuthenticationRequired: 401 if no token, bad token, or unknown user
        Forbidden: 403 if the account is suspended
    """
    if not token:
        logger.debug("No token provided")
        raise AuthenticationRequired(headers={"WWW-Authenticate": "Bearer"})

    token_data = auth_service.verify_access_token(token)
    if not token_data:
        raise AuthenticationRequired(headers={"WWW-Authenticate": "Bearer"})

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if not user:
        logger.warning(f"Token valid but user {token_data.user_id} not found")
        raise AuthenticationRequired(headers={"WWW-Authenticate": "Bearer"})

    if not user.is_active:
        logger.warning(f"Suspended user {user.id} attempted access")
        raise Forbidden("Account is suspended")

    return user


async def get_current_session(
    user: User = Depends(get_current_user)
) -> SessionUser:
    """Session for the request; role and profile ids come from the database, not the token."""
    return SessionUser(
        id=user.id,
        email=user.email,
        role=user.role,
        candidate_profile_id=user.candidate_profile.id if user.candidate_profile else None,
        employer_profile_id=user.employer_profile.id if user.employer_profile else None,
    )


async def get_optional_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[SessionUser]:
    """Session for public routes that show more to signed-in owners; None when anonymous."""
    if not token:
        return None
    try:
        user = await get_current_user(token, db)
    except (AuthenticationRequired, Forbidden):
        return None
    return await get_current_session(user)


def require_role(*roles: UserRole):
    """
    Dependency factory: the session's role must be one of ``roles``.

        @router.get("/mine")
        def mine(session: SessionUser = Depends(require_role(UserRole.EMPLOYER))):
    """
    allowed = {UserRole(r) for r in roles}

    async def _require_role(session: SessionUser = Depends(get_current_session)) -> SessionUser:
        if session.role not in allowed:
            logger.info(f"User {session.id} ({session.role.value}) denied; needs {sorted(r.value for r in allowed)}")
            raise Forbidden()
        return session

    return _require_role


async def require_candidate_profile(
    session: SessionUser = Depends(require_role(UserRole.CANDIDATE))
) -> SessionUser:
    if not session.candidate_profile_id:
        raise NotFound("Candidate profile not found")
    return session


async def require_employer_profile(
    session: SessionUser = Depends(require_role(UserRole.EMPLOYER))
) -> SessionUser:
    if not session.employer_profile_id:
        raise NotFound("Employer profile not found")
    return session


async def get_current_admin(
    session: SessionUser = Depends(require_role(UserRole.ADMIN))
) -> SessionUser:
    return session


# -----------------------------------------------------------------------------
# Audit Trail
# -----------------------------------------------------------------------------

def log_admin_action(
    db: Session,
    actor_user_id: Optional[int],
    action_type: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    details: Optional[Any] = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Record an admin action or AI operation in the audit log.

    Runs after the primary change has committed; a failure here is logged
    and never undoes or fails the action itself.
    """
    try:
        entry = AuditLog(
            actor_user_id=actor_user_id,
            action_type=action_type,
            target_type=target_type,
            target_id=target_id,
            details_json=json.dumps(details, default=str) if details is not None else None,
            ip_address=ip_address,
        )
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to write audit entry {action_type}: {e}")
        return None

    logger.info(f"Audit: user {actor_user_id} {action_type} {target_type or ''} {target_id or ''}".rstrip())
    return entry
