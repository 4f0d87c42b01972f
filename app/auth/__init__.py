"""
ExecBoard - Authentication Module

JWT bearer authentication with role and profile gates.

Usage:
    from app.auth import get_current_session, require_role, UserRole

    @router.get("/protected")
    def protected_route(session: SessionUser = Depends(require_role(UserRole.ADMIN))):
        return {"user_id": session.id}

Configuration (environment variables):
    EXECBOARD_SECRET_KEY=<key>          - JWT signing key (required in production)
    EXECBOARD_ACCESS_TOKEN_EXPIRE_MINUTES=60
    EXECBOARD_REFRESH_TOKEN_EXPIRE_DAYS=7
    EXECBOARD_ADMIN_EMAIL=<email>       - Promote this account to ADMIN at startup
"""

# Models
from .models import User, RefreshToken, AuditLog

# Schemas
from .schemas import SessionUser, UserRole, UserStatus

# Service
from .service import auth_service, AuthServiceError

# Dependencies (for use in routers)
from .dependencies import (
    get_current_user,
    get_current_session,
    get_optional_session,
    require_role,
    require_candidate_profile,
    require_employer_profile,
    get_current_admin,
    log_admin_action,
)

# Router (for mounting in main.py)
from .router import router

__all__ = [
    # Models
    "User",
    "RefreshToken",
    "AuditLog",
    # Schemas
    "SessionUser",
    "UserRole",
    "UserStatus",
    # Service
    "auth_service",
    "AuthServiceError",
    # Dependencies
    "get_current_user",
    "get_current_session",
    "get_optional_session",
    "require_role",
    "require_candidate_profile",
    "require_employer_profile",
    "get_current_admin",
    "log_admin_action",
    # Router
    "router",
]
