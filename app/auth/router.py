"""
ExecBoard - Authentication Router

API endpoints for account authentication.

Endpoints:
    POST /auth/register           - Email/password registration (candidate or employer)
    POST /auth/login              - Email/password login -> JWT tokens
    POST /auth/refresh            - Rotate refresh token
    POST /auth/logout             - Revoke refresh token
    GET  /auth/me                 - Current session
    POST /auth/forgot-password    - Request password reset email
    POST /auth/reset-password     - Reset password with token
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..errors import AuthenticationRequired, Conflict, Forbidden, ValidationFailed
from ..rate_limit import limiter, RATE_LIMIT_AUTH
from ..responses import created_response, success_response
from ..services.email_service import email_service
from .dependencies import get_current_session
from .schemas import (
    RegisterRequest, SessionUser, Token, TokenRefresh,
    PasswordResetRequest, PasswordResetConfirm,
)
from .service import auth_service, AuthServiceError, AccountSuspendedError
from .tokens import generate_reset_token

logger = logging.getLogger("execboard.auth")
router = APIRouter()

GENERIC_RESET_MESSAGE = "If an account exists with that email, a reset link has been sent."


# -----------------------------------------------------------------------------
# Registration & Login
# -----------------------------------------------------------------------------

@router.post("/register", status_code=201)
@limiter.limit(RATE_LIMIT_AUTH)
async def register(
    request: Request,
    user_data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """
    Register a new candidate or employer account.

    An empty profile of the matching kind is created alongside the account.
    """
    try:
        user = auth_service.register_user(
            email=user_data.email,
            password=user_data.password,
            role=user_data.role.value,
            db=db
        )
    except AuthServiceError as e:
        raise Conflict(str(e))

    return created_response(
        {"userId": user.id, "role": user.role},
        "Registration successful",
    )


@router.post("/login")
@limiter.limit(RATE_LIMIT_AUTH)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Login with email and password to get JWT tokens.

    Uses OAuth2 password flow for compatibility with OpenAPI/Swagger UI.
    The 'username' field should contain the email address.
    """
    try:
        user = auth_service.authenticate_user(
            email=form_data.username,  # OAuth2 form uses 'username' field
            password=form_data.password,
            db=db
        )
    except AccountSuspendedError:
        raise Forbidden("Account is suspended")

    if not user:
        raise AuthenticationRequired(
            "Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tokens = Token(**auth_service.issue_tokens(user, db))
    return success_response(tokens.model_dump())


@router.post("/refresh")
async def refresh_token(
    token_data: TokenRefresh,
    db: Session = Depends(get_db),
):
    """
    Refresh the access token using a valid refresh token.

    Implements token rotation: the old refresh token is revoked
    and a new one is issued.
    """
    try:
        tokens = auth_service.rotate_refresh_token(token_data.refresh_token, db)
    except AccountSuspendedError:
        raise Forbidden("Account is suspended")

    if not tokens:
        raise AuthenticationRequired("Invalid or expired refresh token")

    return success_response(Token(**tokens).model_dump())


@router.post("/logout")
async def logout(
    token_data: TokenRefresh,
    db: Session = Depends(get_db),
):
    """
    Logout by revoking the refresh token.

    The access token stays valid until it expires,
    but the refresh token cannot be used to get new access tokens.
    """
    auth_service.revoke_refresh_token(token_data.refresh_token, db)
    return success_response(message="Logged out successfully")


@router.get("/me")
async def get_me(session: SessionUser = Depends(get_current_session)):
    return success_response(session.model_dump())


# -----------------------------------------------------------------------------
# Password Reset
# -----------------------------------------------------------------------------

@router.post("/forgot-password")
@limiter.limit(RATE_LIMIT_AUTH)
async def forgot_password(
    request: Request,
    data: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Request a password reset email.

    Always returns the same message so the endpoint cannot be used
    to find out which emails are registered.
    """
    user = auth_service.get_user_by_email(data.email, db)
    if user and user.is_active:
        token = generate_reset_token(user.id, user.hashed_password)
        background_tasks.add_task(email_service.send_password_reset_email, user.email, token)
        logger.info(f"Password reset requested for user {user.id}")

    return success_response(message=GENERIC_RESET_MESSAGE)


@router.post("/reset-password")
@limiter.limit(RATE_LIMIT_AUTH)
async def reset_password(
    request: Request,
    data: PasswordResetConfirm,
    db: Session = Depends(get_db),
):
    """
    Reset password using a token from the reset email.

    The token is valid for 1 hour and only for the password it was issued
    against. After reset, all refresh tokens are revoked.
    """
    try:
        auth_service.reset_password(data.token, data.new_password, db)
    except AuthServiceError:
        raise ValidationFailed("Invalid or expired reset link. Please request a new one.")

    return success_response(message="Password reset successfully. You can now log in with your new password.")
