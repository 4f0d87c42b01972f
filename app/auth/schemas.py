"""
ExecBoard - Authentication Schemas

Pydantic schemas for auth request/response validation and the per-request session.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    CANDIDATE = "CANDIDATE"
    EMPLOYER = "EMPLOYER"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class SelfServiceRole(str, Enum):
    """Roles a visitor may pick at registration (ADMIN is granted, never chosen)."""
    CANDIDATE = "CANDIDATE"
    EMPLOYER = "EMPLOYER"


# -----------------------------------------------------------------------------
# Registration
# -----------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128, description="Password must be at least 8 characters")
    role: SelfServiceRole


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------

class SessionUser(BaseModel):
    """
    The caller, resolved once per request from the bearer token.

    Profile ids are read from the database rather than the token so that
    approvals and role changes apply without re-login.
    """
    id: int
    email: str
    role: UserRole
    candidate_profile_id: Optional[int] = None
    employer_profile_id: Optional[int] = None


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    status: UserStatus
    created_at: datetime

    class Config:
        from_attributes = True


# -----------------------------------------------------------------------------
# Token Schemas
# -----------------------------------------------------------------------------

class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class TokenRefresh(BaseModel):
    """Schema for token refresh and logout requests."""
    refresh_token: str


class TokenData(BaseModel):
    """Schema for decoded token data (internal use)."""
    user_id: int
    email: str
    role: UserRole
    exp: datetime


# -----------------------------------------------------------------------------
# Password Schemas
# -----------------------------------------------------------------------------

class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=10)
    new_password: str = Field(..., min_length=8, max_length=128)
