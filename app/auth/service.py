"""
ExecBoard - Authentication Service

Core authentication logic including password hashing, JWT handling, and account management.

Features:
- Bcrypt password hashing
- JWT access token creation/validation
- Refresh token management with rotation
- Registration with an empty linked profile
- Password reset via signed tokens
"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
import secrets
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import CandidateProfile, EmployerProfile
from .models import User, RefreshToken
from .schemas import TokenData, UserRole
from .tokens import read_reset_token, reset_token_matches

logger = logging.getLogger("execboard.auth")


class AuthServiceError(Exception):
    """Custom exception for authentication errors."""
    pass


class AccountSuspendedError(AuthServiceError):
    pass


class AuthService:
    """
    Authentication service for account management and JWT handling.

    Provides:
    - Password hashing with bcrypt
    - JWT access/refresh token management
    - Registration and authentication
    """

    def __init__(self):
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=12  # Good balance of security and speed
        )

    # -------------------------------------------------------------------------
    # Password Hashing
    # -------------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        return self._pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if password matches, False otherwise (including malformed hashes)
        """
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password verification failed: {e}")
            return False

    # -------------------------------------------------------------------------
    # JWT Token Management
    # -------------------------------------------------------------------------

    def create_access_token(
        self,
        user: User,
        expires_delta: Optional[timedelta] = None
    ) -> Tuple[str, datetime]:
        """
        Create a JWT access token.

        The token carries the role and linked profile ids for clients; the
        server re-reads them from the database on every request.

        Returns:
            Tuple of (token_string, expiration_datetime)
        """
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(
                minutes=settings.auth.access_token_expire_minutes
            )

        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "candidate_profile_id": user.candidate_profile.id if user.candidate_profile else None,
            "employer_profile_id": user.employer_profile.id if user.employer_profile else None,
            "exp": expire,
            "iat": datetime.utcnow(),
            "type": "access"
        }

        token = jwt.encode(
            payload,
            settings.auth.secret_key,
            algorithm=settings.auth.algorithm
        )

        logger.debug(f"Created access token for user {user.id}")
        return token, expire

    def create_refresh_token(self, user: User, db: Session) -> Tuple[str, datetime]:
        """
        Create a refresh token and store it in the database.

        Uses secure random token generation (not JWT) for refresh tokens.
        """
        expire = datetime.utcnow() + timedelta(
            days=settings.auth.refresh_token_expire_days
        )

        token = secrets.token_urlsafe(32)

        db_token = RefreshToken(
            user_id=user.id,
            token=token,
            expires_at=expire
        )
        db.add(db_token)
        db.commit()

        logger.debug(f"Created refresh token for user {user.id}")
        return token, expire

    def issue_tokens(self, user: User, db: Session) -> dict:
        """Access + refresh pair in the shape of the Token schema."""
        access_token, _ = self.create_access_token(user)
        refresh_token, _ = self.create_refresh_token(user, db)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.auth.access_token_expire_minutes * 60,
        }

    def verify_access_token(self, token: str) -> Optional[TokenData]:
        """
        Verify and decode an access token.

        Returns:
            TokenData if valid, None if invalid/expired
        """
        try:
            payload = jwt.decode(
                token,
                settings.auth.secret_key,
                algorithms=[settings.auth.algorithm]
            )
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            return None

        if payload.get("type") != "access":
            logger.warning("Token is not an access token")
            return None

        user_id = payload.get("sub")
        email = payload.get("email")
        role = payload.get("role")

        if not user_id or not email or role not in UserRole.__members__:
            logger.warning("Token missing required claims")
            return None

        try:
            return TokenData(
                user_id=int(user_id),
                email=email,
                role=role,
                exp=datetime.utcfromtimestamp(payload["exp"])
            )
        except (KeyError, ValueError, TypeError):
            logger.warning("Token claims malformed")
            return None

    def verify_refresh_token(self, token: str, db: Session) -> Optional[User]:
        """
        Verify a refresh token and return the associated user.

        Returns:
            User if valid, None if invalid/expired/revoked

        Raises:
            AccountSuspendedError: the token is valid but the account is suspended
        """
        db_token = db.query(RefreshToken).filter(
            RefreshToken.token == token,
            RefreshToken.revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not db_token:
            logger.debug("Refresh token not found or expired")
            return None

        user = db.query(User).filter(User.id == db_token.user_id).first()

        if not user:
            logger.warning(f"User {db_token.user_id} not found for refresh token")
            return None

        if not user.is_active:
            logger.warning(f"User {user.id} is suspended")
            raise AccountSuspendedError("Account is suspended")

        return user

    def rotate_refresh_token(self, token: str, db: Session) -> Optional[dict]:
        """Revoke ``token`` and issue a new pair, or None when the token is unusable."""
        user = self.verify_refresh_token(token, db)
        if not user:
            return None
        self.revoke_refresh_token(token, db)
        return self.issue_tokens(user, db)

    def revoke_refresh_token(self, token: str, db: Session) -> bool:
        """
        Revoke a refresh token (logout).

        Returns:
            True if token was revoked, False if not found
        """
        db_token = db.query(RefreshToken).filter(
            RefreshToken.token == token
        ).first()

        if db_token:
            db_token.revoked = True
            db.commit()
            logger.debug(f"Revoked refresh token for user {db_token.user_id}")
            return True

        return False

    def revoke_all_user_tokens(self, user_id: int, db: Session) -> int:
        """Revoke all refresh tokens for a user (logout from all devices)."""
        count = db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked == False  # noqa: E712
        ).update({"revoked": True})

        db.commit()
        logger.info(f"Revoked {count} refresh tokens for user {user_id}")
        return count

    # -------------------------------------------------------------------------
    # Account Management
    # -------------------------------------------------------------------------

    def get_user_by_email(self, email: str, db: Session) -> Optional[User]:
        """Case-insensitive lookup."""
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def register_user(
        self,
        email: str,
        password: str,
        role: str,
        db: Session
    ) -> User:
        """
        Create an account and its empty linked profile in one transaction.

        Raises:
            AuthServiceError: If the email is already registered or the role is not self-service
        """
        if role not in (UserRole.CANDIDATE.value, UserRole.EMPLOYER.value):
            raise AuthServiceError("Invalid role")

        if self.get_user_by_email(email, db):
            raise AuthServiceError("Email already registered")

        user = User(
            email=email.strip().lower(),
            hashed_password=self.hash_password(password),
            role=role,
            status="ACTIVE",
        )
        db.add(user)
        db.flush()

        if role == UserRole.CANDIDATE.value:
            db.add(CandidateProfile(user_id=user.id, full_name=""))
        else:
            db.add(EmployerProfile(user_id=user.id, org_name="", org_type="OTHER"))

        db.commit()
        db.refresh(user)

        logger.info(f"Registered {role.lower()} account {user.id}")
        return user

    def authenticate_user(
        self,
        email: str,
        password: str,
        db: Session
    ) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Returns:
            User if credentials valid, None otherwise

        Raises:
            AccountSuspendedError: credentials are valid but the account is suspended
        """
        user = self.get_user_by_email(email, db)

        if not user:
            logger.debug("Login for unknown email")
            return None

        if not self.verify_password(password, user.hashed_password):
            logger.debug(f"Invalid password for user {user.id}")
            return None

        if not user.is_active:
            logger.warning(f"Suspended user {user.id} attempted login")
            raise AccountSuspendedError("Account is suspended")

        logger.info(f"User authenticated: {user.id}")
        return user

    def reset_password(self, token: str, new_password: str, db: Session) -> User:
        """
        Set a new password from a signed reset token and revoke all sessions.

        Raises:
            AuthServiceError: token invalid, expired, or already used
        """
        payload = read_reset_token(token)
        if not payload:
            raise AuthServiceError("Invalid or expired reset token")

        user = db.query(User).filter(User.id == payload.get("uid")).first()
        if not user or not reset_token_matches(payload, user.hashed_password):
            raise AuthServiceError("Invalid or expired reset token")

        user.hashed_password = self.hash_password(new_password)
        user.updated_at = datetime.utcnow()
        db.commit()

        self.revoke_all_user_tokens(user.id, db)

        logger.info(f"Password reset for user {user.id}")
        return user


# Global service instance
auth_service = AuthService()

