"""
ExecBoard - Signed password reset tokens.

Uses itsdangerous URLSafeTimedSerializer, so nothing is stored server-side:
the token encodes the user id plus a fingerprint of the current password
hash, signed with the app's secret key. Changing the password changes the
fingerprint, which makes an already-used token worthless.
"""
import hashlib
from typing import Optional

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from ..config import settings

RESET_SALT = "execboard-password-reset"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.auth.secret_key, salt=RESET_SALT)


def _fingerprint(hashed_password: str) -> str:
    return hashlib.sha256(hashed_password.encode()).hexdigest()[:16]


def generate_reset_token(user_id: int, hashed_password: str) -> str:
    """Generate a signed reset token bound to the user's current password hash."""
    return _serializer().dumps({"uid": user_id, "fp": _fingerprint(hashed_password)})


def read_reset_token(token: str, max_age: Optional[int] = None) -> Optional[dict]:
    """
    Decode a reset token.

    Returns {"uid": int, "fp": str} or None if the signature is bad or expired.
    Default max_age comes from settings (1 hour).
    """
    try:
        return _serializer().loads(
            token, max_age=max_age or settings.auth.password_reset_max_age_seconds
        )
    except (BadSignature, SignatureExpired):
        return None


def reset_token_matches(payload: dict, hashed_password: str) -> bool:
    """True if the token was issued for the password hash the user still has."""
    return payload.get("fp") == _fingerprint(hashed_password)
