#!/usr/bin/env python3
"""
ExecBoard - Password Reset CLI

Reset a user's password from the command line.
Useful when there's no email service configured.

Usage:
    python scripts/reset_password.py user@email.com newpassword123
"""
import sys
import os

# Add project root to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal, init_db
from app.auth.service import auth_service

MIN_PASSWORD_LENGTH = 8


def reset_password(email: str, new_password: str):
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"Error: Password must be at least {MIN_PASSWORD_LENGTH} characters")
        sys.exit(1)

    init_db()
    db = SessionLocal()

    try:
        user = auth_service.get_user_by_email(email, db)
        if not user:
            print(f"Error: No user found with email '{email}'")
            sys.exit(1)

        user.hashed_password = auth_service.hash_password(new_password)
        db.commit()

        # Force re-login everywhere
        revoked = auth_service.revoke_all_user_tokens(user.id, db)
        print(f"Password reset successfully for {user.email}")
        print(f"{revoked} active session(s) revoked. The user must log in again.")

    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python scripts/reset_password.py <email> <new_password>")
        print("Example: python scripts/reset_password.py user@example.com MyNewPass123")
        sys.exit(1)

    reset_password(sys.argv[1], sys.argv[2])
