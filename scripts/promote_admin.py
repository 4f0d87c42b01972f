#!/usr/bin/env python3
"""
ExecBoard - Admin Promotion CLI

Grant or revoke the ADMIN role. A demoted admin becomes a candidate unless
--role says otherwise; the matching empty profile is created if missing.

Usage:
    python scripts/promote_admin.py user@email.com                   # promote
    python scripts/promote_admin.py user@email.com --demote          # back to CANDIDATE
    python scripts/promote_admin.py user@email.com --demote EMPLOYER # back to EMPLOYER
"""
import sys
import os

# Add project root to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal, init_db
from app.auth.models import User
from app.models import CandidateProfile, EmployerProfile


def promote_admin(email: str, demote_to: str = None):
    init_db()
    db = SessionLocal()

    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            print(f"Error: No user found with email '{email}'")
            sys.exit(1)

        if demote_to:
            if not user.is_admin:
                print(f"{email} is not an admin.")
                return
            user.role = demote_to
            if demote_to == "CANDIDATE" and not user.candidate_profile:
                db.add(CandidateProfile(user_id=user.id, full_name=""))
            elif demote_to == "EMPLOYER" and not user.employer_profile:
                db.add(EmployerProfile(user_id=user.id, org_name="", org_type="OTHER"))
            db.commit()
            print(f"Demoted {email} to {demote_to}.")
        else:
            if user.is_admin:
                print(f"{email} is already an admin.")
                return
            user.role = "ADMIN"
            db.commit()
            print(f"Promoted {email} to admin.")

    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2 or len(sys.argv) > 4:
        print("Usage: python scripts/promote_admin.py <email> [--demote [CANDIDATE|EMPLOYER]]")
        sys.exit(1)

    email = sys.argv[1]
    demote_to = None
    if "--demote" in sys.argv:
        extra = sys.argv[sys.argv.index("--demote") + 1:]
        demote_to = (extra[0] if extra else "CANDIDATE").upper()
        if demote_to not in ("CANDIDATE", "EMPLOYER"):
            print("Error: --demote accepts CANDIDATE or EMPLOYER")
            sys.exit(1)
    promote_admin(email, demote_to=demote_to)
