"""
ExecBoard - Authentication Models

SQLAlchemy models for accounts, refresh tokens, and the audit trail.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from ..database import Base


class User(Base):
    """Account shared by candidates, employers, and admins."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lowercased
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="CANDIDATE")  # CANDIDATE, EMPLOYER, ADMIN
    status = Column(String, nullable=False, default="ACTIVE")  # ACTIVE, SUSPENDED
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    candidate_profile = relationship(
        "CandidateProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    employer_profile = relationship(
        "EmployerProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="EmployerProfile.user_id",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


class RefreshToken(Base):
    """Refresh token for JWT token rotation."""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


class AuditLog(Base):
    """
    Records admin actions and AI operations.

    action_type examples: approve_job, reject_job, approve_employer,
    update_user, ai_resume_analysis.
    """
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action_type = Column(String, nullable=False, index=True)
    target_type = Column(String)  # JOB, EMPLOYER, USER, AI_SYSTEM
    target_id = Column(Integer, nullable=True, index=True)
    details_json = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    actor = relationship("User", foreign_keys=[actor_user_id])
