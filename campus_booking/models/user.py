# ============================================================================
# FILE: campus_booking/models/user.py
# Per-user profile and role document, merged with identity-provider claims
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.sql import func
import enum
from campus_booking.models.base import Base


class RoleTag(str, enum.Enum):
    """Role tags stored on a profile or carried as token claims."""
    ADMIN = "admin"
    TEACHER = "teacher"


class UserProfile(Base):
    __tablename__ = "users"

    # Identity-provider uid
    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    display_name = Column(String(255), nullable=True)

    # Role tags; no tag means the user is a student
    roles = Column(JSON, nullable=False, default=list)

    # Gates booking for students; invited teachers are approved on creation
    approved = Column(Boolean, default=False, nullable=False)

    department = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def name(self) -> str:
        return self.display_name or ""

    def __repr__(self):
        return f"<UserProfile {self.id} {self.roles}>"
