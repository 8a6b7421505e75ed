# ===== campus_booking/models/appointment.py =====
from sqlalchemy import Column, String, Text, DateTime, Index
from sqlalchemy.sql import func
from campus_booking.models.base import Base, generate_uuid
import enum


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.APPROVED.value)


class Appointment(Base):
    """
    Booking request between a student and a teacher.

    Rows are never deleted; only ``status`` changes, and only through the
    lifecycle service.
    """
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # References (identity-provider uids)
    teacher_id = Column(String(128), nullable=False, index=True)
    student_id = Column(String(128), nullable=False, index=True)

    # Organization-local wall clock
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    status = Column(String(16), nullable=False, default=AppointmentStatus.PENDING.value)
    note = Column(Text, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_appointments_teacher_status_start", "teacher_id", "status", "start_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "student_id": self.student_id,
            "start_at": self.start_at.isoformat(),
            "end_at": self.end_at.isoformat(),
            "status": self.status,
            "note": self.note or "",
            "cancel_reason": self.cancel_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
