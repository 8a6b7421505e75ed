# ===== campus_booking/models/availability.py =====
from sqlalchemy import Column, String, Text, DateTime, JSON, Index
from sqlalchemy.sql import func
from campus_booking.models.base import Base, generate_uuid


class TeacherAvailability(Base):
    """
    Teacher-owned availability document, replaced wholesale on save.

    ``weekly`` maps mon..sun to recurring busy (class-hour) ranges;
    ``busy`` holds dated one-off busy blocks edited together with them.
    """
    __tablename__ = "teacher_availability"

    teacher_id = Column(String(128), primary_key=True)

    weekly = Column(JSON, nullable=False, default=dict)  # {"mon": [{"start", "end"}], ...}
    busy = Column(JSON, nullable=False, default=list)  # [{"date", "start", "end", "note"}]

    # Workday window the ranges were validated against
    workday_start = Column(String(5), nullable=True)
    workday_end = Column(String(5), nullable=True)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class BusyBlock(Base):
    """Single dated busy block managed one at a time (add / list / delete)"""
    __tablename__ = "teacher_busy_blocks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    teacher_id = Column(String(128), nullable=False, index=True)

    date = Column(String(10), nullable=False)  # "YYYY-MM-DD"
    start = Column(String(5), nullable=False)
    end = Column(String(5), nullable=False)
    note = Column(Text, nullable=True)

    created_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_busy_blocks_teacher_date", "teacher_id", "date"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "start": self.start,
            "end": self.end,
            "note": self.note or "",
        }
