# campus_booking/models/teacher.py
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from campus_booking.models.base import Base


class TeacherProfile(Base):
    """Public teacher directory entry"""
    __tablename__ = "teachers"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    subject = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    office = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    invited_at = Column(DateTime, server_default=func.now(), nullable=False)
