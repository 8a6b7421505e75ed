# campus_booking/models/organization.py
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from campus_booking.models.base import Base

GLOBAL_SETTINGS_ID = "global"


class OrganizationSettings(Base):
    """Singleton row holding the workday window and the holiday calendar"""
    __tablename__ = "organization_settings"

    id = Column(String(32), primary_key=True, default=GLOBAL_SETTINGS_ID)

    workday_start = Column(String(5), nullable=False)  # "HH:MM"
    workday_end = Column(String(5), nullable=False)

    # [{"date": "YYYY-MM-DD", "name": "..."}], unique dates, ascending
    holidays = Column(JSON, nullable=False, default=list)

    updated_by = Column(String(128), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
