# campus_booking/models/notification.py
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from campus_booking.models.base import Base, generate_uuid


class Notification(Base):
    """In-app inbox entry, written in the same commit as the change it reports"""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    to_uid = Column(String(128), nullable=False, index=True)
    text = Column(Text, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    read_at = Column(DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "read": self.read_at is not None,
        }
