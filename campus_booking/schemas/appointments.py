"""
Pydantic schemas for appointment booking and lifecycle requests
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


# ============================================================================
# Request Schemas
# ============================================================================

class BookAppointmentRequest(BaseModel):
    """
    Booking request. Fields are optional here so that a missing or
    malformed value is reported with the booking engine's own reason.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "teacherId": "teacher-uid",
                "date": "2026-03-03",
                "start": "14:00",
                "end": "14:30",
                "note": "Question about the midterm"
            }
        }
    )

    teacher_id: Optional[str] = Field(None, alias="teacherId")
    date: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    note: Optional[str] = None


class UpdateAppointmentRequest(BaseModel):
    """Approve, reject or cancel an appointment"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"id": "550e8400-e29b-41d4-a716-446655440000", "action": "approve"}
        }
    )

    id: Optional[str] = None
    action: Optional[str] = None
    note: Optional[str] = None


# ============================================================================
# Response Schemas
# ============================================================================

class AppointmentResponse(BaseModel):
    id: str
    teacher_id: str
    student_id: str
    start_at: str
    end_at: str
    status: str
    note: str = ""
    cancel_reason: Optional[str] = None
    created_at: Optional[str] = None
