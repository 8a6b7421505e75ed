"""
Pydantic schemas for organization policy, teacher availability and calendars
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class HolidaySchema(BaseModel):
    date: str
    name: str


class PolicyRequest(BaseModel):
    """
    Organization policy write. Holidays stay loosely typed: malformed
    entries are dropped on save rather than rejected.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "workdayStart": "09:00",
                "workdayEnd": "17:00",
                "holidays": [{"date": "2026-12-25", "name": "Christmas"}]
            }
        }
    )

    workday_start: Optional[str] = Field(None, alias="workdayStart")
    workday_end: Optional[str] = Field(None, alias="workdayEnd")
    holidays: Any = Field(default_factory=list)


class PolicyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workday_start: str = Field(..., alias="workdayStart")
    workday_end: str = Field(..., alias="workdayEnd")
    holidays: List[HolidaySchema] = Field(default_factory=list)


class AvailabilityRequest(BaseModel):
    """Full replacement of a teacher's weekly class hours and busy blocks"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "weekly": {"mon": [{"start": "09:00", "end": "10:00"}]},
                "busy": [{"date": "2026-03-04", "start": "13:00", "end": "14:00", "note": "Faculty meeting"}]
            }
        }
    )

    weekly: Any = Field(default_factory=dict)
    busy: Any = Field(default_factory=list)


class BusyBlockRequest(BaseModel):
    date: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    note: Optional[str] = None


class CalendarRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {"teacherId": "teacher-uid", "from": "2026-03-02", "to": "2026-03-08"}
        }
    )

    teacher_id: Optional[str] = Field(None, alias="teacherId")
    from_date: Optional[str] = Field(None, alias="from")
    to_date: Optional[str] = Field(None, alias="to")


class UnavailabilityBlock(BaseModel):
    date: str
    start: str
    end: str
    source: str
    note: Optional[str] = None


class UnavailabilityResponse(BaseModel):
    workday: Dict[str, str]
    busy: List[UnavailabilityBlock]


class InviteTeacherRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    department: Optional[str] = None
    subject: Optional[str] = None
    # Identity-provider uid, when already known
    uid: Optional[str] = None


class DeleteTeacherRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    teacher_uid: Optional[str] = Field(None, alias="teacherUid")
