# ============================================================================
# FILE: campus_booking/api/v1/public/calendar.py
# Teacher unavailability, bookable slots and public day schedule
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from campus_booking.api.dependencies import get_clock, get_db
from campus_booking.schemas.scheduling import CalendarRequest, UnavailabilityResponse
from campus_booking.services.calendar.calendar_service import CalendarService

router = APIRouter(tags=["Calendar"])


@router.post("/teachers/calendar", response_model=UnavailabilityResponse, response_model_exclude_none=True)
async def teacher_calendar(payload: CalendarRequest, db: Session = Depends(get_db)):
    """
    Merged holidays, class hours, busy blocks and approved appointments for
    a teacher between two dates (inclusive). Answers 503 with Retry-After
    while the appointment index is not ready.
    """
    return CalendarService(db).get_unavailability(payload.teacher_id, payload.from_date, payload.to_date)


@router.get("/teachers/{teacher_id}/slots")
async def bookable_slots(
        teacher_id: str,
        date: Optional[str] = Query(None, description="YYYY-MM-DD"),
        step: Optional[int] = Query(None, description="Slot length in minutes"),
        db: Session = Depends(get_db),
        clock=Depends(get_clock)
):
    return CalendarService(db, clock=clock).get_bookable_slots(teacher_id, date, step)


@router.get("/public/teacher-schedule")
async def teacher_schedule(
        teacherId: Optional[str] = Query(None),
        date: Optional[str] = Query(None),
        db: Session = Depends(get_db)
):
    return CalendarService(db).get_day_schedule(teacherId, date)
