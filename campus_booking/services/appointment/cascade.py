# campus_booking/services/appointment/cascade.py
"""
Bulk cancellation cascades.

Each cascade runs in two phases: a pure ``compute_*`` function that picks the
affected appointments, then ``apply_cancellations`` which stages the status
changes on the caller's session. The caller commits them together with the
write that triggered the cascade.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Collection, Iterable, List

from sqlalchemy.orm import Session

from campus_booking.models.appointment import Appointment, AppointmentStatus
from campus_booking.utils.time_intervals import date_key, to_minutes

REASON_HOLIDAY = "Holiday"
REASON_OUTSIDE_HOURS = "Outside organization working hours"
REASON_TEACHER_REMOVED = "Teacher account removed"


@dataclass(frozen=True)
class Cancellation:
    appointment: Appointment
    reason: str


def _minutes_into_day(value: datetime, day_start: datetime) -> int:
    return int((value - day_start).total_seconds() // 60)


def fits_workday(appointment: Appointment, workday_start: str, workday_end: str) -> bool:
    """Whole interval inside the workday window of its start date"""
    day_start = appointment.start_at.replace(hour=0, minute=0, second=0, microsecond=0)
    start = _minutes_into_day(appointment.start_at, day_start)
    end = _minutes_into_day(appointment.end_at, day_start)
    return start >= to_minutes(workday_start) and end <= to_minutes(workday_end)


def compute_policy_cancellations(
        appointments: Iterable[Appointment],
        workday_start: str,
        workday_end: str,
        holiday_dates: Collection[str]
) -> List[Cancellation]:
    """Appointments invalidated by a new workday window or holiday calendar"""
    affected = []
    for appointment in appointments:
        if appointment.status == AppointmentStatus.CANCELLED.value:
            continue
        if date_key(appointment.start_at) in holiday_dates:
            affected.append(Cancellation(appointment, REASON_HOLIDAY))
        elif not fits_workday(appointment, workday_start, workday_end):
            affected.append(Cancellation(appointment, REASON_OUTSIDE_HOURS))
    return affected


def compute_teacher_removal_cancellations(appointments: Iterable[Appointment]) -> List[Cancellation]:
    """Every still-active appointment of a removed teacher"""
    return [
        Cancellation(appointment, REASON_TEACHER_REMOVED)
        for appointment in appointments
        if appointment.status != AppointmentStatus.CANCELLED.value
    ]


def apply_cancellations(db: Session, cancellations: Iterable[Cancellation]) -> int:
    """Stage the status flips on the session without committing"""
    count = 0
    for cancellation in cancellations:
        appointment = cancellation.appointment
        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.cancel_reason = cancellation.reason
        db.add(appointment)
        count += 1
    return count
