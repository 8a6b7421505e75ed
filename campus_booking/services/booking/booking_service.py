# ============================================================================
# FILE: campus_booking/services/booking/booking_service.py
# Booking engine - ordered precondition chain, creates pending requests
# ============================================================================
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from campus_booking.core.exceptions import AuthorizationError, PolicyConflictError, ValidationError
from campus_booking.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from campus_booking.models.availability import BusyBlock, TeacherAvailability
from campus_booking.services.availability.availability_service import normalize_weekly
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.policy.policy_service import load_policy
from campus_booking.utils.time_intervals import (
    combine,
    day_bounds,
    is_hhmm,
    is_iso_date,
    is_weekend,
    local_now,
    overlaps,
    parse_iso_date,
    to_minutes,
    weekday_key,
    within_window,
)

logger = logging.getLogger(__name__)


class BookingService:
    """
    Creates appointment requests.

    Every check runs before anything is written; the first failing check
    determines the error. Pending requests from different students may share a
    window; the conflict is settled when one of them is approved.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = local_now):
        self.db = db
        self.clock = clock

    def book_appointment(
            self,
            actor: Identity,
            teacher_id: Optional[str],
            date: Optional[str],
            start: Optional[str],
            end: Optional[str],
            note: Optional[str] = None
    ) -> Appointment:
        if not teacher_id or not date or not start or not end:
            raise ValidationError("Missing fields")
        if not is_iso_date(date) or not is_hhmm(start) or not is_hhmm(end):
            raise ValidationError("Invalid time range")
        if to_minutes(end) <= to_minutes(start):
            raise ValidationError("Invalid time range")

        day = parse_iso_date(date)
        today = self.clock().date()

        if is_weekend(day):
            raise PolicyConflictError("Weekends are not bookable")
        if day == today:
            raise PolicyConflictError("Same-day bookings are not allowed")
        if day < today:
            raise PolicyConflictError("Past dates are not bookable")

        if not actor.is_student:
            raise AuthorizationError("Only students can book")
        if not actor.approved:
            raise AuthorizationError("Account pending approval")

        policy = load_policy(self.db)
        if not within_window(start, end, policy.workday_start, policy.workday_end):
            raise PolicyConflictError("Outside working hours")
        if date in policy.holiday_dates:
            raise PolicyConflictError("Selected day is a holiday")

        availability = self.db.get(TeacherAvailability, teacher_id)
        weekly = normalize_weekly(availability.weekly if availability else None)
        if any(overlaps(start, end, r.get("start", ""), r.get("end", "")) for r in weekly[weekday_key(day)]):
            raise PolicyConflictError("Overlaps teacher class hours")

        if self._overlaps_busy(teacher_id, availability, date, start, end):
            raise PolicyConflictError("Overlaps teacher busy time")

        start_at = combine(date, start)
        end_at = combine(date, end)

        duplicate = (
            self.db.query(Appointment)
            .filter(
                Appointment.teacher_id == teacher_id,
                Appointment.student_id == actor.uid,
                Appointment.status.in_(ACTIVE_STATUSES),
                Appointment.start_at == start_at,
                Appointment.end_at == end_at,
            )
            .first()
        )
        if duplicate is not None:
            raise PolicyConflictError("You already requested this slot")

        day_start, day_end = day_bounds(day)
        approved = (
            self.db.query(Appointment)
            .filter(
                Appointment.teacher_id == teacher_id,
                Appointment.status == AppointmentStatus.APPROVED.value,
                Appointment.start_at >= day_start,
                Appointment.start_at < day_end,
            )
            .all()
        )
        if any(overlaps(start_at, end_at, a.start_at, a.end_at) for a in approved):
            raise PolicyConflictError("Slot already taken")

        appointment = Appointment(
            teacher_id=teacher_id,
            student_id=actor.uid,
            start_at=start_at,
            end_at=end_at,
            status=AppointmentStatus.PENDING.value,
            note=note or "",
        )
        self.db.add(appointment)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} requested by {actor.uid} with {teacher_id} on {date} {start}-{end}")
        return appointment

    def _overlaps_busy(
            self,
            teacher_id: str,
            availability: Optional[TeacherAvailability],
            date: str,
            start: str,
            end: str
    ) -> bool:
        for item in (availability.busy if availability and availability.busy else []):
            if item.get("date") == date and overlaps(start, end, item.get("start", ""), item.get("end", "")):
                return True

        blocks = (
            self.db.query(BusyBlock)
            .filter(BusyBlock.teacher_id == teacher_id, BusyBlock.date == date)
            .all()
        )
        return any(overlaps(start, end, b.start, b.end) for b in blocks)
