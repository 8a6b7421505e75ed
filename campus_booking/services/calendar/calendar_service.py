# ============================================================================
# FILE: campus_booking/services/calendar/calendar_service.py
# Availability aggregator - merges holidays, class hours, busy blocks and
# approved appointments into one unavailability view per teacher
# ============================================================================
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from campus_booking.config.settings import settings
from campus_booking.core.exceptions import CalendarNotReadyError, ValidationError
from campus_booking.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from campus_booking.models.availability import BusyBlock, TeacherAvailability
from campus_booking.services.availability.availability_service import normalize_weekly
from campus_booking.services.policy.policy_service import OrganizationPolicy, load_policy
from campus_booking.utils.time_intervals import (
    FULL_DAY_END,
    FULL_DAY_START,
    TimeRange,
    date_key,
    day_bounds,
    generate_slots,
    hhmm_of,
    is_iso_date,
    is_weekend,
    local_now,
    iter_days,
    parse_iso_date,
    slots_minus_busy,
    weekday_key,
)

logger = logging.getLogger(__name__)

SOURCE_HOLIDAY = "admin-holiday"
SOURCE_WEEKLY = "teacher-weekly"
SOURCE_BUSY = "teacher-busy"
SOURCE_APPOINTMENT = "appointment"


def _block(day: str, start: str, end: str, source: str, note: Optional[str] = None) -> Dict[str, str]:
    block = {"date": day, "start": start, "end": end, "source": source}
    if note:
        block["note"] = note
    return block


class CalendarService:
    """Read-only views over a teacher's schedule"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = local_now):
        self.db = db
        self.clock = clock

    def _ad_hoc_blocks(self, teacher_id: str, from_key: str, to_key: str) -> List[Dict[str, str]]:
        """Busy blocks from both the availability document and the single-block table"""
        blocks = []

        availability = self.db.get(TeacherAvailability, teacher_id)
        for item in (availability.busy if availability and availability.busy else []):
            day = str(item.get("date", ""))
            if from_key <= day <= to_key:
                blocks.append(_block(day, item.get("start"), item.get("end"), SOURCE_BUSY, item.get("note")))

        rows = (
            self.db.query(BusyBlock)
            .filter(
                BusyBlock.teacher_id == teacher_id,
                BusyBlock.date >= from_key,
                BusyBlock.date <= to_key,
            )
            .all()
        )
        for row in rows:
            blocks.append(_block(row.date, row.start, row.end, SOURCE_BUSY, row.note))

        return blocks

    def _approved_appointments(self, teacher_id: str, from_day: date, to_day: date) -> List[Appointment]:
        range_start, _ = day_bounds(from_day)
        _, range_end = day_bounds(to_day)
        try:
            return (
                self.db.query(Appointment)
                .filter(
                    Appointment.teacher_id == teacher_id,
                    Appointment.status == AppointmentStatus.APPROVED.value,
                    Appointment.start_at >= range_start,
                    Appointment.start_at < range_end,
                )
                .all()
            )
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Appointment index not ready for teacher {teacher_id}: {e}")
            raise CalendarNotReadyError(
                "Calendar index is building. Try again shortly.",
                retry_after=settings.CALENDAR_RETRY_AFTER_SECONDS,
            )

    def _collect(
            self,
            teacher_id: str,
            from_day: date,
            to_day: date,
            policy: OrganizationPolicy
    ) -> List[Dict[str, str]]:
        from_key, to_key = date_key(from_day), date_key(to_day)

        appointments = self._approved_appointments(teacher_id, from_day, to_day)

        out = []
        for holiday in policy.holidays:
            if from_key <= holiday["date"] <= to_key:
                out.append(_block(
                    holiday["date"], FULL_DAY_START, FULL_DAY_END, SOURCE_HOLIDAY,
                    holiday.get("name") or "Holiday"
                ))

        availability = self.db.get(TeacherAvailability, teacher_id)
        weekly = normalize_weekly(availability.weekly if availability else None)
        for day in iter_days(from_day, to_day):
            for item in weekly[weekday_key(day)]:
                if item.get("end", "") > item.get("start", ""):
                    out.append(_block(date_key(day), item["start"], item["end"], SOURCE_WEEKLY))

        out.extend(self._ad_hoc_blocks(teacher_id, from_key, to_key))

        for appointment in appointments:
            out.append(_block(
                date_key(appointment.start_at),
                hhmm_of(appointment.start_at),
                hhmm_of(appointment.end_at),
                SOURCE_APPOINTMENT,
            ))

        out.sort(key=lambda b: b["date"] + b["start"])
        return out

    def get_unavailability(
            self,
            teacher_id: Optional[str],
            from_date: Optional[str],
            to_date: Optional[str]
    ) -> Dict[str, Any]:
        """
        Every blocked range for a teacher between two dates, inclusive.

        Blocks are not deduplicated; consumers treat the union as unavailable.

        Returns:
            {"workday": {"start", "end"}, "busy": [{date, start, end, source, note?}]}

        Raises:
            ValidationError: missing arguments or an invalid range
            CalendarNotReadyError: the appointment query hit a transient backend failure
        """
        if not teacher_id or not from_date or not to_date:
            raise ValidationError("teacherId, from (YYYY-MM-DD), to required")
        if not is_iso_date(from_date) or not is_iso_date(to_date):
            raise ValidationError("Invalid date range")

        from_day, to_day = parse_iso_date(from_date), parse_iso_date(to_date)
        if to_day < from_day:
            raise ValidationError("Invalid date range")
        if (to_day - from_day).days + 1 > settings.CALENDAR_MAX_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {settings.CALENDAR_MAX_RANGE_DAYS} days")

        policy = load_policy(self.db)
        busy = self._collect(teacher_id, from_day, to_day, policy)

        return {
            "workday": {"start": policy.workday_start, "end": policy.workday_end},
            "busy": busy,
        }

    def get_bookable_slots(
            self,
            teacher_id: Optional[str],
            day: Optional[str],
            step_minutes: Optional[int] = None
    ) -> Dict[str, Any]:
        """Free slots of one date: workday window minus every unavailability block"""
        if not teacher_id or not day:
            raise ValidationError("teacherId and date required")
        if not is_iso_date(day):
            raise ValidationError("Invalid date")

        step = step_minutes or settings.SLOT_STEP_MINUTES
        if step <= 0:
            raise ValidationError("Slot step must be positive")

        target = parse_iso_date(day)
        policy = load_policy(self.db)

        # Booking refuses today and earlier
        if target <= self.clock().date() or is_weekend(target) or day in policy.holiday_dates:
            return {"date": day, "slots": []}

        blocked = [
            TimeRange(b["start"], b["end"])
            for b in self._collect(teacher_id, target, target, policy)
        ]
        slots = slots_minus_busy(generate_slots(policy.workday_start, policy.workday_end, step), blocked)

        return {"date": day, "slots": [s.to_dict() for s in slots]}

    def get_day_schedule(self, teacher_id: Optional[str], day: Optional[str]) -> Dict[str, Any]:
        """Public view of one date: busy blocks plus pending and approved appointments"""
        if not teacher_id or not day:
            raise ValidationError("teacherId and date required")
        if not is_iso_date(day):
            raise ValidationError("Invalid date")

        start, end = day_bounds(parse_iso_date(day))

        appointments = (
            self.db.query(Appointment)
            .filter(
                Appointment.teacher_id == teacher_id,
                Appointment.status.in_(ACTIVE_STATUSES),
                Appointment.start_at >= start,
                Appointment.start_at < end,
            )
            .order_by(Appointment.start_at)
            .all()
        )

        return {
            "busy": self._ad_hoc_blocks(teacher_id, day, day),
            "appointments": [
                {
                    "start": a.start_at.isoformat(),
                    "end": a.end_at.isoformat(),
                    "status": a.status,
                }
                for a in appointments
            ],
        }
