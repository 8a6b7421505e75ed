# ============================================================================
# FILE: campus_booking/services/policy/policy_service.py
# Organization policy store - workday window, holiday calendar, cascades
# ============================================================================
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from campus_booking.config.settings import settings
from campus_booking.core.exceptions import AuthorizationError, ValidationError
from campus_booking.models.appointment import Appointment, AppointmentStatus
from campus_booking.models.organization import GLOBAL_SETTINGS_ID, OrganizationSettings
from campus_booking.services.appointment.cascade import (
    apply_cancellations,
    compute_policy_cancellations,
)
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import (
    NotificationService,
    OutgoingEmail,
)
from campus_booking.utils.time_intervals import format_slot, is_hhmm, is_iso_date, local_now, to_minutes

logger = logging.getLogger(__name__)


@dataclass
class OrganizationPolicy:
    workday_start: str
    workday_end: str
    holidays: List[Dict[str, str]] = field(default_factory=list)

    @property
    def holiday_dates(self) -> set:
        return {h["date"] for h in self.holidays}

    def holiday_name(self, day: str) -> Optional[str]:
        for holiday in self.holidays:
            if holiday["date"] == day:
                return holiday.get("name") or "Holiday"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workdayStart": self.workday_start,
            "workdayEnd": self.workday_end,
            "holidays": [dict(h) for h in self.holidays],
        }


def default_policy() -> OrganizationPolicy:
    return OrganizationPolicy(settings.DEFAULT_WORKDAY_START, settings.DEFAULT_WORKDAY_END, [])


def sanitize_holidays(raw: Any, today: date) -> List[Dict[str, str]]:
    """
    Keep well-formed, named, non-past holidays; one per date; ascending.

    Malformed entries are dropped rather than rejected.
    """
    items = raw if isinstance(raw, list) else []
    today_key = today.isoformat()
    seen = set()
    cleaned = []

    for item in items:
        if not isinstance(item, dict):
            continue
        day = str(item.get("date") or "").strip()
        name = str(item.get("name") or "").strip()
        if not day or not name or not is_iso_date(day):
            continue
        if day < today_key or day in seen:
            continue
        seen.add(day)
        cleaned.append({"date": day, "name": name})

    cleaned.sort(key=lambda h: h["date"])
    return cleaned


def load_policy(db: Session) -> OrganizationPolicy:
    """Current policy, or the 09:00-17:00 default when none was saved"""
    row = db.get(OrganizationSettings, GLOBAL_SETTINGS_ID)
    if row is None:
        return default_policy()
    return OrganizationPolicy(
        workday_start=row.workday_start or settings.DEFAULT_WORKDAY_START,
        workday_end=row.workday_end or settings.DEFAULT_WORKDAY_END,
        holidays=list(row.holidays or []),
    )


def validate_workday(workday_start: Any, workday_end: Any) -> None:
    if not is_hhmm(workday_start) or not is_hhmm(workday_end):
        raise ValidationError("Invalid time format for workday start/end")
    if to_minutes(workday_start) >= to_minutes(workday_end):
        raise ValidationError("Workday start must be before workday end")


class PolicyService:
    """Reads and writes the organization-wide scheduling policy"""

    def __init__(
            self,
            db: Session,
            notifier: Optional[NotificationService] = None,
            clock: Callable[[], datetime] = local_now
    ):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self.clock = clock

    def get_policy(self) -> OrganizationPolicy:
        return load_policy(self.db)

    def set_policy(
            self,
            actor: Identity,
            workday_start: Optional[str],
            workday_end: Optional[str],
            holidays: Any
    ) -> Dict[str, Any]:
        """
        Replace the policy and cancel future appointments it invalidates.

        The settings row, the cancellations and their in-app notifications are
        committed together; emails go out afterwards, best-effort.

        Returns:
            {"cancelled": int, "saved": policy dict}
        """
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        workday_start = workday_start or settings.DEFAULT_WORKDAY_START
        workday_end = workday_end or settings.DEFAULT_WORKDAY_END
        validate_workday(workday_start, workday_end)

        now = self.clock()
        policy = OrganizationPolicy(workday_start, workday_end, sanitize_holidays(holidays, now.date()))

        emails: List[OutgoingEmail] = []
        try:
            row = self.db.get(OrganizationSettings, GLOBAL_SETTINGS_ID)
            if row is None:
                row = OrganizationSettings(id=GLOBAL_SETTINGS_ID)
                self.db.add(row)
            row.workday_start = policy.workday_start
            row.workday_end = policy.workday_end
            row.holidays = policy.holidays
            row.updated_by = actor.uid

            future = (
                self.db.query(Appointment)
                .filter(
                    Appointment.start_at > now,
                    Appointment.status != AppointmentStatus.CANCELLED.value,
                )
                .all()
            )
            cancellations = compute_policy_cancellations(
                future, policy.workday_start, policy.workday_end, policy.holiday_dates
            )
            cancelled = apply_cancellations(self.db, cancellations)

            for cancellation in cancellations:
                appointment = cancellation.appointment
                self.notifier.add_in_app(
                    appointment.student_id,
                    "Your appointment was cancelled due to organization settings change."
                )
                self.notifier.add_in_app(
                    appointment.teacher_id,
                    "An appointment was cancelled due to organization settings change."
                )
                emails.extend(self._cancellation_emails(appointment, cancellation.reason))

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Organization policy saved by {actor.uid}: {policy.workday_start}-{policy.workday_end}, "
            f"{len(policy.holidays)} holidays, {cancelled} appointments cancelled"
        )

        self.notifier.send_all(emails)
        return {"cancelled": cancelled, "saved": policy.to_dict()}

    @staticmethod
    def _cancellation_emails(appointment: Appointment, reason: str) -> List[OutgoingEmail]:
        when = format_slot(appointment.start_at, appointment.end_at)
        subject = "Appointment cancelled – Organization settings updated"
        return [
            OutgoingEmail(
                to_uid=appointment.student_id,
                subject=subject,
                html=f"<p>Your appointment on <b>{when}</b> was cancelled.</p><p>Reason: <b>{reason}</b>.</p>",
                text=f"Your appointment on {when} was cancelled. Reason: {reason}.",
            ),
            OutgoingEmail(
                to_uid=appointment.teacher_id,
                subject=subject,
                html=f"<p>An appointment on <b>{when}</b> was cancelled.</p><p>Reason: <b>{reason}</b>.</p>",
                text=f"An appointment on {when} was cancelled. Reason: {reason}.",
            ),
        ]
