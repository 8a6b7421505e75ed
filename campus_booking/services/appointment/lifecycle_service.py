# ============================================================================
# campus_booking/services/appointment/lifecycle_service.py
# ============================================================================
"""Appointment state transitions: approve, reject, cancel"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from campus_booking.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PolicyConflictError,
    ValidationError,
)
from campus_booking.models.appointment import Appointment, AppointmentStatus
from campus_booking.models.user import UserProfile
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import NotificationService, OutgoingEmail
from campus_booking.utils.time_intervals import day_bounds, format_slot, local_now, overlaps

logger = logging.getLogger(__name__)

AUTO_REJECT_NOTE = "Auto-rejected: another request for this slot was approved."

ACTIONS = ("approve", "reject", "cancel")


class AppointmentLifecycleService:
    """
    The only code path that changes an appointment's status.

    pending -> approved, pending -> cancelled (reject),
    pending/approved -> cancelled (cancel). Nothing leaves cancelled.
    """

    def __init__(
            self,
            db: Session,
            notifier: Optional[NotificationService] = None,
            clock: Callable[[], datetime] = local_now
    ):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get(self, appointment_id: str) -> Appointment:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError("Not found")
        return appointment

    def _name(self, uid: str, fallback: str) -> str:
        profile = self.db.get(UserProfile, uid)
        return (profile.display_name if profile and profile.display_name else None) or fallback

    @staticmethod
    def _is_owning_teacher(actor: Identity, appointment: Appointment) -> bool:
        return actor.has_teacher_tag and appointment.teacher_id == actor.uid

    @staticmethod
    def _is_owning_student(actor: Identity, appointment: Appointment) -> bool:
        return actor.is_student and appointment.student_id == actor.uid

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, actor: Identity, appointment_id: str, note: Optional[str] = None) -> Appointment:
        """
        Approve a pending request and auto-cancel identical-window competitors.

        The overlap re-check, the approval and the auto-cancellations run in
        one transaction with the same-day rows locked.
        """
        appointment = self._get(appointment_id)
        if not (self._is_owning_teacher(actor, appointment) or actor.is_admin):
            raise AuthorizationError("Forbidden")

        day_start, day_end = day_bounds(appointment.start_at.date())
        try:
            same_day = (
                self.db.query(Appointment)
                .filter(
                    Appointment.teacher_id == appointment.teacher_id,
                    Appointment.status != AppointmentStatus.CANCELLED.value,
                    Appointment.start_at >= day_start,
                    Appointment.start_at < day_end,
                )
                .with_for_update()
                .all()
            )
            self.db.refresh(appointment)

            if appointment.status != AppointmentStatus.PENDING.value:
                raise PolicyConflictError("Not pending")

            for other in same_day:
                if other.id == appointment.id or other.status != AppointmentStatus.APPROVED.value:
                    continue
                if overlaps(appointment.start_at, appointment.end_at, other.start_at, other.end_at):
                    raise PolicyConflictError("Overlaps an approved appointment")

            appointment.status = AppointmentStatus.APPROVED.value
            if note is not None:
                appointment.note = note

            auto_rejected: List[Appointment] = []
            for other in same_day:
                if other.id == appointment.id or other.status != AppointmentStatus.PENDING.value:
                    continue
                if other.start_at == appointment.start_at and other.end_at == appointment.end_at:
                    other.status = AppointmentStatus.CANCELLED.value
                    other.note = AUTO_REJECT_NOTE
                    other.cancel_reason = AUTO_REJECT_NOTE
                    auto_rejected.append(other)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Appointment {appointment.id} approved by {actor.uid}; "
            f"{len(auto_rejected)} identical requests auto-rejected"
        )

        slot = format_slot(appointment.start_at, appointment.end_at)
        student_name = self._name(appointment.student_id, "Student")
        teacher_name = self._name(appointment.teacher_id, "Teacher")

        emails = [OutgoingEmail(
            to_uid=appointment.student_id,
            subject="Appointment Approved",
            html=f"<p>Hi {student_name},</p><p>Your appointment with {teacher_name} on <b>{slot}</b> has been <b>approved</b>.</p>",
            text=f"Your appointment with {teacher_name} on {slot} has been approved.",
        )]
        for student_id in dict.fromkeys(a.student_id for a in auto_rejected):
            name = self._name(student_id, "Student")
            emails.append(OutgoingEmail(
                to_uid=student_id,
                subject="Appointment Request Not Selected",
                html=(
                    f"<p>Hi {name},</p><p>Your request for <b>{slot}</b> was not selected because "
                    f"another request for the same time was approved.</p>"
                ),
                text=f"Your request for {slot} was not selected because another request for the same time was approved.",
            ))
        self.notifier.send_all(emails)

        return appointment

    def reject(self, actor: Identity, appointment_id: str, note: Optional[str] = None) -> Appointment:
        appointment = self._get(appointment_id)
        if not (self._is_owning_teacher(actor, appointment) or actor.is_admin):
            raise AuthorizationError("Forbidden")
        if appointment.status != AppointmentStatus.PENDING.value:
            raise PolicyConflictError("Not pending")

        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.cancel_reason = "Rejected"
        if note is not None:
            appointment.note = note
        self._commit()

        logger.info(f"Appointment {appointment.id} rejected by {actor.uid}")

        slot = format_slot(appointment.start_at, appointment.end_at)
        student_name = self._name(appointment.student_id, "Student")
        teacher_name = self._name(appointment.teacher_id, "Teacher")
        self.notifier.email_user(
            appointment.student_id,
            "Appointment Rejected",
            f"<p>Hi {student_name},</p><p>Your appointment request with {teacher_name} on <b>{slot}</b> was <b>rejected</b>.</p>",
            f"Your appointment request with {teacher_name} on {slot} was rejected.",
        )
        return appointment

    def cancel(self, actor: Identity, appointment_id: str, note: Optional[str] = None) -> Appointment:
        """
        Cancel a pending or approved appointment.

        A teacher-capacity cancel (owning teacher, or an admin who also holds
        the teacher tag) emails the student; a student cancel emails the
        teacher; a pure admin cancel emails nobody.
        """
        appointment = self._get(appointment_id)

        as_teacher = self._is_owning_teacher(actor, appointment) or (actor.is_admin and actor.has_teacher_tag)
        as_student = self._is_owning_student(actor, appointment)
        if not (as_teacher or as_student or actor.is_admin):
            raise AuthorizationError("Forbidden")

        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise PolicyConflictError("Appointment already cancelled")
        if appointment.start_at <= self.clock() and not actor.is_admin:
            raise PolicyConflictError("Past appointments cannot be cancelled")

        appointment.status = AppointmentStatus.CANCELLED.value
        if as_teacher:
            appointment.cancel_reason = "Cancelled by teacher"
        elif as_student:
            appointment.cancel_reason = "Cancelled by student"
        else:
            appointment.cancel_reason = "Cancelled by admin"
        if note is not None:
            appointment.note = note
        self._commit()

        logger.info(f"Appointment {appointment.id} cancelled by {actor.uid}")

        slot = format_slot(appointment.start_at, appointment.end_at)
        student_name = self._name(appointment.student_id, "Student")
        teacher_name = self._name(appointment.teacher_id, "Teacher")
        if as_teacher:
            self.notifier.email_user(
                appointment.student_id,
                "Appointment Cancelled by Teacher",
                f"<p>Hi {student_name},</p><p>Your appointment on <b>{slot}</b> was <b>cancelled</b> by {teacher_name}.</p>",
                f"Your appointment on {slot} was cancelled by {teacher_name}.",
            )
        elif as_student:
            self.notifier.email_user(
                appointment.teacher_id,
                "Student Cancelled Appointment",
                f"<p>Hi {teacher_name},</p><p>An appointment on <b>{slot}</b> was <b>cancelled</b> by {student_name}.</p>",
                f"An appointment on {slot} was cancelled by {student_name}.",
            )
        return appointment

    def update_appointment(
            self,
            actor: Identity,
            appointment_id: Optional[str],
            action: Optional[str],
            note: Optional[str] = None
    ) -> Appointment:
        """Dispatch an approve / reject / cancel request"""
        if not appointment_id or not action:
            raise ValidationError("Missing id/action")
        if action not in ACTIONS:
            raise ValidationError("Unknown action")

        handler = {
            "approve": self.approve,
            "reject": self.reject,
            "cancel": self.cancel,
        }[action]
        return handler(actor, appointment_id, note)

    def list_appointments(self, actor: Identity, status: Optional[str] = None) -> List[Appointment]:
        """Students see their own requests, teachers those addressed to them, admins all"""
        query = self.db.query(Appointment)

        if actor.is_admin:
            pass
        elif actor.has_teacher_tag:
            query = query.filter(Appointment.teacher_id == actor.uid)
        else:
            query = query.filter(Appointment.student_id == actor.uid)

        if status:
            if status not in {s.value for s in AppointmentStatus}:
                raise ValidationError("Unknown status")
            query = query.filter(Appointment.status == status)

        return query.order_by(Appointment.start_at).all()

