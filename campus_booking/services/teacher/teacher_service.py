# campus_booking/services/teacher/teacher_service.py
"""Teacher directory maintenance: invitation and account removal"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from campus_booking.config.settings import settings
from campus_booking.core.exceptions import AuthorizationError, ValidationError
from campus_booking.models.appointment import Appointment, AppointmentStatus
from campus_booking.models.availability import BusyBlock, TeacherAvailability
from campus_booking.models.teacher import TeacherProfile
from campus_booking.models.user import RoleTag, UserProfile
from campus_booking.services.appointment.cascade import (
    apply_cancellations,
    compute_teacher_removal_cancellations,
)
from campus_booking.services.identity.identity_service import Identity, IdentityService
from campus_booking.services.notification.notification_service import NotificationService, OutgoingEmail
from campus_booking.utils.time_intervals import format_slot, local_now

logger = logging.getLogger(__name__)


class TeacherService:

    def __init__(
            self,
            db: Session,
            notifier: Optional[NotificationService] = None,
            clock: Callable[[], datetime] = local_now
    ):
        self.db = db
        self.notifier = notifier or NotificationService(db)
        self.clock = clock

    def list_teachers(self) -> List[TeacherProfile]:
        return (
            self.db.query(TeacherProfile)
            .filter(TeacherProfile.active.is_(True))
            .order_by(TeacherProfile.name)
            .all()
        )

    def invite_teacher(
            self,
            actor: Identity,
            email: Optional[str],
            display_name: Optional[str],
            department: Optional[str] = None,
            subject: Optional[str] = None,
            uid: Optional[str] = None
    ) -> TeacherProfile:
        """
        Create or promote a teacher account and send the invitation email.

        ``uid`` is the identity-provider account id when the admin knows it.
        Without it the invitation is keyed by email and moves onto the
        provider uid at the teacher's first sign-in.
        """
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        email = (email or "").strip().lower()
        display_name = (display_name or "").strip()
        uid = (uid or "").strip() or None
        if not email or not display_name:
            raise ValidationError("email and displayName required")

        try:
            user = self.db.get(UserProfile, uid) if uid else None
            if user is None:
                user = self.db.query(UserProfile).filter(UserProfile.email == email).first()
                if user is not None and uid and user.id == email:
                    user = IdentityService.claim_invitation(self.db, user, uid)
            if user is None:
                user = UserProfile(id=uid or email, email=email, roles=[])
                self.db.add(user)

            user.email = email
            user.display_name = display_name
            user.department = department
            user.subject = subject
            user.roles = sorted(set(user.roles or []) | {RoleTag.TEACHER.value})
            user.approved = True
            self.db.flush()

            teacher = self.db.get(TeacherProfile, user.id)
            if teacher is None:
                teacher = TeacherProfile(id=user.id, name=display_name)
                self.db.add(teacher)
            teacher.name = display_name
            teacher.email = email
            teacher.department = department
            teacher.subject = subject
            teacher.active = True

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(teacher)
        logger.info(f"Teacher {email} invited by {actor.uid}")

        html = (
            f"<p>Hi {display_name},</p>"
            f"<p>You were added as a teacher. Sign in at "
            f"<a href=\"{settings.FRONTEND_URL}\">{settings.FRONTEND_URL}</a> to set your availability.</p>"
        )
        self.notifier.send(OutgoingEmail(
            to_email=email,
            subject="You're invited as a Teacher",
            html=html,
            text=f"You were added as a teacher. Sign in at {settings.FRONTEND_URL} to set your availability.",
        ))
        return teacher

    def delete_teacher(self, actor: Identity, teacher_uid: Optional[str]) -> Dict[str, Any]:
        """
        Remove a teacher account.

        Every future pending or approved appointment is cancelled and the
        teacher's busy blocks, availability, directory entry and profile are
        deleted in the same commit. Emails follow, best-effort.

        Returns:
            {"cancelled": int}
        """
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")
        if not teacher_uid:
            raise ValidationError("teacherUid required")

        now = self.clock()

        user = self.db.get(UserProfile, teacher_uid)
        teacher = self.db.get(TeacherProfile, teacher_uid)
        teacher_email = (user.email if user else None) or (teacher.email if teacher else None)
        teacher_name = (user.display_name if user else None) or (teacher.name if teacher else None) or "Teacher"

        emails: List[OutgoingEmail] = []
        try:
            future = (
                self.db.query(Appointment)
                .filter(
                    Appointment.teacher_id == teacher_uid,
                    Appointment.start_at > now,
                    Appointment.status != AppointmentStatus.CANCELLED.value,
                )
                .all()
            )
            cancellations = compute_teacher_removal_cancellations(future)
            cancelled = apply_cancellations(self.db, cancellations)

            for cancellation in cancellations:
                appointment = cancellation.appointment
                self.notifier.add_in_app(
                    appointment.student_id,
                    "Your appointment was cancelled because the teacher account was removed."
                )
                when = format_slot(appointment.start_at, appointment.end_at)
                emails.append(OutgoingEmail(
                    to_uid=appointment.student_id,
                    subject="Appointment cancelled – Teacher removed",
                    html=(
                        f"<p>Your appointment with {teacher_name} on <b>{when}</b> was cancelled "
                        f"because the teacher account was removed.</p>"
                    ),
                    text=f"Your appointment with {teacher_name} on {when} was cancelled because the teacher account was removed.",
                ))

            self.db.query(BusyBlock).filter(BusyBlock.teacher_id == teacher_uid).delete(synchronize_session=False)
            self.db.query(TeacherAvailability).filter(
                TeacherAvailability.teacher_id == teacher_uid
            ).delete(synchronize_session=False)
            if teacher is not None:
                self.db.delete(teacher)
            if user is not None:
                self.db.delete(user)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Teacher {teacher_uid} removed by {actor.uid}; {cancelled} appointments cancelled")

        if teacher_email:
            emails.append(OutgoingEmail(
                to_email=teacher_email,
                subject="Your teacher account was removed",
                html=f"<p>Hi {teacher_name},</p><p>Your teacher account was removed by an administrator.</p>",
                text="Your teacher account was removed by an administrator.",
            ))
        self.notifier.send_all(emails)

        return {"cancelled": cancelled}
