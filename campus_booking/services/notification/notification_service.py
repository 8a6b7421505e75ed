# ============================================================================
# FILE: campus_booking/services/notification/notification_service.py
# Notification sink - in-app inbox rows and best-effort email fan-out
# ============================================================================
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session

from campus_booking.core.exceptions import NotificationError
from campus_booking.models.notification import Notification
from campus_booking.models.user import UserProfile

logger = logging.getLogger(__name__)

# (email, subject, html, text)
EmailDispatcher = Callable[[str, str, str, Optional[str]], None]


def celery_dispatcher(email: str, subject: str, html: str, text: Optional[str] = None) -> None:
    """Hand the message to the Celery email queue"""
    from campus_booking.tasks.email_tasks import send_notification_email

    send_notification_email.delay(email, subject, html, text)


@dataclass
class OutgoingEmail:
    """Email collected during an operation and sent after its commit"""
    subject: str
    html: str
    text: Optional[str] = None
    to_uid: Optional[str] = None
    to_email: Optional[str] = None


class NotificationService:
    """
    Writes in-app notifications into the caller's transaction and sends
    emails after it commits. Email failures are logged and swallowed.
    """

    def __init__(self, db: Session, dispatcher: Optional[EmailDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher or celery_dispatcher

    def add_in_app(self, to_uid: str, text: str) -> Notification:
        """Stage an inbox row; it is committed together with the caller's batch"""
        notification = Notification(to_uid=to_uid, text=text)
        self.db.add(notification)
        return notification

    def resolve_email(self, uid: str) -> Optional[str]:
        try:
            profile = self.db.get(UserProfile, uid)
        except Exception as e:
            logger.warning(f"Could not load profile {uid} for notification: {e}")
            return None
        if profile is None or not profile.email:
            return None
        return profile.email

    def _dispatch(self, email: str, subject: str, html: str, text: Optional[str]) -> None:
        try:
            self.dispatcher(email, subject, html, text)
        except Exception as exc:
            raise NotificationError(f"Could not queue '{subject}' for {email}") from exc

    def send(self, message: OutgoingEmail) -> bool:
        """Send one message; returns False instead of raising on failure"""
        email = message.to_email or (self.resolve_email(message.to_uid) if message.to_uid else None)
        if not email:
            logger.info(f"No email address for {message.to_uid}; skipping '{message.subject}'")
            return False

        try:
            self._dispatch(email, message.subject, message.html, message.text)
        except NotificationError as e:
            logger.error(f"{e.reason}: {e.__cause__}")
            return False
        return True

    def send_all(self, messages: Iterable[OutgoingEmail]) -> int:
        """Fan out every message; returns how many were handed off"""
        delivered = 0
        for message in messages:
            if self.send(message):
                delivered += 1
        return delivered

    def email_user(self, uid: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        return self.send(OutgoingEmail(subject=subject, html=html, text=text, to_uid=uid))

    def list_for_user(self, uid: str, limit: int = 50) -> List[Notification]:
        """Most recent inbox entries for a user"""
        return (
            self.db.query(Notification)
            .filter(Notification.to_uid == uid)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .all()
        )
