# ===== campus_booking/tasks/email_tasks.py =====
import logging
import smtplib
from typing import Optional

from campus_booking.config.celery_config import celery_app
from campus_booking.services.email.email_service import EmailService

logger = logging.getLogger(__name__)

# Retrying cannot fix a rejected address
PERMANENT_FAILURES = (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused)


@celery_app.task(bind=True, max_retries=3, name="campus_booking.tasks.email_tasks.send_notification_email")
def send_notification_email(self, email: str, subject: str, html: str, text: Optional[str] = None):
    """
    Deliver one appointment notification.

    Transient SMTP failures are retried after 1, 2 and 4 minutes; a refused
    address is logged and dropped.
    """
    try:
        EmailService.send_email(to_email=email, subject=subject, html_content=html, plain_text=text)
    except PERMANENT_FAILURES as exc:
        logger.error(f"Dropping '{subject}' for {email}: {exc}")
        return {"status": "refused", "email": email}
    except Exception as exc:
        attempt = self.request.retries + 1
        logger.warning(f"Delivery of '{subject}' to {email} failed (attempt {attempt}): {exc}")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    return {"status": "success", "email": email}
