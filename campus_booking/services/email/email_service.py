# ===== campus_booking/services/email/email_service.py =====
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

from campus_booking.config.settings import settings

logger = logging.getLogger(__name__)

LAYOUT = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #1f2937; max-width: 560px; margin: 0 auto; padding: 16px;">
  <h2 style="border-bottom: 2px solid #2563eb; padding-bottom: 8px;">{title}</h2>
  <div style="font-size: 15px; line-height: 1.5;">{body}</div>
  <p style="margin-top: 24px;">
    <a href="{appointments_url}" style="color: #2563eb;">View your appointments</a>
  </p>
  <p style="font-size: 12px; color: #6b7280;">{sender}</p>
</body>
</html>
"""


class EmailService:
    """SMTP delivery for appointment notifications"""

    @staticmethod
    def _get_smtp_connection():
        """Open an authenticated SMTP session; callers must quit() it"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=settings.EMAIL_TIMEOUT_SECONDS)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=settings.EMAIL_TIMEOUT_SECONDS)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"SMTP connection to {settings.EMAIL_HOST}:{settings.EMAIL_PORT} failed: {e}")
            raise

    @staticmethod
    def render_layout(title: str, body_html: str) -> str:
        """Shared notification frame with a link back to the appointments page"""
        return LAYOUT.format(
            title=title,
            body=body_html,
            appointments_url=f"{settings.FRONTEND_URL.rstrip('/')}/appointments",
            sender=settings.EMAIL_FROM_NAME,
        )

    @staticmethod
    def build_message(to_email: str, subject: str, html_content: str, plain_text: Optional[str] = None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg["To"] = to_email

        # Plain part first; clients pick the last alternative they can render
        if plain_text:
            msg.attach(MIMEText(plain_text, "plain"))
        msg.attach(MIMEText(EmailService.render_layout(subject, html_content), "html"))
        return msg

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None
    ) -> bool:
        """
        Send one notification.

        Raises whatever the SMTP client raises so the Celery task can retry.
        """
        msg = EmailService.build_message(to_email, subject, html_content, plain_text)

        server = EmailService._get_smtp_connection()
        try:
            server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
        except Exception as e:
            logger.error(f"Failed to send '{subject}' to {to_email}: {e}")
            raise
        finally:
            server.quit()

        logger.info(f"Sent '{subject}' to {to_email}")
        return True
