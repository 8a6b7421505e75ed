"""
Celery worker entry point for notification emails

    python -m campus_booking.worker
    celery -A campus_booking.worker worker -Q notifications
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from campus_booking.config.celery_config import NOTIFICATION_QUEUE, celery_app
from campus_booking.config.settings import settings
from campus_booking.utils.my_logging import setup_logging

setup_logging(verbose=settings.DEBUG or settings.LOG_LEVEL.upper() == "DEBUG")
logger = logging.getLogger(__name__)

app = celery_app


@worker_ready.connect
def on_worker_ready(sender=None, **kwargs):
    own_tasks = sorted(name for name in celery_app.tasks if name.startswith("campus_booking."))
    logger.info(f"Notification worker ready on queue '{NOTIFICATION_QUEUE}': {own_tasks}")
    logger.info(f"SMTP relay {settings.EMAIL_HOST}:{settings.EMAIL_PORT}, sender {settings.EMAIL_FROM_ADDRESS}")


@worker_shutdown.connect
def on_worker_shutdown(sender=None, **kwargs):
    logger.info("Notification worker stopped")


if __name__ == "__main__":
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        f"--queues={NOTIFICATION_QUEUE}",
        "--concurrency=2",
    ])
