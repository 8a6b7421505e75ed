# campus_booking/config/celery_config.py
"""Celery app for notification delivery"""
from celery import Celery
from kombu import Queue

from campus_booking.config.settings import get_settings

settings = get_settings()

NOTIFICATION_QUEUE = "notifications"


def create_celery_app() -> Celery:
    """
    Notification emails are the only background work; they run on their own
    queue so a slow SMTP server never delays anything else on the broker.
    """
    app = Celery(
        "campus_booking",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["campus_booking.tasks.email_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone=settings.DEFAULT_TIMEZONE,
        enable_utc=True,

        task_default_queue=NOTIFICATION_QUEUE,
        task_queues=(Queue(NOTIFICATION_QUEUE, routing_key=NOTIFICATION_QUEUE),),

        # Emails are idempotent enough to redeliver after a worker crash
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        result_expires=3600,

        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        broker_connection_retry_on_startup=True,
    )

    return app


celery_app = create_celery_app()
