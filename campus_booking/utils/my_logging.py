# campus_booking/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from contextvars import ContextVar

from campus_booking.config.settings import get_settings

# Set per request by core.middleware.correlation_id_middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the current request's correlation id"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging; safe to call more than once"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # Booking decisions and cascades stay visible even in quiet mode
    logging.getLogger("campus_booking.services").setLevel(logging.INFO)

    if not verbose:
        for name in ("sqlalchemy", "alembic", "celery", "uvicorn.access"):
            logging.getLogger(name).setLevel(logging.ERROR)
