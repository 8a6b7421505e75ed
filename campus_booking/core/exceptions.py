# campus_booking/core/exceptions.py
"""
Error taxonomy for the booking service.

Services raise these instead of HTTP exceptions; ``main.py`` renders every
``BookingServiceError`` as ``{"detail": reason}`` with its status code.
"""
from typing import Dict, Optional


class BookingServiceError(Exception):
    """Base class. ``reason`` is always a human-readable, cause-specific message."""
    status_code = 400

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code

    def headers(self) -> Dict[str, str]:
        return {}


class ValidationError(BookingServiceError):
    """Malformed or missing input. Raised before any authoritative read."""
    status_code = 400


class AuthenticationError(BookingServiceError):
    """Missing or invalid credentials"""
    status_code = 401

    def headers(self) -> Dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(BookingServiceError):
    """Caller lacks the required role or ownership"""
    status_code = 403


class NotFoundError(BookingServiceError):
    status_code = 404


class PolicyConflictError(BookingServiceError):
    """Well-formed request that conflicts with current scheduling state"""
    status_code = 409


class TransientBackendError(BookingServiceError):
    """Temporary persistence precondition failure; the caller may retry"""
    status_code = 503

    def __init__(self, reason: str, retry_after: int = 5):
        super().__init__(reason)
        self.retry_after = retry_after

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class CalendarNotReadyError(TransientBackendError):
    """Appointment index still building; calendar reads should be retried shortly"""


class NotificationError(BookingServiceError):
    """Best-effort delivery failed. Never propagated past the notification layer."""
    status_code = 502
