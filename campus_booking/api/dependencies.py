# ============================================================================
# FILE: campus_booking/api/dependencies.py
# Authentication and service dependencies for the v1 routers
# ============================================================================
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from campus_booking.config.database import get_db
from campus_booking.core.exceptions import AuthenticationError
from campus_booking.services.identity.identity_service import Identity, IdentityService
from campus_booking.services.notification.notification_service import EmailDispatcher, NotificationService
from campus_booking.utils.time_intervals import local_now

# ============================================================================
# Security Schemes
# ============================================================================

# auto_error is off so a missing header is reported as our own 401
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Identity provider token carrying sub and roles claims",
    auto_error=False
)


# ============================================================================
# Identity
# ============================================================================

async def get_current_identity(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> Identity:
    """
    Verify the bearer token and resolve the caller's role.

    Usage:
        @router.get("/appointments")
        async def list_appointments(identity: Identity = Depends(get_current_identity)):
            ...
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing token")

    identity = IdentityService.authenticate(db, credentials.credentials)
    request.state.identity = identity
    return identity


# ============================================================================
# Collaborators (overridden in tests)
# ============================================================================

def get_email_dispatcher() -> Optional[EmailDispatcher]:
    """None selects the Celery dispatcher"""
    return None


def get_notifier(
        db: Session = Depends(get_db),
        dispatcher: Optional[EmailDispatcher] = Depends(get_email_dispatcher)
) -> NotificationService:
    return NotificationService(db, dispatcher=dispatcher)


def get_clock():
    return local_now
