"""
API v1 router setup
Organized into: public/calendar, student + teacher (JWT), and admin routes
"""
from fastapi import APIRouter

from campus_booking.api.v1 import appointments, notifications
from campus_booking.api.v1.admin import settings, teachers, users
from campus_booking.api.v1.public import calendar
from campus_booking.api.v1.teacher import availability, busy

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(calendar.router)

# ============================================================================
# SIGNED-IN ROUTES (JWT; role rules enforced by the services)
# ============================================================================
api_v1_router.include_router(appointments.router)
api_v1_router.include_router(notifications.router)
api_v1_router.include_router(availability.router)
api_v1_router.include_router(busy.router)

# ============================================================================
# ADMIN ROUTES (JWT + admin role)
# ============================================================================
api_v1_router.include_router(settings.router)
api_v1_router.include_router(teachers.router)
api_v1_router.include_router(users.router)


@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and authentication overview"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required (calendar, slots, teacher schedule, settings read)",
            "signed_in": "JWT Bearer token with sub and roles claims",
            "admin": "JWT Bearer token + admin role"
        }
    }
