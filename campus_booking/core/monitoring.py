"""Health checks for the booking API and its backing services"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from campus_booking.config.database import get_db
from campus_booking.config.redis import broker_reachable
from campus_booking.config.settings import settings
from campus_booking.models.appointment import Appointment

health_router = APIRouter()


@health_router.get("")
async def health_check():
    return {"status": "healthy", "service": settings.APP_NAME}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Database, appointment index and Redis (Celery broker) reachability.

    The calendar answers 503 while the appointment index is unavailable;
    the same condition is reported here as ``appointments: building``.
    """
    checks = {"database": "unknown", "appointments": "unknown", "redis": "unknown"}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {e}"

    try:
        db.query(Appointment.id).limit(1).all()
        checks["appointments"] = "healthy"
    except OperationalError:
        db.rollback()
        checks["appointments"] = "building"

    try:
        checks["redis"] = "healthy" if await broker_reachable() else "unhealthy: no PONG"
    except Exception as e:
        # Only email delivery depends on the broker
        checks["redis"] = f"unhealthy: {e}"

    core_ok = checks["database"] == "healthy" and checks["appointments"] == "healthy"
    if core_ok and checks["redis"] == "healthy":
        checks["overall"] = "healthy"
    elif core_ok:
        checks["overall"] = "degraded"
    else:
        checks["overall"] = "unhealthy"

    return checks
