# ============================================================================
# FILE: campus_booking/api/v1/teacher/availability.py
# Teacher weekly class hours and busy blocks (full-document editor)
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_booking.api.dependencies import get_clock, get_current_identity, get_db
from campus_booking.schemas.scheduling import AvailabilityRequest
from campus_booking.services.availability.availability_service import AvailabilityService
from campus_booking.services.identity.identity_service import Identity

router = APIRouter(prefix="/teacher/availability", tags=["Teacher"])


@router.get("")
async def get_availability(
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    return AvailabilityService(db).get_own_availability(identity)


@router.put("")
async def save_availability(
        payload: AvailabilityRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        clock=Depends(get_clock)
):
    """Replace the caller's availability; out-of-window entries are dropped"""
    result = AvailabilityService(db, clock=clock).set_availability(identity, payload.weekly, payload.busy)
    return {"ok": True, **result}
