# ============================================================================
# FILE: campus_booking/api/v1/appointments.py
# Booking requests and their lifecycle transitions
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from campus_booking.api.dependencies import get_clock, get_current_identity, get_db, get_notifier
from campus_booking.schemas.appointments import (
    AppointmentResponse,
    BookAppointmentRequest,
    UpdateAppointmentRequest,
)
from campus_booking.services.appointment.lifecycle_service import AppointmentLifecycleService
from campus_booking.services.booking.booking_service import BookingService
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import NotificationService

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("/book")
async def book_appointment(
        payload: BookAppointmentRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        clock=Depends(get_clock)
):
    """Create a pending request after the full precondition chain passes"""
    appointment = BookingService(db, clock=clock).book_appointment(
        identity,
        payload.teacher_id,
        payload.date,
        payload.start,
        payload.end,
        payload.note,
    )
    return {"ok": True, "id": appointment.id, "status": appointment.status}


@router.post("/update")
async def update_appointment(
        payload: UpdateAppointmentRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        notifier: NotificationService = Depends(get_notifier),
        clock=Depends(get_clock)
):
    """approve | reject | cancel"""
    appointment = AppointmentLifecycleService(db, notifier=notifier, clock=clock).update_appointment(
        identity, payload.id, payload.action, payload.note
    )
    return {"ok": True, "id": appointment.id, "status": appointment.status}


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
        status: Optional[str] = Query(None),
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    appointments = AppointmentLifecycleService(db).list_appointments(identity, status)
    return [a.to_dict() for a in appointments]
