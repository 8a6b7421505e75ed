# ============================================================================
# FILE: campus_booking/api/v1/admin/teachers.py
# Admin endpoints for inviting and removing teachers
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_booking.api.dependencies import get_clock, get_current_identity, get_db, get_notifier
from campus_booking.schemas.scheduling import DeleteTeacherRequest, InviteTeacherRequest
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import NotificationService
from campus_booking.services.teacher.teacher_service import TeacherService

router = APIRouter(prefix="/admin/teachers", tags=["Admin - Teachers"])


@router.post("/invite")
async def invite_teacher(
        payload: InviteTeacherRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        notifier: NotificationService = Depends(get_notifier)
):
    teacher = TeacherService(db, notifier=notifier).invite_teacher(
        identity,
        payload.email,
        payload.display_name,
        payload.department,
        payload.subject,
        uid=payload.uid,
    )
    return {"ok": True, "uid": teacher.id}


@router.post("/delete")
async def delete_teacher(
        payload: DeleteTeacherRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        notifier: NotificationService = Depends(get_notifier),
        clock=Depends(get_clock)
):
    """Cancel the teacher's future appointments and purge their records"""
    result = TeacherService(db, notifier=notifier, clock=clock).delete_teacher(identity, payload.teacher_uid)
    return {"ok": True, **result}
