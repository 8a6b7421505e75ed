from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campus_booking.api.dependencies import get_current_identity, get_db
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
        limit: int = Query(50, ge=1, le=200),
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    """In-app inbox, newest first"""
    items = NotificationService(db).list_for_user(identity.uid, limit=limit)
    return {"items": [n.to_dict() for n in items]}
