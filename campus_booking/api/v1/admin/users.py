from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campus_booking.api.dependencies import get_current_identity, get_db
from campus_booking.services.identity.identity_service import Identity, UserService

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


@router.get("")
async def list_users(
        pending: bool = Query(False, description="Only students awaiting approval"),
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    users = UserService.list_users(db, identity, pending_only=pending)
    return {
        "items": [
            {
                "uid": u.id,
                "email": u.email,
                "displayName": u.display_name,
                "roles": list(u.roles or []),
                "approved": u.approved,
            }
            for u in users
        ]
    }


@router.post("/{uid}/approve")
async def approve_user(
        uid: str,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    """Unlock booking for a student account"""
    profile = UserService.approve_user(db, identity, uid)
    return {"ok": True, "uid": profile.id, "approved": profile.approved}
