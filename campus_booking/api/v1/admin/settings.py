# ============================================================================
# FILE: campus_booking/api/v1/admin/settings.py
# Organization policy: workday window and holiday calendar
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_booking.api.dependencies import get_clock, get_current_identity, get_db, get_notifier
from campus_booking.schemas.scheduling import PolicyRequest, PolicyResponse
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.notification.notification_service import NotificationService
from campus_booking.services.policy.policy_service import PolicyService

router = APIRouter(prefix="/admin/settings", tags=["Admin - Settings"])


@router.get("", response_model=PolicyResponse)
async def read_settings(db: Session = Depends(get_db)):
    """Current policy, or the default window when none was saved"""
    return PolicyService(db).get_policy().to_dict()


@router.post("")
async def save_settings(
        payload: PolicyRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        notifier: NotificationService = Depends(get_notifier),
        clock=Depends(get_clock)
):
    """
    Replace the policy. Future appointments on new holidays or outside the
    new window are cancelled in the same transaction.
    """
    result = PolicyService(db, notifier=notifier, clock=clock).set_policy(
        identity,
        payload.workday_start,
        payload.workday_end,
        payload.holidays,
    )
    return {"ok": True, **result}
