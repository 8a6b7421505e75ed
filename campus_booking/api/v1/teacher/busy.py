# ============================================================================
# FILE: campus_booking/api/v1/teacher/busy.py
# Single busy-block add / list / delete for the calling teacher
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from campus_booking.api.dependencies import get_clock, get_current_identity, get_db
from campus_booking.schemas.scheduling import BusyBlockRequest
from campus_booking.services.availability.busy_block_service import BusyBlockService
from campus_booking.services.identity.identity_service import Identity

router = APIRouter(prefix="/teacher/busy", tags=["Teacher"])


@router.get("")
async def list_busy_blocks(
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    blocks = BusyBlockService(db).list_blocks(identity)
    return {"items": [b.to_dict() for b in blocks]}


@router.post("")
async def add_busy_block(
        payload: BusyBlockRequest,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
        clock=Depends(get_clock)
):
    block = BusyBlockService(db, clock=clock).add_block(
        identity, payload.date, payload.start, payload.end, payload.note
    )
    return {"ok": True, "id": block.id}


@router.delete("")
async def delete_busy_block(
        id: Optional[str] = Query(None),
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db)
):
    BusyBlockService(db).delete_block(identity, id)
    return {"ok": True}
