# campus_booking/services/availability/busy_block_service.py
"""Single busy-block CRUD, scoped to the acting teacher"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from campus_booking.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PolicyConflictError,
    ValidationError,
)
from campus_booking.models.availability import BusyBlock
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.policy.policy_service import load_policy
from campus_booking.utils.time_intervals import is_hhmm, is_iso_date, local_now, to_minutes, within_window

logger = logging.getLogger(__name__)


class BusyBlockService:

    def __init__(self, db: Session, clock: Callable[[], datetime] = local_now):
        self.db = db
        self.clock = clock

    @staticmethod
    def _require_teacher(actor: Identity) -> None:
        if not (actor.has_teacher_tag or actor.is_admin):
            raise AuthorizationError("Not authorized")

    def list_blocks(self, actor: Identity) -> List[BusyBlock]:
        self._require_teacher(actor)
        return (
            self.db.query(BusyBlock)
            .filter(BusyBlock.teacher_id == actor.uid)
            .order_by(BusyBlock.date, BusyBlock.start)
            .all()
        )

    def add_block(
            self,
            actor: Identity,
            date: Optional[str],
            start: Optional[str],
            end: Optional[str],
            note: Optional[str] = None
    ) -> BusyBlock:
        self._require_teacher(actor)

        if not date or not start or not end:
            raise ValidationError("date, start, end required")
        if not is_iso_date(date) or not is_hhmm(start) or not is_hhmm(end):
            raise ValidationError("Invalid date or time format")
        if to_minutes(end) <= to_minutes(start):
            raise ValidationError("Invalid time range")
        if date < self.clock().date().isoformat():
            raise ValidationError("Past dates not allowed")

        policy = load_policy(self.db)
        if not within_window(start, end, policy.workday_start, policy.workday_end):
            raise PolicyConflictError("Outside working hours")

        block = BusyBlock(
            teacher_id=actor.uid,
            date=date,
            start=start,
            end=end,
            note=note or "",
            created_by=actor.uid,
        )
        self.db.add(block)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(block)
        return block

    def delete_block(self, actor: Identity, block_id: str) -> None:
        self._require_teacher(actor)
        if not block_id:
            raise ValidationError("id required")

        block = (
            self.db.query(BusyBlock)
            .filter(BusyBlock.id == block_id, BusyBlock.teacher_id == actor.uid)
            .first()
        )
        if block is None:
            raise NotFoundError("Busy block not found")

        self.db.delete(block)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
