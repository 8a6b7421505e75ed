# ===== campus_booking/services/availability/availability_service.py =====
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Tuple
from sqlalchemy.orm import Session
from campus_booking.core.exceptions import AuthorizationError
from campus_booking.models.availability import TeacherAvailability
from campus_booking.services.identity.identity_service import Identity
from campus_booking.services.policy.policy_service import load_policy
from campus_booking.utils.time_intervals import WEEKDAY_KEYS, is_iso_date, local_now, within_window
import logging

logger = logging.getLogger(__name__)


def empty_weekly() -> Dict[str, List[Dict[str, str]]]:
    return {day: [] for day in WEEKDAY_KEYS}


def sanitize_weekly(raw: Any, workday_start: str, workday_end: str) -> Tuple[Dict[str, List[Dict[str, str]]], int]:
    """
    Keep the class-hour ranges that fit the workday window.

    Returns the cleaned mapping (all seven weekday keys, submission order kept)
    and the number of entries dropped.
    """
    source = raw if isinstance(raw, dict) else {}
    weekly = empty_weekly()
    dropped = 0

    for day in WEEKDAY_KEYS:
        ranges = source.get(day)
        if not isinstance(ranges, list):
            continue
        for item in ranges:
            start = item.get("start") if isinstance(item, dict) else None
            end = item.get("end") if isinstance(item, dict) else None
            if within_window(start, end, workday_start, workday_end):
                weekly[day].append({"start": start, "end": end})
            else:
                dropped += 1

    return weekly, dropped


def sanitize_busy(raw: Any, workday_start: str, workday_end: str, today: date) -> Tuple[List[Dict[str, str]], int]:
    """Keep dated busy blocks from today on that fit the workday window"""
    items = raw if isinstance(raw, list) else []
    today_key = today.isoformat()
    busy = []
    dropped = 0

    for item in items:
        if not isinstance(item, dict):
            dropped += 1
            continue
        day = str(item.get("date") or "")[:10]
        start = item.get("start")
        end = item.get("end")
        if not is_iso_date(day) or day < today_key or not within_window(start, end, workday_start, workday_end):
            dropped += 1
            continue

        block = {"date": day, "start": start, "end": end}
        if isinstance(item.get("note"), str):
            block["note"] = item["note"]
        busy.append(block)

    return busy, dropped


def normalize_weekly(stored: Any) -> Dict[str, List[Dict[str, str]]]:
    weekly = empty_weekly()
    if isinstance(stored, dict):
        for day in WEEKDAY_KEYS:
            if isinstance(stored.get(day), list):
                weekly[day] = list(stored[day])
    return weekly


class AvailabilityService:
    """Teacher-owned recurring class hours and dated busy blocks"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = local_now):
        self.db = db
        self.clock = clock

    def get_availability(self, teacher_id: str) -> Dict[str, Any]:
        """Raw read; empty weekly ranges and no busy blocks when nothing was saved"""
        row = self.db.get(TeacherAvailability, teacher_id)
        if row is None:
            return {"weekly": empty_weekly(), "busy": []}
        return {
            "weekly": normalize_weekly(row.weekly),
            "busy": list(row.busy or []),
        }

    @staticmethod
    def _require_approved_teacher(actor: Identity) -> None:
        if not actor.has_teacher_tag:
            raise AuthorizationError("Forbidden")
        if not actor.approved:
            raise AuthorizationError("Not approved")

    def get_own_availability(self, actor: Identity) -> Dict[str, Any]:
        """Availability of the calling teacher together with the policy window"""
        self._require_approved_teacher(actor)
        policy = load_policy(self.db)

        result = self.get_availability(actor.uid)
        result.update({
            "roles": sorted(actor.roles),
            "approved": actor.approved,
            "admin": policy.to_dict(),
        })
        return result

    def set_availability(self, actor: Identity, weekly: Any, busy: Any) -> Dict[str, Any]:
        """
        Replace the calling teacher's availability document.

        Entries outside the workday window (and past busy blocks) are dropped
        silently; the count is reported back as ``dropped``.
        """
        self._require_approved_teacher(actor)

        policy = load_policy(self.db)
        today = self.clock().date()

        clean_weekly, dropped_weekly = sanitize_weekly(weekly, policy.workday_start, policy.workday_end)
        clean_busy, dropped_busy = sanitize_busy(busy, policy.workday_start, policy.workday_end, today)

        row = self.db.get(TeacherAvailability, actor.uid)
        if row is None:
            row = TeacherAvailability(teacher_id=actor.uid)
            self.db.add(row)

        row.weekly = clean_weekly
        row.busy = clean_busy
        row.workday_start = policy.workday_start
        row.workday_end = policy.workday_end

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        dropped = dropped_weekly + dropped_busy
        if dropped:
            logger.info(f"Teacher {actor.uid} availability saved, {dropped} entries dropped")

        return {"weekly": clean_weekly, "busy": clean_busy, "dropped": dropped}
