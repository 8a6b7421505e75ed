# campus_booking/utils/time_intervals.py
"""
Time arithmetic shared by the scheduling services.

Intraday times are zero-padded ``HH:MM`` strings and dates are ISO
``YYYY-MM-DD`` strings. Both are validated strictly at every input boundary,
so ``date + start`` concatenation is a valid chronological sort key.
Combined date + time values are naive datetimes in the organization timezone.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from campus_booking.config.settings import get_settings

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Indexed by date.weekday() (Monday == 0)
WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
WEEKEND_KEYS = frozenset({"sat", "sun"})

FULL_DAY_START = "00:00"
FULL_DAY_END = "23:59"

DEFAULT_SLOT_MINUTES = 30


@dataclass(frozen=True)
class TimeRange:
    """Intraday half-open range ``[start, end)``"""
    start: str
    end: str

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


def is_hhmm(value: Any) -> bool:
    """True for zero-padded 24h ``HH:MM`` strings"""
    return isinstance(value, str) and bool(HHMM_PATTERN.match(value))


def is_iso_date(value: Any) -> bool:
    """True for zero-padded ``YYYY-MM-DD`` strings naming a real calendar day"""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_iso_date(value: str) -> date:
    if not is_iso_date(value):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value)


def to_minutes(hhmm: str) -> int:
    """Minutes since midnight"""
    if not is_hhmm(hhmm):
        raise ValueError(f"Invalid time: {hhmm!r}")
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """
    Half-open overlap test.

    Works for any mutually comparable values (minutes, datetimes, padded
    ``HH:MM`` strings). Ranges that only touch (``a_end == b_start``) do not
    overlap.
    """
    return not (a_end <= b_start or b_end <= a_start)


def generate_slots(
        window_start: str,
        window_end: str,
        step_minutes: int = DEFAULT_SLOT_MINUTES
) -> List[TimeRange]:
    """Consecutive fixed-width slots that fully fit inside the window"""
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    start = to_minutes(window_start)
    end = to_minutes(window_end)

    slots = []
    current = start
    while current + step_minutes <= end:
        slots.append(TimeRange(from_minutes(current), from_minutes(current + step_minutes)))
        current += step_minutes
    return slots


def slots_minus_busy(slots: Sequence[TimeRange], busy: Sequence[TimeRange]) -> List[TimeRange]:
    """Drop every slot that overlaps any busy range"""
    busy_minutes = [(to_minutes(b.start), to_minutes(b.end)) for b in busy]
    free = []
    for slot in slots:
        s, e = to_minutes(slot.start), to_minutes(slot.end)
        if not any(overlaps(s, e, bs, be) for bs, be in busy_minutes):
            free.append(slot)
    return free


def within_window(start: Any, end: Any, window_start: str, window_end: str) -> bool:
    """Well-formed, non-empty range fully contained in ``[window_start, window_end]``"""
    if not (is_hhmm(start) and is_hhmm(end)):
        return False
    s, e = to_minutes(start), to_minutes(end)
    return s < e and s >= to_minutes(window_start) and e <= to_minutes(window_end)


def combine(date_iso: str, hhmm: str) -> datetime:
    """Organization-local instant for a date and a time of day"""
    day = parse_iso_date(date_iso)
    minutes = to_minutes(hhmm)
    return datetime(day.year, day.month, day.day, minutes // 60, minutes % 60)


def weekday_key(value: Union[date, datetime]) -> str:
    return WEEKDAY_KEYS[value.weekday()]


def is_weekend(value: Union[date, datetime]) -> bool:
    return weekday_key(value) in WEEKEND_KEYS


def iter_days(from_date: date, to_date: date) -> Iterator[date]:
    """Every calendar day in ``[from_date, to_date]``"""
    current = from_date
    while current <= to_date:
        yield current
        current += timedelta(days=1)


def date_key(value: Union[date, datetime]) -> str:
    """``YYYY-MM-DD`` of a date or datetime"""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def hhmm_of(value: datetime) -> str:
    return value.strftime("%H:%M")


def day_bounds(day: date):
    """``[00:00 of day, 00:00 of next day)`` as naive local datetimes"""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current organization-local wall clock, as a naive datetime"""
    tz = ZoneInfo(tz_name or get_settings().DEFAULT_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)


def format_slot(start_at: datetime, end_at: datetime) -> str:
    """Human readable ``YYYY-MM-DD HH:MM–HH:MM`` used in notifications"""
    return f"{date_key(start_at)} {hhmm_of(start_at)}–{hhmm_of(end_at)}"
