"""Calendar-day helpers.

Days are plain `YYYY-MM-DD` strings. "Today" is the local date of the
current instant in `settings.STUDY_TIMEZONE`; no other conversion is
performed anywhere.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from .config import settings

DAY_FORMAT = "%Y-%m-%d"


def now() -> datetime:
    """Return the current instant in the study timezone."""
    return datetime.now(ZoneInfo(settings.STUDY_TIMEZONE))


def format_day(d: date) -> str:
    return d.strftime(DAY_FORMAT)


def parse_day(day: str) -> date:
    """Parse a `YYYY-MM-DD` string, raising ValueError on bad input."""
    return datetime.strptime(day, DAY_FORMAT).date()


def is_valid_day(day) -> bool:
    if not isinstance(day, str):
        return False
    try:
        parse_day(day)
    except ValueError:
        return False
    return True


def today(current: Optional[datetime] = None) -> str:
    """Calendar day of `current` (default: now)."""
    current = current or now()
    return format_day(current.date())


def shift_day(day: str, n: int) -> str:
    """Return the day `n` days after `day` (negative goes back)."""
    return format_day(parse_day(day) + timedelta(days=n))


def days_ago(n: int, current: Optional[datetime] = None) -> str:
    """Day string for `n` days before today; `n=0` is today."""
    return shift_day(today(current), -n)


def iso_week_range(reference_day: str) -> Tuple[str, str]:
    """Return `(week_start, week_end)`, the Monday-Sunday week holding `reference_day`."""
    ref = parse_day(reference_day)
    # 0=Sunday .. 6=Saturday
    weekday = ref.isoweekday() % 7
    offset = -6 if weekday == 0 else 1 - weekday
    monday = ref + timedelta(days=offset)
    return format_day(monday), format_day(monday + timedelta(days=6))


def day_series(start: str, count: int) -> List[str]:
    """`count` consecutive day strings beginning at `start`."""
    first = parse_day(start)
    return [format_day(first + timedelta(days=i)) for i in range(count)]
