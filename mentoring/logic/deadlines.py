"""
Response deadlines for pending match requests.

All datetimes are handled as naive UTC, matching what the database stores.
Timezone-aware values are converted to UTC first.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from .constants import AUTO_REJECT_DAYS

DateLike = Union[datetime, str, None]

_SECONDS_PER_DAY = 24 * 60 * 60


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """Parse a datetime or ISO-8601 string; None when it cannot be parsed."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def compute_auto_reject_at(matched_at: Optional[datetime] = None) -> datetime:
    return (matched_at or datetime.utcnow()) + timedelta(days=AUTO_REJECT_DAYS)


def get_days_remaining(auto_reject_at: DateLike, now: Optional[datetime] = None) -> int:
    """
    Whole days left before the deadline, rounded up and never negative.

    Returns 0 when the deadline is missing or cannot be parsed.
    """
    deadline = parse_datetime(auto_reject_at)
    if deadline is None:
        return 0
    current = _to_naive_utc(now) if now else datetime.utcnow()
    days = math.ceil((deadline - current).total_seconds() / _SECONDS_PER_DAY)
    return max(0, days)


def is_expired(auto_reject_at: DateLike, now: Optional[datetime] = None) -> bool:
    return get_days_remaining(auto_reject_at, now) <= 0


def can_respond(auto_reject_at: DateLike, now: Optional[datetime] = None) -> bool:
    """Accept/Reject are only offered while days remain."""
    return not is_expired(auto_reject_at, now)


def deadline_passed(auto_reject_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Exact server-side check: strictly past the deadline."""
    if auto_reject_at is None:
        return False
    return _to_naive_utc(auto_reject_at) < (_to_naive_utc(now) if now else datetime.utcnow())
