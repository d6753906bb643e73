"""Date and time helpers shared by the domain, services and controllers.

All instants are handled as timezone-aware UTC ``datetime`` values. Calendar
questions (which month or day a timestamp belongs to) are answered in the
application timezone ``APP_TZ``.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from dentos.core.config import APP_TZ


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime.

    SQLite drops tzinfo on round-trip, so naive values coming back from the
    store are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_app_tz(value: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """Convert an instant into the application timezone for calendar checks."""
    return ensure_utc(value).astimezone(tz or APP_TZ)


def is_in_month(value: Optional[datetime], year: int, month: int, tz: Optional[ZoneInfo] = None) -> bool:
    if value is None:
        return False
    local = to_app_tz(value, tz)
    return local.year == year and local.month == month


def is_on_day(value: Optional[datetime], day: date, tz: Optional[ZoneInfo] = None) -> bool:
    if value is None:
        return False
    return to_app_tz(value, tz).date() == day


def parse_datetime(raw: str, tz: Optional[ZoneInfo] = None) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    A trailing ``Z`` is accepted. Values without an offset are local times in
    the application timezone. A bare date means midnight of that day.

    Raises:
        ValueError: if the string is not ISO-8601
    """
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or APP_TZ)
    return parsed.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string of an instant in UTC, or None."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def whole_days_since(value: datetime, now: datetime) -> int:
    """Days elapsed from ``value`` to ``now`` rounded up to whole days."""
    elapsed = ensure_utc(now) - ensure_utc(value)
    seconds = elapsed.total_seconds()
    days, remainder = divmod(seconds, 86400)
    return int(days) + (1 if remainder > 0 else 0)
