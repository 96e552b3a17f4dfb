"""Timestamp parsing and arithmetic helpers.

Study sessions cross the API boundary as timezone-qualified ISO-8601
strings and are stored by SQLite as naive UTC datetimes. These helpers
normalize both shapes to timezone-aware UTC datetimes so the scheduling
engine can do elapsed-time arithmetic without caring where a value came
from.
"""

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MS_PER_MINUTE = 60_000
MS_PER_DAY = 24 * 3600 * 1000


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Return `value` as an aware UTC datetime, or `None` if it can't be read.

    Accepts datetimes (naive values are treated as UTC) and ISO-8601
    strings, including the trailing `Z` form browsers emit.
    """
    parsed = parse_aware(value)
    return to_utc(parsed) if parsed is not None else None


def parse_aware(value: Any) -> Optional[datetime]:
    """Like `parse_timestamp` but keeps the value's own UTC offset."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            return parse_aware(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def to_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to the naive UTC form stored in the database."""
    return to_utc(dt).replace(tzinfo=None)


def epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch for an (assumed UTC if naive) datetime."""
    return int(round(to_utc(dt).timestamp() * 1000))


def minutes_between(start: datetime, end: datetime) -> int:
    """Rounded whole minutes from `start` to `end` (may be negative)."""
    return int(round((epoch_ms(end) - epoch_ms(start)) / MS_PER_MINUTE))


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Map a zone name to a `tzinfo`; empty or unknown names fall back to UTC."""
    if not name or name.upper() == 'UTC':
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as an ISO string with a `Z` suffix (millisecond precision)."""
    if dt is None:
        return None
    return to_utc(dt).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
