"""Value types shared by the scheduling engine.

All types are frozen dataclasses: the engine builds new values and never
mutates what it was given. Timestamps on drafts are aware UTC datetimes.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union

from ..utils.timestamps import minutes_between, parse_timestamp

Timestamp = Union[datetime, str]

_HHMM = re.compile(r'^\d{2}:\d{2}$')


class SessionStatus(str, Enum):
    """Lifecycle state derived from a session's timestamps and the clock."""
    UPCOMING = 'UPCOMING'
    IN_PROGRESS = 'IN_PROGRESS'
    LATE = 'LATE'
    OVERDUE = 'OVERDUE'
    DONE = 'DONE'


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval `[start, end)`."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class SessionDraft:
    """A candidate study session, not yet persisted."""
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    notes: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.scheduled_start, self.scheduled_end)


@dataclass(frozen=True)
class ExistingSession:
    """A committed session; only its interval matters for conflict checks."""
    scheduled_start: datetime
    scheduled_end: datetime


@dataclass(frozen=True)
class CapacityBucket:
    day_index: int
    used_minutes: int
    total_minutes: int

    @property
    def overcapacity(self) -> bool:
        return self.used_minutes > self.total_minutes

    @property
    def percent(self) -> int:
        """Fill level for display, capped at 100."""
        if self.total_minutes <= 0:
            return 0
        return min(100, round(self.used_minutes / self.total_minutes * 100))


@dataclass(frozen=True)
class DayStats:
    planned: int = 0
    actual: int = 0
    session_count: int = 0


@dataclass(frozen=True)
class TimeOfDay:
    """Canonical preferred start time; hour 0-23, minute 0-59."""
    hour: int
    minute: int

    @classmethod
    def clamped(cls, hour: Any, minute: Any) -> 'TimeOfDay':
        return cls(_clamp_int(hour, 0, 23), _clamp_int(minute, 0, 59))


@dataclass(frozen=True)
class SuggestionWindow:
    """Date range and weekday mask (1 = Monday ... 7 = Sunday)."""
    start: Optional[Timestamp]
    end: Optional[Timestamp]
    allowed_weekdays: Tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7)


@dataclass(frozen=True)
class SuggestionRequest:
    title: str
    session_minutes: int
    total_minutes: int
    window: SuggestionWindow
    max_per_day: int = 1
    gap_minutes: int = 10
    preferred_start: Optional[TimeOfDay] = None
    timezone: Optional[str] = None


@dataclass(frozen=True)
class TemplateItem:
    """One recurring slot inside a week template (day_offset 0 = Monday)."""
    day_offset: int
    hour: int
    minute: int
    minutes: int
    title: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class HardGap:
    """Blocked local time range `start`-`end` ("HH:MM") on `weekday` (1-7)."""
    weekday: int
    start: str
    end: str


@dataclass(frozen=True)
class Distribution:
    sessions: List[Slot] = field(default_factory=list)
    minutes_unplaced: int = 0


def normalize_preferred_start(value: Any) -> Optional[TimeOfDay]:
    """Collapse the accepted preferred-start shapes into a `TimeOfDay`.

    Accepts an "HH:MM" string, the legacy `{hour, minute}` object (also
    spelled `{hh, mm}`), or an existing `TimeOfDay`. Anything else
    returns `None`, meaning "use the window's own time of day".
    """
    if value is None:
        return None
    if isinstance(value, TimeOfDay):
        return value
    if isinstance(value, str):
        if not _HHMM.match(value):
            return None
        hh, mm = value.split(':')
        return TimeOfDay.clamped(hh, mm)
    if isinstance(value, Mapping):
        hour = value.get('hour', value.get('hh'))
        minute = value.get('minute', value.get('mm'))
        if hour is None and minute is None:
            return None
        return TimeOfDay.clamped(hour, minute)
    hour = getattr(value, 'hour', None)
    minute = getattr(value, 'minute', None)
    if hour is None and minute is None:
        return None
    return TimeOfDay.clamped(hour, minute)


def resolve_preferred_start(text: Optional[str], legacy: Any = None) -> Optional[TimeOfDay]:
    """Apply the precedence "HH:MM" string > legacy object."""
    return normalize_preferred_start(text) or normalize_preferred_start(legacy)


def read_time(item: Any, name: str) -> Optional[datetime]:
    """Read timestamp `name` from an object or mapping as aware UTC.

    Mappings may use snake_case or camelCase keys. Returns `None` when the
    field is missing or unparseable.
    """
    if isinstance(item, Mapping):
        raw = item.get(name)
        if raw is None:
            raw = item.get(_camel(name))
    else:
        raw = getattr(item, name, None)
    return parse_timestamp(raw)


def read_interval(item: Any) -> Optional[Tuple[datetime, datetime]]:
    start = read_time(item, 'scheduled_start')
    end = read_time(item, 'scheduled_end')
    if start is None or end is None:
        return None
    return start, end


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(p.title() for p in rest)


def _clamp_int(value: Any, low: int, high: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return low
    return max(low, min(high, n))
