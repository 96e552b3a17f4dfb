"""Injectable clocks.

Anything in the planner that needs "now" takes a clock argument instead of
calling `datetime.now()` itself, so tests can pin time.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from ..utils.timestamps import to_utc


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FixedClock:
    """Clock frozen at `instant` (naive values are read as UTC)."""

    instant: datetime

    def now(self) -> datetime:
        return to_utc(self.instant)
