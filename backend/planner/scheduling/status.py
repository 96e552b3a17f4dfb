"""Session status derived from timestamps and the current time.

Status is never stored. It is recomputed from the session's scheduled and
actual timestamps every time it is read, so it always reflects the clock.
"""

from datetime import datetime
from typing import Any, Optional

from ..utils.timestamps import to_utc
from .clock import Clock
from .types import SessionStatus, read_time


def classify_status(
    scheduled_start: datetime,
    scheduled_end: datetime,
    actual_start: Optional[datetime],
    actual_end: Optional[datetime],
    now: datetime,
) -> SessionStatus:
    """Return the first matching state.

    1. finished after the scheduled end      -> LATE
    2. finished                              -> DONE
    3. started and now past the scheduled end -> LATE
    4. started                               -> IN_PROGRESS
    5. now past the scheduled end            -> OVERDUE
    6. otherwise                             -> UPCOMING
    """
    end = to_utc(scheduled_end)
    now = to_utc(now)
    if actual_end is not None:
        if to_utc(actual_end) > end:
            return SessionStatus.LATE
        return SessionStatus.DONE
    if actual_start is not None:
        if now > end:
            return SessionStatus.LATE
        return SessionStatus.IN_PROGRESS
    if now > end:
        return SessionStatus.OVERDUE
    return SessionStatus.UPCOMING


def session_status(session: Any, clock: Clock) -> SessionStatus:
    """Classify a session-like object or mapping against `clock.now()`."""
    return classify_status(
        read_time(session, 'scheduled_start'),
        read_time(session, 'scheduled_end'),
        read_time(session, 'actual_start'),
        read_time(session, 'actual_end'),
        clock.now(),
    )
