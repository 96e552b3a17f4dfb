"""Fill explicit free slots with back-to-back study sessions.

Unlike `suggest_slots`, which invents a start time per day, this works
from availability the student has already marked out (per ISO date) and
honours recurring blocked ranges such as school hours.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, List, Mapping, Optional, Sequence

from ..utils.timestamps import minutes_between, to_utc
from .conflicts import overlaps
from .types import Distribution, HardGap, Slot, normalize_preferred_start

logger = logging.getLogger('planner.scheduling')


def distribute_across_availability(
    availability: Mapping[str, Sequence[Slot]],
    session_minutes: int,
    total_minutes: int,
    hard_gaps: Iterable[HardGap] = (),
    tz: tzinfo = timezone.utc,
) -> Distribution:
    """Place sessions into `availability` in date order until the budget is spent.

    Each free slot yields as many whole sessions as fit. A session is
    placed while any budget remains, so the last one may overshoot the
    budget slightly; `minutes_unplaced` is never negative.
    """
    remaining = total_minutes
    if session_minutes <= 0:
        return Distribution(sessions=[], minutes_unplaced=max(0, remaining))
    gaps = list(hard_gaps)
    length = timedelta(minutes=session_minutes)
    placed: List[Slot] = []

    for day_key in sorted(availability):
        if remaining <= 0:
            break
        try:
            day = date.fromisoformat(day_key)
        except ValueError:
            logger.debug('skipping availability with bad date key %r', day_key)
            continue
        for slot in _without_gaps(availability[day_key], day, gaps, tz):
            if remaining <= 0:
                break
            span = minutes_between(slot.start, slot.end)
            if span < session_minutes:
                continue
            cursor = to_utc(slot.start)
            for _ in range(span // session_minutes):
                if remaining <= 0:
                    break
                placed.append(Slot(start=cursor, end=cursor + length))
                remaining -= session_minutes
                cursor += length

    return Distribution(sessions=placed, minutes_unplaced=max(0, remaining))


def _without_gaps(slots: Sequence[Slot], day: date, gaps: List[HardGap], tz: tzinfo) -> List[Slot]:
    """Drop slots that touch any blocked range for the day's weekday."""
    blocked = []
    for g in gaps:
        if g.weekday != day.isoweekday():
            continue
        start, end = _local(day, g.start, tz), _local(day, g.end, tz)
        if start is None or end is None:
            logger.debug('skipping hard gap with unreadable times %r', g)
            continue
        blocked.append((start, end))
    if not blocked:
        return list(slots)
    return [
        s for s in slots
        if not any(overlaps(to_utc(s.start), to_utc(s.end), b1, b2) for b1, b2 in blocked)
    ]


def _local(day: date, hhmm: str, tz: tzinfo) -> Optional[datetime]:
    at = normalize_preferred_start(hhmm)
    if at is None:
        return None
    return to_utc(datetime.combine(day, time(at.hour, at.minute), tzinfo=tz))
