"""Planned vs. actual study minutes per weekday."""

from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, List

from ..utils.timestamps import minutes_between
from .capacity import DAYS_PER_WEEK
from .types import DayStats, read_interval, read_time
from .week import day_index_of


def week_stats(sessions: Iterable[Any], week_start: datetime) -> List[DayStats]:
    """Seven `DayStats` buckets, Monday first.

    Actual minutes only count when a session has both an actual start and
    an actual end; half-recorded sessions add nothing to `actual`.
    """
    days = [DayStats() for _ in range(DAYS_PER_WEEK)]
    for session in sessions:
        bounds = read_interval(session)
        if bounds is None:
            continue
        start, end = bounds
        idx = day_index_of(week_start, start)
        if not 0 <= idx < DAYS_PER_WEEK:
            continue
        actual = 0
        actual_start = read_time(session, 'actual_start')
        actual_end = read_time(session, 'actual_end')
        if actual_start is not None and actual_end is not None:
            actual = minutes_between(actual_start, actual_end)
        day = days[idx]
        days[idx] = replace(
            day,
            planned=day.planned + minutes_between(start, end),
            actual=day.actual + actual,
            session_count=day.session_count + 1,
        )
    return days
