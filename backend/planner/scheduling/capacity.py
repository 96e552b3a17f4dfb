"""Per-day capacity accounting for a week of sessions."""

from datetime import datetime
from typing import Any, Iterable, List, Sequence, Union

from ..utils.timestamps import minutes_between
from .types import CapacityBucket, read_interval
from .week import day_index_of

DAYS_PER_WEEK = 7


def aggregate_capacity(
    sessions: Iterable[Any],
    week_start: datetime,
    per_day_total: Union[int, Sequence[int]],
) -> List[CapacityBucket]:
    """Sum scheduled minutes per weekday and pair them with the day's capacity.

    `per_day_total` is one value for every day or seven values starting
    with Monday. Sessions starting outside the week are ignored.
    """
    totals = _expand_totals(per_day_total)
    used = [0] * DAYS_PER_WEEK
    for session in sessions:
        bounds = read_interval(session)
        if bounds is None:
            continue
        start, end = bounds
        idx = day_index_of(week_start, start)
        if 0 <= idx < DAYS_PER_WEEK:
            used[idx] += minutes_between(start, end)
    return [
        CapacityBucket(day_index=i, used_minutes=used[i], total_minutes=totals[i])
        for i in range(DAYS_PER_WEEK)
    ]


def _expand_totals(per_day_total: Union[int, Sequence[int]]) -> List[int]:
    if isinstance(per_day_total, int):
        return [per_day_total] * DAYS_PER_WEEK
    totals = list(per_day_total)[:DAYS_PER_WEEK]
    # short sequences leave the remaining days without capacity
    return totals + [0] * (DAYS_PER_WEEK - len(totals))
