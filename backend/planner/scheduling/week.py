"""Week boundaries, ISO week numbers and day bucketing.

Weeks start on Monday (day index 0). Week boundaries are local to the
configured time zone; day bucketing is plain elapsed time from the week
start, so a bucket is always exactly 24 hours wide.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Union

from ..utils.timestamps import MS_PER_DAY, epoch_ms
from .clock import Clock
from .types import TimeWindow

END_OF_DAY = time(23, 59, 59, 999000)


def start_of_week(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())


def compute_week_window(offset_weeks: int, clock: Clock, tz: tzinfo) -> TimeWindow:
    """Monday 00:00:00.000 to Sunday 23:59:59.999 local time.

    `offset_weeks` is relative to the week containing `clock.now()`:
    0 is this week, -1 last week, 1 next week.
    """
    today = clock.now().astimezone(tz).date()
    monday = start_of_week(today) + timedelta(weeks=offset_weeks)
    sunday = monday + timedelta(days=6)
    return TimeWindow(
        start=datetime.combine(monday, time.min, tzinfo=tz),
        end=datetime.combine(sunday, END_OF_DAY, tzinfo=tz),
    )


def week_bounds(week_start: datetime) -> TimeWindow:
    """Seven elapsed days starting at `week_start`."""
    return TimeWindow(start=week_start, end=week_start + timedelta(days=7))


def iso_week_number(value: Union[date, datetime]) -> int:
    """ISO-8601 week number using the Thursday-anchor rule.

    Only the calendar date matters. The date is moved to the Thursday of
    its Monday-based week; that Thursday's year owns the week, and week 1
    is the one containing 4 January.
    """
    day = value.date() if isinstance(value, datetime) else value
    thursday = day - timedelta(days=day.weekday()) + timedelta(days=3)
    jan4 = date(thursday.year, 1, 4)
    return 1 + round((thursday - jan4).days / 7)


def week_label(week_start: Union[date, datetime]) -> str:
    return f'Week {iso_week_number(week_start)}'


def day_index_of(week_start: datetime, timestamp: datetime) -> int:
    """Whole days elapsed from `week_start` to `timestamp`.

    Values outside 0-6 mean the timestamp lies outside the week.
    """
    return (epoch_ms(timestamp) - epoch_ms(week_start)) // MS_PER_DAY
