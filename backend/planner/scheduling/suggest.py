"""Study slot suggestions.

`suggest_slots` walks the requested date range day by day and places
fixed-length sessions at the preferred start time until the minute budget
runs out. Consumption is greedy: the earliest allowed days are filled
first (up to `max_per_day` each), nothing is redistributed to even out
the load, and leftover minutes smaller than one session are dropped. It
is a planning aid with predictable output, not a packing optimizer.
"""

import logging
from datetime import datetime, time, timedelta
from typing import List

from ..utils.timestamps import parse_aware, resolve_timezone, to_utc
from .types import SessionDraft, SuggestionRequest, TimeOfDay

logger = logging.getLogger('planner.scheduling')


def suggest_slots(request: SuggestionRequest) -> List[SessionDraft]:
    """Generate candidate sessions for `request`, earliest first.

    Invalid input (non-positive minutes, unreadable window bounds) yields
    an empty list rather than an error.
    """
    session_minutes = request.session_minutes
    remaining = request.total_minutes
    if session_minutes <= 0 or remaining <= 0:
        return []

    start = parse_aware(request.window.start)
    end = parse_aware(request.window.end)
    if start is None or end is None:
        logger.debug('suggest_slots: unreadable window %r', request.window)
        return []

    tz = resolve_timezone(request.timezone) if request.timezone else start.tzinfo
    local_start = start.astimezone(tz)
    last_day = end.astimezone(tz).date()
    base = request.preferred_start or TimeOfDay(local_start.hour, local_start.minute)
    allowed = set(request.window.allowed_weekdays)
    length = timedelta(minutes=session_minutes)
    gap = timedelta(minutes=max(0, request.gap_minutes))

    drafts: List[SessionDraft] = []
    day = local_start.date()
    while day <= last_day and remaining >= session_minutes:
        if day.isoweekday() in allowed:
            cursor = to_utc(datetime.combine(day, time(base.hour, base.minute), tzinfo=tz))
            created_today = 0
            while created_today < request.max_per_day and remaining >= session_minutes:
                slot_end = cursor + length
                drafts.append(SessionDraft(
                    title=request.title,
                    scheduled_start=cursor,
                    scheduled_end=slot_end,
                ))
                remaining -= session_minutes
                created_today += 1
                cursor = slot_end + gap
        day += timedelta(days=1)

    if remaining:
        logger.debug('suggest_slots: %s of %s minutes left unplaced', remaining, request.total_minutes)
    return drafts
