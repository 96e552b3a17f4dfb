"""Expand a recurring weekly template into concrete drafts."""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List

from ..utils.timestamps import to_utc
from .types import SessionDraft, TemplateItem


def plan_from_template(monday: date, items: Iterable[TemplateItem], tz: tzinfo) -> List[SessionDraft]:
    """One draft per template item, placed in the week starting at `monday`.

    Item times are local to `tz`; the drafts carry UTC timestamps.
    """
    drafts = []
    for item in items:
        day = monday + timedelta(days=item.day_offset)
        start = to_utc(datetime.combine(day, time(item.hour, item.minute), tzinfo=tz))
        drafts.append(SessionDraft(
            title=item.title,
            scheduled_start=start,
            scheduled_end=start + timedelta(minutes=item.minutes),
            notes=item.notes,
        ))
    return drafts
