"""Conflict detection between candidate and committed sessions."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Sequence, Tuple

from ..utils.timestamps import to_utc
from .types import SessionDraft, read_interval

logger = logging.getLogger('planner.scheduling')

SHIFT_MINUTES = 60
MAX_SHIFTS = 3


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def shift_draft(draft: SessionDraft, minutes: int) -> SessionDraft:
    """Move both ends of `draft` by `minutes`, keeping its duration."""
    delta = timedelta(minutes=minutes)
    return replace(
        draft,
        scheduled_start=draft.scheduled_start + delta,
        scheduled_end=draft.scheduled_end + delta,
    )


def avoid_conflicts(
    candidates: Iterable[SessionDraft],
    existing: Iterable[Any],
    drop_conflicts: bool = True,
) -> List[SessionDraft]:
    """Return the candidates that don't collide with `existing`.

    With `drop_conflicts` every overlapping candidate is discarded. Without
    it, an overlapping candidate is pushed back by an hour up to three
    times and kept at the first free position; if none is free it is
    discarded. Candidates are not checked against each other.

    `existing` items may be ORM rows, `ExistingSession` values or mappings;
    entries whose bounds can't be read are ignored.
    """
    busy = _busy_intervals(existing)
    result = []
    for draft in candidates:
        if not _collides(draft, busy):
            result.append(draft)
            continue
        if drop_conflicts:
            logger.debug('dropping conflicting draft at %s', draft.scheduled_start)
            continue
        moved = draft
        for _ in range(MAX_SHIFTS):
            moved = shift_draft(moved, SHIFT_MINUTES)
            if not _collides(moved, busy):
                logger.debug('shifted draft %s -> %s', draft.scheduled_start, moved.scheduled_start)
                result.append(moved)
                break
        else:
            logger.debug('no free shift for draft at %s; dropped', draft.scheduled_start)
    return result


def _busy_intervals(existing: Iterable[Any]) -> Sequence[Tuple[datetime, datetime]]:
    busy = []
    for item in existing:
        bounds = read_interval(item)
        if bounds is None:
            logger.warning('ignoring existing session with unreadable bounds: %r', item)
            continue
        busy.append(bounds)
    return busy


def _collides(draft: SessionDraft, busy: Sequence[Tuple[datetime, datetime]]) -> bool:
    a1, a2 = to_utc(draft.scheduled_start), to_utc(draft.scheduled_end)
    return any(overlaps(a1, a2, b1, b2) for b1, b2 in busy)
