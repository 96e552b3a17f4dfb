"""Study-session scheduling and capacity accounting.

Everything in this package is pure and synchronous: functions take plain
values (plus an injected clock where "now" matters) and return new values.
Persistence and HTTP live in the surrounding `planner` modules.
"""

from .availability import distribute_across_availability
from .capacity import aggregate_capacity
from .clock import Clock, FixedClock, SystemClock
from .conflicts import avoid_conflicts, overlaps, shift_draft
from .stats import week_stats
from .status import classify_status, session_status
from .suggest import suggest_slots
from .template import plan_from_template
from .types import (
    CapacityBucket,
    DayStats,
    Distribution,
    ExistingSession,
    HardGap,
    SessionDraft,
    SessionStatus,
    Slot,
    SuggestionRequest,
    SuggestionWindow,
    TemplateItem,
    TimeOfDay,
    TimeWindow,
    normalize_preferred_start,
    resolve_preferred_start,
)
from .week import compute_week_window, day_index_of, iso_week_number, start_of_week, week_bounds, week_label

__all__ = [
    'CapacityBucket', 'Clock', 'DayStats', 'Distribution', 'ExistingSession',
    'FixedClock', 'HardGap', 'SessionDraft', 'SessionStatus', 'Slot',
    'SuggestionRequest', 'SuggestionWindow', 'SystemClock', 'TemplateItem',
    'TimeOfDay', 'TimeWindow', 'aggregate_capacity', 'avoid_conflicts',
    'classify_status', 'compute_week_window', 'day_index_of',
    'distribute_across_availability', 'iso_week_number', 'normalize_preferred_start',
    'overlaps', 'plan_from_template', 'resolve_preferred_start', 'session_status',
    'shift_draft', 'start_of_week', 'suggest_slots', 'week_bounds', 'week_label',
    'week_stats',
]
