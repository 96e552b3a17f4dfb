"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Request models that feed the scheduling
engine convert themselves into its dataclasses, so the engine never sees
pydantic objects or the legacy preferred-start shape.
"""

from datetime import date, datetime
from pydantic import AliasChoices, BaseModel, Field
from typing import Dict, List, Optional

from .scheduling import HardGap, Slot, SuggestionRequest, SuggestionWindow, TemplateItem, resolve_preferred_start


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class StudySessionIn(BaseModel):
    """Create payload for a single study session."""
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    notes: Optional[str] = None


class StudySessionUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    title: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    notes: Optional[str] = None


class BulkSessionItem(BaseModel):
    """Single item of a bulk create request."""
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    notes: Optional[str] = None


class BulkCreateIn(BaseModel):
    sessions: List[BulkSessionItem]


class SubtaskIn(BaseModel):
    description: str
    estimated_minutes: int = Field(ge=1)
    sort_order: int = Field(default=0, ge=0)


class SubtaskUpdate(BaseModel):
    description: Optional[str] = None
    estimated_minutes: Optional[int] = Field(default=None, ge=1)
    actual_minutes: Optional[int] = Field(default=None, ge=0)
    completed: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0)


class CapacityIn(BaseModel):
    minutes: int = Field(ge=0)


class LegacyStartTime(BaseModel):
    """Deprecated `{hour, minute}` preferred start (older clients send `{hh, mm}`)."""
    hour: int = Field(validation_alias=AliasChoices('hour', 'hh'))
    minute: int = Field(default=0, validation_alias=AliasChoices('minute', 'mm'))


class SuggestWindowIn(BaseModel):
    start: datetime = Field(validation_alias=AliasChoices('start', 'from'))
    end: datetime = Field(validation_alias=AliasChoices('end', 'to'))
    allowed_weekdays: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5, 6, 7],
        validation_alias=AliasChoices('allowed_weekdays', 'days'),
    )


class SuggestionIn(BaseModel):
    """Request for suggested sessions.

    `preferred_start` ("HH:MM") wins over `preferred_start_obj`; with
    neither, sessions start at the time of day of `window.start`.
    Without an explicit `timezone`, an offset on `window.start` sets the
    local zone; `default_timezone` only applies to naive window bounds.
    """
    title: str
    session_minutes: int
    total_minutes: int
    window: SuggestWindowIn
    max_per_day: int = 1
    gap_minutes: int = 10
    preferred_start: Optional[str] = None
    preferred_start_obj: Optional[LegacyStartTime] = None
    timezone: Optional[str] = None
    drop_conflicts: bool = True

    def to_request(self, default_timezone: Optional[str] = None) -> SuggestionRequest:
        return SuggestionRequest(
            title=self.title,
            session_minutes=self.session_minutes,
            total_minutes=self.total_minutes,
            window=SuggestionWindow(
                start=self.window.start,
                end=self.window.end,
                allowed_weekdays=tuple(self.window.allowed_weekdays),
            ),
            max_per_day=self.max_per_day,
            gap_minutes=self.gap_minutes,
            preferred_start=resolve_preferred_start(self.preferred_start, self.preferred_start_obj),
            timezone=self.timezone or self._fallback_timezone(default_timezone),
        )

    def _fallback_timezone(self, default_timezone: Optional[str]) -> Optional[str]:
        if self.window.start.tzinfo is None:
            return default_timezone
        return None


class TemplateItemIn(BaseModel):
    day_offset: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    minutes: int = Field(ge=1)
    title: str
    notes: Optional[str] = None

    def to_item(self) -> TemplateItem:
        return TemplateItem(
            day_offset=self.day_offset,
            hour=self.hour,
            minute=self.minute,
            minutes=self.minutes,
            title=self.title,
            notes=self.notes,
        )


class TemplatePlanIn(BaseModel):
    """Apply a weekly template to the week starting on `week_start` (a Monday)."""
    week_start: date
    items: List[TemplateItemIn]
    drop_conflicts: bool = True


class SlotIn(BaseModel):
    start: datetime
    end: datetime


class HardGapIn(BaseModel):
    weekday: int = Field(ge=1, le=7)
    start: str = Field(pattern=r"^\d{2}:\d{2}$")
    end: str = Field(pattern=r"^\d{2}:\d{2}$")


class DistributeIn(BaseModel):
    """Pack sessions into free slots keyed by ISO date (YYYY-MM-DD)."""
    title: str
    session_minutes: int
    total_minutes: int
    availability: Dict[str, List[SlotIn]]
    hard_gaps: List[HardGapIn] = Field(default_factory=list)

    def slots(self) -> Dict[str, List[Slot]]:
        return {
            day: [Slot(start=s.start, end=s.end) for s in slots]
            for day, slots in self.availability.items()
        }

    def gaps(self) -> List[HardGap]:
        return [HardGap(weekday=g.weekday, start=g.start, end=g.end) for g in self.hard_gaps]
