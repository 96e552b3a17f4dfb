"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories and
the pure scheduling engine. Services are intentionally thin: they perform
validation, call into `planner.scheduling` and persist results via
repositories. Invalid payloads raise `ValueError`; controllers turn that
into a 400 response.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from passlib.context import CryptContext
import jwt
from typing import Iterable, List, Optional
from sqlmodel import Session
from . import models, repositories
from .config import settings
from .scheduling import (
    CapacityBucket,
    Clock,
    DayStats,
    Distribution,
    HardGap,
    SessionDraft,
    SessionStatus,
    SuggestionRequest,
    TemplateItem,
    aggregate_capacity,
    avoid_conflicts,
    distribute_across_availability,
    plan_from_template,
    session_status,
    suggest_slots,
    week_stats,
)
from .scheduling.conflicts import MAX_SHIFTS, SHIFT_MINUTES
from .scheduling.week import week_bounds
from .utils.timestamps import minutes_between, resolve_timezone, to_naive_utc, to_utc

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
logger = logging.getLogger("planner.services")
# subtask columns a PATCH may reset to null
_NULLABLE_SUBTASK_FIELDS = {"actual_minutes"}


class NotFoundError(LookupError):
    """Raised when a requested row does not exist."""


class AccessDeniedError(PermissionError):
    """Raised when a row belongs to another user."""


def local_week_start(week_start: date, tz_name: Optional[str] = None) -> datetime:
    """Midnight of `week_start` in the configured zone, as aware UTC."""
    tz = resolve_timezone(tz_name or settings.TIMEZONE)
    return to_utc(datetime.combine(week_start, time.min, tzinfo=tz))


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class StudySessionService:
    """CRUD for study sessions and subtasks plus derived views (status, stats)."""
    def __init__(self, session: Session, clock: Clock):
        self.session = session
        self.clock = clock
        self.repo = repositories.StudySessionRepository(session)
        self.subtask_repo = repositories.SubtaskRepository(session)

    def create(self, user_id: int, title: str, scheduled_start: datetime, scheduled_end: datetime,
               actual_start: Optional[datetime] = None, actual_end: Optional[datetime] = None,
               notes: Optional[str] = None) -> models.StudySession:
        """Create one session after validating its time ranges."""
        _check_range(scheduled_start, scheduled_end)
        _check_actuals(actual_start, actual_end)
        draft = SessionDraft(title=title, scheduled_start=scheduled_start, scheduled_end=scheduled_end, notes=notes)
        return self.repo.create(user_id, draft, actual_start, actual_end)

    def bulk_create(self, user_id: int, drafts: List[SessionDraft]) -> List[models.StudySession]:
        """Validate every draft, then persist all of them.

        A single invalid item rejects the whole batch; nothing is written.
        """
        for idx, d in enumerate(drafts):
            try:
                _check_range(d.scheduled_start, d.scheduled_end)
            except ValueError as e:
                raise ValueError(f"sessions[{idx}]: {e}")
        return self.repo.bulk_create(user_id, drafts)

    def list_sessions(self, user_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[models.StudySession]:
        return self.repo.list_for_user(user_id, start, end)

    def get_owned(self, user_id: int, session_id: int) -> models.StudySession:
        """Return the session if it exists and belongs to `user_id`."""
        row = self.repo.get(session_id)
        if not row:
            raise NotFoundError("study session not found")
        if row.user_id != user_id:
            raise AccessDeniedError("access denied")
        return row

    def update(self, user_id: int, session_id: int, changes: dict) -> models.StudySession:
        """Apply `changes` (only keys that were sent) and re-validate."""
        row = self.get_owned(user_id, session_id)
        for key in ("title", "notes"):
            if key in changes:
                setattr(row, key, changes[key])
        for key in ("scheduled_start", "scheduled_end", "actual_start", "actual_end"):
            if key in changes:
                value = changes[key]
                setattr(row, key, to_naive_utc(value) if value is not None else None)
        _check_range(row.scheduled_start, row.scheduled_end)
        _check_actuals(row.actual_start, row.actual_end)
        row.updated_at = to_naive_utc(self.clock.now())
        return self.repo.save(row)

    def delete(self, user_id: int, session_id: int) -> None:
        self.repo.delete(self.get_owned(user_id, session_id))

    def status(self, row: models.StudySession) -> SessionStatus:
        """Status against the injected clock; recomputed on every call."""
        return session_status(row, self.clock)

    def week_stats(self, user_id: int, week_start: datetime) -> List[DayStats]:
        """Planned/actual minutes per weekday for the week starting at `week_start`."""
        window = week_bounds(week_start)
        rows = self.repo.list_for_user(user_id, window.start, window.end)
        return week_stats(rows, week_start)

    def add_subtask(self, user_id: int, session_id: int, description: str,
                    estimated_minutes: int, sort_order: int = 0) -> models.SessionSubtask:
        self.get_owned(user_id, session_id)
        if estimated_minutes < 1:
            raise ValueError("estimated_minutes must be >= 1")
        st = models.SessionSubtask(
            session_id=session_id,
            description=description,
            estimated_minutes=estimated_minutes,
            sort_order=sort_order,
        )
        return self.subtask_repo.create(st)

    def update_subtask(self, user_id: int, session_id: int, subtask_id: int, changes: dict) -> models.SessionSubtask:
        st = self._owned_subtask(user_id, session_id, subtask_id)
        for key, value in changes.items():
            if value is None and key not in _NULLABLE_SUBTASK_FIELDS:
                continue
            setattr(st, key, value)
        return self.subtask_repo.save(st)

    def delete_subtask(self, user_id: int, session_id: int, subtask_id: int) -> None:
        self.subtask_repo.delete(self._owned_subtask(user_id, session_id, subtask_id))

    def _owned_subtask(self, user_id: int, session_id: int, subtask_id: int) -> models.SessionSubtask:
        self.get_owned(user_id, session_id)
        st = self.subtask_repo.get(subtask_id)
        if not st or st.session_id != session_id:
            raise NotFoundError("subtask not found")
        return st


class CapacityService:
    """Per-weekday capacity settings and the weekly capacity view."""
    def __init__(self, session: Session):
        self.session = session
        self.capacity_repo = repositories.CapacityRepository(session)
        self.session_repo = repositories.StudySessionRepository(session)

    def set_capacity(self, user_id: int, weekday: int, minutes: int) -> models.DailyCapacity:
        """Create or update a weekday capacity (weekday 0 = Monday)."""
        if not 0 <= weekday <= 6:
            raise ValueError("weekday must be between 0 (Monday) and 6 (Sunday)")
        if minutes < 0:
            raise ValueError("minutes must be >= 0")
        return self.capacity_repo.set_capacity(user_id, weekday, minutes)

    def totals(self, user_id: int) -> List[int]:
        """Seven per-day totals, defaults filled in for unset days."""
        totals = [settings.DEFAULT_DAILY_CAPACITY_MINUTES] * 7
        for row in self.capacity_repo.list_for_user(user_id):
            if 0 <= row.weekday <= 6:
                totals[row.weekday] = row.minutes
        return totals

    def week_capacity(self, user_id: int, week_start: datetime) -> List[CapacityBucket]:
        window = week_bounds(week_start)
        rows = self.session_repo.list_for_user(user_id, window.start, window.end)
        return aggregate_capacity(rows, week_start, self.totals(user_id))


class PlanningService:
    """Turn suggestion requests and templates into persisted sessions.

    The flow is always generate -> resolve conflicts against what the
    user already has -> hand the survivors to the repository.
    """
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.StudySessionRepository(session)

    def suggest(self, user_id: int, request: SuggestionRequest, drop_conflicts: bool = True) -> dict:
        """Preview suggestions with conflicts already resolved; nothing is stored."""
        candidates = suggest_slots(request)
        accepted = self._resolve(user_id, candidates, drop_conflicts)
        return _outcome(request.total_minutes, candidates, accepted)

    def plan(self, user_id: int, request: SuggestionRequest, drop_conflicts: bool = True) -> dict:
        """Suggest, resolve and persist in one call.

        Raises `ValueError` for requests the engine would silently ignore,
        so API clients get a clear rejection instead of an empty plan.
        """
        if request.session_minutes <= 0:
            raise ValueError("session_minutes must be > 0")
        if request.total_minutes <= 0:
            raise ValueError("total_minutes must be > 0")
        candidates = suggest_slots(request)
        accepted = self._resolve(user_id, candidates, drop_conflicts)
        created = self.repo.bulk_create(user_id, accepted)
        out = _outcome(request.total_minutes, candidates, accepted)
        out["created"] = created
        logger.info("planned %s sessions for user %s (%s/%s minutes)", len(created), user_id,
                    out["planned_minutes"], out["requested_minutes"])
        return out

    def apply_template(self, user_id: int, monday: date, items: Iterable[TemplateItem],
                       drop_conflicts: bool = True) -> dict:
        """Expand a weekly template for `monday` and persist the conflict-free drafts."""
        tz = resolve_timezone(settings.TIMEZONE)
        candidates = plan_from_template(monday, items, tz)
        accepted = self._resolve(user_id, candidates, drop_conflicts)
        created = self.repo.bulk_create(user_id, accepted)
        requested = sum(d.duration_minutes for d in candidates)
        out = _outcome(requested, candidates, accepted)
        out["created"] = created
        return out

    def distribute(self, availability: dict, session_minutes: int, total_minutes: int,
                   hard_gaps: List[HardGap]) -> Distribution:
        """Preview packing into explicit free slots (no persistence, no conflict check)."""
        tz = resolve_timezone(settings.TIMEZONE)
        return distribute_across_availability(availability, session_minutes, total_minutes, hard_gaps, tz)

    def _resolve(self, user_id: int, candidates: List[SessionDraft], drop_conflicts: bool) -> List[SessionDraft]:
        if not candidates:
            return []
        start = min(d.scheduled_start for d in candidates)
        # shifted drafts may move past the last candidate
        end = max(d.scheduled_end for d in candidates) + timedelta(minutes=SHIFT_MINUTES * MAX_SHIFTS)
        existing = self.repo.list_overlapping(user_id, start, end)
        return avoid_conflicts(candidates, existing, drop_conflicts)


def _outcome(requested_minutes: int, candidates: List[SessionDraft], accepted: List[SessionDraft]) -> dict:
    return {
        "requested_minutes": requested_minutes,
        "planned_minutes": sum(minutes_between(d.scheduled_start, d.scheduled_end) for d in accepted),
        "suggested_count": len(candidates),
        "dropped_count": len(candidates) - len(accepted),
        "sessions": accepted,
    }


def _check_range(start: datetime, end: datetime) -> None:
    if start is None or end is None:
        raise ValueError("scheduled_start and scheduled_end are required")
    if to_utc(end) <= to_utc(start):
        raise ValueError("scheduled_end must be after scheduled_start")


def _check_actuals(actual_start: Optional[datetime], actual_end: Optional[datetime]) -> None:
    if actual_start is not None and actual_end is not None and to_utc(actual_end) < to_utc(actual_start):
        raise ValueError("actual_end must not be before actual_start")
