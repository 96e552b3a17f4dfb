"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users, study
sessions, subtasks, capacities). Repositories return SQLModel objects and
perform commits/refreshes where appropriate. Datetimes are written as
naive UTC.
"""

from datetime import datetime
from typing import Iterable, List, Optional
from sqlmodel import Session, select
from . import models
from .scheduling import SessionDraft
from .utils.timestamps import to_naive_utc


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class StudySessionRepository:
    """Persistence for study sessions; the write side of the planner."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user_id: int, draft: SessionDraft, actual_start: Optional[datetime] = None,
               actual_end: Optional[datetime] = None) -> models.StudySession:
        """Persist a single draft for `user_id`, with any recorded actual times."""
        row = self._row(user_id, draft)
        row.actual_start = to_naive_utc(actual_start) if actual_start else None
        row.actual_end = to_naive_utc(actual_end) if actual_end else None
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def bulk_create(self, user_id: int, drafts: Iterable[SessionDraft]) -> List[models.StudySession]:
        """Persist all drafts in one commit, preserving their order.

        Either every row is written or, if the commit fails, none are.
        """
        rows = [self._row(user_id, d) for d in drafts]
        if not rows:
            return []
        self.session.add_all(rows)
        self.session.commit()
        for row in rows:
            self.session.refresh(row)
        return rows

    def get(self, session_id: int) -> Optional[models.StudySession]:
        return self.session.get(models.StudySession, session_id)

    def list_for_user(self, user_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[models.StudySession]:
        """Sessions for `user_id` ordered by scheduled start.

        `start`/`end` bound the scheduled start (inclusive start, exclusive end).
        """
        stmt = select(models.StudySession).where(models.StudySession.user_id == user_id)
        if start is not None:
            stmt = stmt.where(models.StudySession.scheduled_start >= to_naive_utc(start))
        if end is not None:
            stmt = stmt.where(models.StudySession.scheduled_start < to_naive_utc(end))
        stmt = stmt.order_by(models.StudySession.scheduled_start)
        return self.session.exec(stmt).all()

    def list_overlapping(self, user_id: int, start: datetime, end: datetime) -> List[models.StudySession]:
        """Sessions whose interval intersects `[start, end)`."""
        stmt = select(models.StudySession).where(
            models.StudySession.user_id == user_id,
            models.StudySession.scheduled_start < to_naive_utc(end),
            models.StudySession.scheduled_end > to_naive_utc(start),
        ).order_by(models.StudySession.scheduled_start)
        return self.session.exec(stmt).all()

    def save(self, row: models.StudySession) -> models.StudySession:
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, row: models.StudySession) -> None:
        self.session.delete(row)
        self.session.commit()

    @staticmethod
    def _row(user_id: int, draft: SessionDraft) -> models.StudySession:
        return models.StudySession(
            user_id=user_id,
            title=draft.title,
            scheduled_start=to_naive_utc(draft.scheduled_start),
            scheduled_end=to_naive_utc(draft.scheduled_end),
            notes=draft.notes,
        )


class SubtaskRepository:
    """CRUD helpers for `SessionSubtask` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, subtask: models.SessionSubtask) -> models.SessionSubtask:
        self.session.add(subtask)
        self.session.commit()
        self.session.refresh(subtask)
        return subtask

    def get(self, subtask_id: int) -> Optional[models.SessionSubtask]:
        return self.session.get(models.SessionSubtask, subtask_id)

    def save(self, subtask: models.SessionSubtask) -> models.SessionSubtask:
        self.session.add(subtask)
        self.session.commit()
        self.session.refresh(subtask)
        return subtask

    def delete(self, subtask: models.SessionSubtask) -> None:
        self.session.delete(subtask)
        self.session.commit()


class CapacityRepository:
    """Repository for per-weekday capacity upserts and queries."""
    def __init__(self, session: Session):
        self.session = session

    def set_capacity(self, user_id: int, weekday: int, minutes: int) -> models.DailyCapacity:
        """Upsert the capacity for a user/weekday combination."""
        existing = self.session.exec(
            select(models.DailyCapacity).where(
                models.DailyCapacity.user_id == user_id,
                models.DailyCapacity.weekday == weekday,
            )
        ).first()
        if existing:
            existing.minutes = minutes
            self.session.add(existing)
            self.session.commit()
            return existing
        row = models.DailyCapacity(user_id=user_id, weekday=weekday, minutes=minutes)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def list_for_user(self, user_id: int) -> List[models.DailyCapacity]:
        stmt = select(models.DailyCapacity).where(models.DailyCapacity.user_id == user_id)
        return self.session.exec(stmt).all()
