"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Datetime columns hold naive UTC values (SQLite has no time zone type);
`planner.utils.timestamps` converts them back to aware UTC on read.
Session status is deliberately not a column: it is derived on every read.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)


class StudySession(SQLModel, table=True):
    """A scheduled study block, optionally with recorded actual times."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    title: str
    scheduled_start: datetime = Field(index=True)
    scheduled_end: datetime
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    subtasks: List['SessionSubtask'] = Relationship(
        back_populates='study_session',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan', 'order_by': 'SessionSubtask.sort_order'},
    )


class SessionSubtask(SQLModel, table=True):
    """A checklist item inside a `StudySession`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key='studysession.id', index=True)
    description: str
    estimated_minutes: int
    actual_minutes: Optional[int] = None
    completed: bool = False
    sort_order: int = 0
    study_session: Optional[StudySession] = Relationship(back_populates='subtasks')


class DailyCapacity(SQLModel, table=True):
    """Per-user study capacity for one weekday (0 = Monday).

    Days without a row fall back to `DEFAULT_DAILY_CAPACITY_MINUTES`.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    weekday: int
    minutes: int
