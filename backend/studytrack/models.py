"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Calendar days are stored as `YYYY-MM-DD` strings computed in the
configured study timezone (see `dates`).
"""

from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


TRACKING_MODES = ("time", "questions", "both")
GOAL_STATUSES = ("pending", "completed")
DEFAULT_COLOR = "#FFD700"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


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


class Subject(SQLModel, table=True):
    """A subject a user studies, with optional per-day targets.

    `tracking_mode` selects which targets are meaningful: `time` only
    uses minutes, `questions` only uses questions, `both` uses both.
    """
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_subject_user_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    name: str
    tracking_mode: str
    target_per_day_minutes: Optional[int] = None
    target_per_day_questions: Optional[int] = None
    color_code: str = DEFAULT_COLOR
    created_at: datetime = Field(default_factory=_utcnow)


class StudySession(SQLModel, table=True):
    """All study activity of one user for one subject on one calendar day.

    A second log on the same day merges into the existing row; see
    `ledger.MERGE_POLICY`.
    """
    __table_args__ = (UniqueConstraint("user_id", "subject_id", "day", name="uq_session_user_subject_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    subject_id: int = Field(foreign_key='subject.id', index=True)
    day: str = Field(index=True)
    duration_minutes: int = 0
    questions_solved: int = 0
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Streak(SQLModel, table=True):
    """The single streak record of a user.

    `max_streak` is never lower than `current_streak`.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', unique=True)
    current_streak: int = 0
    max_streak: int = 0
    last_active_day: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


class Goal(SQLModel, table=True):
    """A to-do style study goal, optionally tied to a subject.

    `due_date` is a calendar-day string; goals without one sort first.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    subject_id: Optional[int] = Field(default=None, foreign_key='subject.id')
    title: str
    status: str = "pending"
    due_date: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class WeeklyInsight(SQLModel, table=True):
    """Generated feedback for one Monday-Sunday week."""
    __table_args__ = (UniqueConstraint("user_id", "week_start", name="uq_insight_user_week"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key='user.id', index=True)
    week_start: str
    week_end: str
    feedback_text: str
    motivational_text: str
    risk_areas: str
    comparison_with_last_week: str
    created_at: datetime = Field(default_factory=_utcnow)
