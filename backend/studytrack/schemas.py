"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class SubjectIn(BaseModel):
    """Request body for creating a subject."""
    name: str
    tracking_mode: str
    target_per_day_minutes: Optional[int] = None
    target_per_day_questions: Optional[int] = None
    color_code: Optional[str] = None


class SubjectUpdate(BaseModel):
    """Partial subject update; omitted fields are left unchanged."""
    name: Optional[str] = None
    tracking_mode: Optional[str] = None
    target_per_day_minutes: Optional[int] = None
    target_per_day_questions: Optional[int] = None
    color_code: Optional[str] = None


class SubjectOut(BaseModel):
    id: int
    name: str
    tracking_mode: str
    target_per_day_minutes: Optional[int] = None
    target_per_day_questions: Optional[int] = None
    color_code: str


class SessionLogIn(BaseModel):
    """A study session to add to today's record for a subject.

    Either `duration` (minutes) or `questions_solved` must be > 0.
    """
    subject_id: Optional[int] = None
    duration: int = Field(default=0, ge=0)
    questions_solved: int = Field(default=0, ge=0)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: Optional[str] = None


class SessionOut(BaseModel):
    id: int
    subject_id: int
    day: str
    duration_minutes: int
    questions_solved: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: Optional[str] = None


class SessionLogOut(BaseModel):
    message: str
    was_created: bool
    session: SessionOut


class DailyProgressRow(BaseModel):
    subject_id: int
    subject_name: str
    tracking_mode: str
    color_code: str
    completed_minutes: int
    completed_questions: int
    target_minutes: Optional[int] = None
    target_questions: Optional[int] = None


class DailyProgressOut(BaseModel):
    day: str
    progress: List[DailyProgressRow]


class WindowProgressRow(BaseModel):
    subject_id: int
    subject_name: str
    tracking_mode: str
    color_code: str
    completed_minutes: int
    completed_questions: int
    target_per_day_minutes: Optional[int] = None
    target_per_day_questions: Optional[int] = None
    expected_minutes: Optional[int] = None
    expected_questions: Optional[int] = None


class WindowProgressOut(BaseModel):
    window: str
    window_days: int
    progress: List[WindowProgressRow]


class StreakOut(BaseModel):
    current_streak: int
    max_streak: int


class HeatmapEntry(BaseModel):
    day: str
    count: int


class HeatmapOut(BaseModel):
    heatmap: List[HeatmapEntry]


class InsightOut(BaseModel):
    week_start: str
    week_end: str
    feedback_text: str
    motivational_text: str
    risk_areas: str
    comparison_with_last_week: str


class InsightEnvelope(BaseModel):
    insights: InsightOut
    fallback: bool = False


class GoalIn(BaseModel):
    """Request body for creating a goal."""
    title: str
    subject_id: Optional[int] = None
    due_date: Optional[str] = None


class GoalUpdate(BaseModel):
    """Partial goal update; omitted or empty fields are left unchanged."""
    title: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None
    subject_id: Optional[int] = None


class GoalOut(BaseModel):
    id: int
    title: str
    status: str
    due_date: Optional[str] = None
    subject_id: Optional[int] = None
    subject_name: Optional[str] = None
