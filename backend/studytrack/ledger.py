"""Per-day study session ledger.

One `StudySession` row exists per (user, subject, calendar day). Logging
again on the same day merges into that row according to `MERGE_POLICY`,
then the streak engine is told about the activity.
"""

import logging
from typing import List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import dates, models, repositories
from .errors import StorageError, ValidationError
from .streaks import StreakEngine

logger = logging.getLogger("studytrack.ledger")

ACCUMULATE = "accumulate"
OVERWRITE = "overwrite"

# how a repeated same-day log treats each field
MERGE_POLICY = {
    "duration_minutes": ACCUMULATE,
    "questions_solved": ACCUMULATE,
    "start_time": OVERWRITE,
    "end_time": OVERWRITE,
    "notes": OVERWRITE,
}


class LogResult(NamedTuple):
    session: models.StudySession
    was_created: bool


class SessionLedger:
    """Log study activity and query stored per-day records."""
    def __init__(self, session: Session, streaks: Optional[StreakEngine] = None):
        self.session = session
        self.repo = repositories.SessionRepository(session)
        self.subject_repo = repositories.SubjectRepository(session)
        self.streaks = streaks or StreakEngine(session)

    def log_session(
        self,
        user_id: int,
        subject_id: Optional[int],
        day: str,
        duration_delta: int = 0,
        questions_delta: int = 0,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LogResult:
        """Add activity for `subject_id` on `day`.

        Raises `ValidationError` (nothing written) when the subject is
        missing or foreign, a delta is negative, or both deltas are zero.
        """
        duration_delta = duration_delta or 0
        questions_delta = questions_delta or 0
        if not subject_id or (duration_delta == 0 and questions_delta == 0):
            raise ValidationError("Subject and either duration or questions solved is required")
        if duration_delta < 0 or questions_delta < 0:
            raise ValidationError("duration and questions solved must be >= 0")
        if not dates.is_valid_day(day):
            raise ValidationError(f"invalid day: {day!r}")
        if self.subject_repo.get_for_user(user_id, subject_id) is None:
            raise ValidationError(f"subject not found: {subject_id}")

        fields = {
            "duration_minutes": duration_delta,
            "questions_solved": questions_delta,
            "start_time": start_time,
            "end_time": end_time,
            "notes": notes,
        }
        accumulate = {k: v for k, v in fields.items() if MERGE_POLICY[k] == ACCUMULATE}
        # an omitted display field keeps the stored value
        overwrite = {k: v for k, v in fields.items() if MERGE_POLICY[k] == OVERWRITE and v}

        try:
            record, created = self.repo.upsert_day(user_id, subject_id, day, accumulate, overwrite)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("session upsert failed user_id=%s subject_id=%s day=%s", user_id, subject_id, day)
            raise StorageError("failed to log study session") from exc
        logger.info(
            "session %s user_id=%s subject_id=%s day=%s minutes=%s questions=%s",
            "created" if created else "updated",
            user_id,
            subject_id,
            day,
            record.duration_minutes,
            record.questions_solved,
        )
        self.streaks.notify_activity(user_id, day)
        return LogResult(record, created)

    def query_range(
        self,
        user_id: int,
        from_day: str,
        to_day: str,
        subject_id: Optional[int] = None,
    ) -> List[models.StudySession]:
        """Records with `from_day <= day <= to_day`, ordered by day then subject."""
        for d in (from_day, to_day):
            if not dates.is_valid_day(d):
                raise ValidationError(f"invalid day: {d!r}")
        return self.repo.list_range(user_id, from_day, to_day, subject_id)

    def query_by_day(self, user_id: int, day: str) -> List[models.StudySession]:
        return self.query_range(user_id, day, day)

    def query_since(self, user_id: int, from_day: str) -> List[models.StudySession]:
        """Every record on or after `from_day`."""
        return self.repo.list_range(user_id, from_day=from_day)
