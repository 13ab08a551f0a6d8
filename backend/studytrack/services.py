"""Business logic services used by HTTP controllers.

This module holds the account and subject services. Services are
intentionally thin: they perform validation, execute domain logic and
persist aggregates via repositories. Study logging, streaks and progress
live in `ledger`, `streaks` and `progress`.
"""

from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
import logging
from typing import List, Optional
from . import dates, models, repositories
from sqlmodel import Session
from .config import settings
from .errors import ConflictError, NotFoundError, ValidationError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
JWT_SECRET = settings.JWT_SECRET
JWT_ALGORITHM = settings.JWT_ALGORITHM
JWT_EXPIRE_HOURS = settings.JWT_EXPIRE_HOURS

logger = logging.getLogger("studytrack.services")


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        if not username or not username.strip() or not password:
            raise ValidationError("username and password are required")
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username.strip(), password_hash=hashed)
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
        expire = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
        return token


class SubjectService:
    """Per-user subject directory with tracking mode and daily targets."""
    def __init__(self, session: Session):
        self.session = session
        self.subject_repo = repositories.SubjectRepository(session)
        self.session_repo = repositories.SessionRepository(session)
        self.goal_repo = repositories.GoalRepository(session)

    def create(
        self,
        user_id: int,
        name: str,
        tracking_mode: str,
        target_per_day_minutes: Optional[int] = None,
        target_per_day_questions: Optional[int] = None,
        color_code: Optional[str] = None,
    ) -> models.Subject:
        """Create a subject; targets the tracking mode ignores are dropped."""
        if not name or not name.strip() or not tracking_mode:
            raise ValidationError("Subject name and tracking type are required")
        self._validate_mode(tracking_mode)
        self._validate_targets(target_per_day_minutes, target_per_day_questions)
        name = name.strip()
        if self.subject_repo.get_by_name(user_id, name):
            raise ConflictError("Subject with this name already exists")
        subject = models.Subject(
            user_id=user_id,
            name=name,
            tracking_mode=tracking_mode,
            target_per_day_minutes=target_per_day_minutes if tracking_mode != "questions" else None,
            target_per_day_questions=target_per_day_questions if tracking_mode != "time" else None,
            color_code=color_code or models.DEFAULT_COLOR,
        )
        return self.subject_repo.save(subject)

    def list(self, user_id: int) -> List[models.Subject]:
        return self.subject_repo.list_for_user(user_id)

    def update(self, user_id: int, subject_id: int, changes: dict) -> models.Subject:
        """Apply the provided fields to a subject owned by `user_id`.

        A target is only updated when the effective tracking mode uses
        it; a stale target from an earlier mode is left in place and is
        hidden by the daily report.
        """
        subject = self.subject_repo.get_for_user(user_id, subject_id)
        if subject is None:
            raise NotFoundError("Subject not found")
        mode = changes.get("tracking_mode") or subject.tracking_mode
        self._validate_mode(mode)
        self._validate_targets(changes.get("target_per_day_minutes"), changes.get("target_per_day_questions"))
        name = (changes.get("name") or "").strip()
        if name and name != subject.name:
            if self.subject_repo.get_by_name(user_id, name):
                raise ConflictError("Subject with this name already exists")
            subject.name = name
        subject.tracking_mode = mode
        if mode != "questions" and changes.get("target_per_day_minutes") is not None:
            subject.target_per_day_minutes = changes["target_per_day_minutes"]
        if mode != "time" and changes.get("target_per_day_questions") is not None:
            subject.target_per_day_questions = changes["target_per_day_questions"]
        if changes.get("color_code"):
            subject.color_code = changes["color_code"]
        return self.subject_repo.save(subject)

    def delete(self, user_id: int, subject_id: int) -> None:
        """Delete a subject with its logged sessions; its goals are kept unlinked."""
        subject = self.subject_repo.get_for_user(user_id, subject_id)
        if subject is None:
            raise NotFoundError("Subject not found")
        self.session_repo.delete_for_subject(subject.id)
        self.goal_repo.detach_subject(subject.id)
        self.subject_repo.delete(subject)
        logger.info("subject deleted user_id=%s subject_id=%s", user_id, subject_id)

    def _validate_mode(self, mode: str):
        if mode not in models.TRACKING_MODES:
            raise ValidationError(f"tracking_mode must be one of {', '.join(models.TRACKING_MODES)}")

    def _validate_targets(self, minutes: Optional[int], questions: Optional[int]):
        for label, value in (("target_per_day_minutes", minutes), ("target_per_day_questions", questions)):
            if value is not None and value < 0:
                raise ValidationError(f"{label} must be >= 0")


class GoalService:
    """Create, list, update and delete a user's study goals."""
    def __init__(self, session: Session):
        self.session = session
        self.goal_repo = repositories.GoalRepository(session)
        self.subject_repo = repositories.SubjectRepository(session)

    def create(self, user_id: int, title: str, subject_id: Optional[int] = None, due_date: Optional[str] = None) -> models.Goal:
        """Create a pending goal; a given subject must belong to the user."""
        if not title or not title.strip():
            raise ValidationError("Title is required")
        self._validate_subject(user_id, subject_id)
        self._validate_due_date(due_date)
        goal = models.Goal(user_id=user_id, title=title.strip(), subject_id=subject_id or None, due_date=due_date)
        return self.goal_repo.save(goal)

    def list(self, user_id: int, subject_id: Optional[int] = None, status: Optional[str] = None) -> List[models.Goal]:
        if status is not None:
            self._validate_status(status)
        return self.goal_repo.list_for_user(user_id, subject_id=subject_id, status=status)

    def update(self, user_id: int, goal_id: int, changes: dict) -> models.Goal:
        """Apply the provided (non-empty) fields to a goal owned by `user_id`."""
        goal = self.goal_repo.get_for_user(user_id, goal_id)
        if goal is None:
            raise NotFoundError("Goal not found or unauthorized")
        if changes.get("title"):
            goal.title = changes["title"].strip()
        if changes.get("status"):
            self._validate_status(changes["status"])
            goal.status = changes["status"]
        if changes.get("due_date"):
            self._validate_due_date(changes["due_date"])
            goal.due_date = changes["due_date"]
        if changes.get("subject_id"):
            self._validate_subject(user_id, changes["subject_id"])
            goal.subject_id = changes["subject_id"]
        return self.goal_repo.save(goal)

    def delete(self, user_id: int, goal_id: int) -> None:
        goal = self.goal_repo.get_for_user(user_id, goal_id)
        if goal is None:
            raise NotFoundError("Goal not found or unauthorized")
        self.goal_repo.delete(goal)

    def _validate_subject(self, user_id: int, subject_id: Optional[int]):
        if subject_id and self.subject_repo.get_for_user(user_id, subject_id) is None:
            raise ValidationError(f"subject not found: {subject_id}")

    def _validate_status(self, status: str):
        if status not in models.GOAL_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(models.GOAL_STATUSES)}")

    def _validate_due_date(self, due_date: Optional[str]):
        if due_date is not None and not dates.is_valid_day(due_date):
            raise ValidationError(f"due_date must be YYYY-MM-DD: {due_date!r}")
