"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
subjects, study sessions, streaks, insights). Repositories return
SQLModel objects and perform commits where appropriate.

Session and streak writes that must survive concurrent requests are
issued as single SQL statements (conditional insert, increment-in-place
update, compare-and-swap update) instead of read-modify-write in Python.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from sqlalchemy import update
from sqlmodel import Session, select
from . import models


def _insert_stmt(session: Session, table):
    """Dialect specific INSERT supporting ON CONFLICT."""
    if session.get_bind().dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert(table)


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


class SubjectRepository:
    """CRUD operations for `Subject` rows, always scoped to one user."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, subject: models.Subject) -> models.Subject:
        self.session.add(subject)
        self.session.commit()
        self.session.refresh(subject)
        return subject

    def get_for_user(self, user_id: int, subject_id: int) -> Optional[models.Subject]:
        """Return the subject if it exists and belongs to `user_id`."""
        subject = self.session.get(models.Subject, subject_id)
        if subject is None or subject.user_id != user_id:
            return None
        return subject

    def get_by_name(self, user_id: int, name: str) -> Optional[models.Subject]:
        stmt = select(models.Subject).where(models.Subject.user_id == user_id, models.Subject.name == name)
        return self.session.exec(stmt).first()

    def list_for_user(self, user_id: int) -> List[models.Subject]:
        """Newest first, matching the dashboard ordering."""
        stmt = (
            select(models.Subject)
            .where(models.Subject.user_id == user_id)
            .order_by(models.Subject.created_at.desc(), models.Subject.id.desc())
        )
        return self.session.exec(stmt).all()

    def delete(self, subject: models.Subject) -> None:
        self.session.delete(subject)
        self.session.commit()


class SessionRepository:
    """Per-day `StudySession` storage with an atomic accumulate-or-insert."""
    def __init__(self, session: Session):
        self.session = session

    def upsert_day(
        self,
        user_id: int,
        subject_id: int,
        day: str,
        accumulate: dict,
        overwrite: dict,
    ) -> Tuple[models.StudySession, bool]:
        """Insert the day's row or merge into the existing one.

        `accumulate` maps column name to a delta added in SQL;
        `overwrite` maps column name to a value that replaces the stored
        one. Returns the stored row and whether it was newly created.
        """
        table = models.StudySession.__table__
        now = datetime.now(timezone.utc)
        conn = self.session.connection()
        values = {
            "user_id": user_id,
            "subject_id": subject_id,
            "day": day,
            "duration_minutes": 0,
            "questions_solved": 0,
            "created_at": now,
            "updated_at": now,
        }
        values.update(accumulate)
        values.update(overwrite)
        stmt = _insert_stmt(self.session, table).values(**values).on_conflict_do_nothing(
            index_elements=["user_id", "subject_id", "day"]
        )
        created = conn.execute(stmt).rowcount == 1
        if not created:
            changes = {name: table.c[name] + delta for name, delta in accumulate.items()}
            changes.update(overwrite)
            changes["updated_at"] = now
            conn.execute(
                update(table)
                .where(table.c.user_id == user_id, table.c.subject_id == subject_id, table.c.day == day)
                .values(**changes)
            )
        self.session.commit()
        return self.get_day(user_id, subject_id, day), created

    def get_day(self, user_id: int, subject_id: int, day: str) -> Optional[models.StudySession]:
        stmt = select(models.StudySession).where(
            models.StudySession.user_id == user_id,
            models.StudySession.subject_id == subject_id,
            models.StudySession.day == day,
        ).execution_options(populate_existing=True)
        return self.session.exec(stmt).first()

    def list_range(
        self,
        user_id: int,
        from_day: Optional[str] = None,
        to_day: Optional[str] = None,
        subject_id: Optional[int] = None,
    ) -> List[models.StudySession]:
        """Rows for `user_id` with `from_day <= day <= to_day`, either bound optional.

        Day strings are zero padded so lexical order is calendar order.
        """
        stmt = select(models.StudySession).where(models.StudySession.user_id == user_id)
        if from_day is not None:
            stmt = stmt.where(models.StudySession.day >= from_day)
        if to_day is not None:
            stmt = stmt.where(models.StudySession.day <= to_day)
        if subject_id is not None:
            stmt = stmt.where(models.StudySession.subject_id == subject_id)
        stmt = stmt.order_by(models.StudySession.day, models.StudySession.subject_id)
        return self.session.exec(stmt).all()

    def delete_for_subject(self, subject_id: int) -> None:
        for row in self.session.exec(select(models.StudySession).where(models.StudySession.subject_id == subject_id)).all():
            self.session.delete(row)


class StreakRepository:
    """Access to the one-per-user `Streak` row via compare-and-swap writes."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[models.Streak]:
        stmt = select(models.Streak).where(models.Streak.user_id == user_id).execution_options(populate_existing=True)
        return self.session.exec(stmt).first()

    def create_if_absent(self, user_id: int, current: int, maximum: int, day: str) -> bool:
        """Insert the user's first streak row; False if one already exists."""
        table = models.Streak.__table__
        stmt = _insert_stmt(self.session, table).values(
            user_id=user_id,
            current_streak=current,
            max_streak=maximum,
            last_active_day=day,
            updated_at=datetime.now(timezone.utc),
        ).on_conflict_do_nothing(index_elements=["user_id"])
        created = self.session.connection().execute(stmt).rowcount == 1
        self.session.commit()
        return created

    def compare_and_swap(
        self,
        user_id: int,
        expected_day: Optional[str],
        expected_current: int,
        current: int,
        maximum: int,
        day: str,
    ) -> bool:
        """Write the new state only if the row still holds the observed state."""
        table = models.Streak.__table__
        day_matches = table.c.last_active_day.is_(None) if expected_day is None else table.c.last_active_day == expected_day
        stmt = (
            update(table)
            .where(table.c.user_id == user_id, day_matches, table.c.current_streak == expected_current)
            .values(
                current_streak=current,
                max_streak=maximum,
                last_active_day=day,
                updated_at=datetime.now(timezone.utc),
            )
        )
        swapped = self.session.connection().execute(stmt).rowcount == 1
        self.session.commit()
        return swapped


class InsightRepository:
    """Stored weekly insights, unique per user and week."""
    def __init__(self, session: Session):
        self.session = session

    def get_for_week(self, user_id: int, week_start: str) -> Optional[models.WeeklyInsight]:
        stmt = select(models.WeeklyInsight).where(
            models.WeeklyInsight.user_id == user_id,
            models.WeeklyInsight.week_start == week_start,
        )
        return self.session.exec(stmt).first()

    def create(self, insight: models.WeeklyInsight) -> models.WeeklyInsight:
        self.session.add(insight)
        self.session.commit()
        self.session.refresh(insight)
        return insight


class GoalRepository:
    """Repository for per-user study goals."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, goal: models.Goal) -> models.Goal:
        goal.updated_at = datetime.now(timezone.utc)
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def get_for_user(self, user_id: int, goal_id: int) -> Optional[models.Goal]:
        """Return the goal if it exists and belongs to `user_id`."""
        goal = self.session.get(models.Goal, goal_id)
        if goal is None or goal.user_id != user_id:
            return None
        return goal

    def list_for_user(self, user_id: int, subject_id: Optional[int] = None, status: Optional[str] = None) -> List[models.Goal]:
        """Goals for `user_id`, optionally filtered, ordered by due date (undated first)."""
        stmt = select(models.Goal).where(models.Goal.user_id == user_id)
        if subject_id is not None:
            stmt = stmt.where(models.Goal.subject_id == subject_id)
        if status is not None:
            stmt = stmt.where(models.Goal.status == status)
        stmt = stmt.order_by(models.Goal.due_date.is_not(None), models.Goal.due_date, models.Goal.id)
        return self.session.exec(stmt).all()

    def detach_subject(self, subject_id: int) -> None:
        """Keep goals of a deleted subject, without the subject link."""
        for goal in self.session.exec(select(models.Goal).where(models.Goal.subject_id == subject_id)).all():
            goal.subject_id = None
            self.session.add(goal)

    def delete(self, goal: models.Goal) -> None:
        self.session.delete(goal)
        self.session.commit()
