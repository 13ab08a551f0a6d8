"""Consecutive-day streak tracking.

Each user has one `Streak` row. It only moves when the ledger reports
activity for a day:

- no row yet: start at 1
- same day as `last_active_day`: nothing changes
- the day after `last_active_day`: extend by one
- anything else (a gap, or a `last_active_day` in the future): back to 1

`max_streak` is carried forward as `max(max_streak, current_streak)`.
Updates are serialized per user inside the process and written with a
compare-and-swap so concurrent workers cannot lose an increment.
"""

from __future__ import annotations

import logging
import threading
from typing import NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import dates, repositories
from .config import settings
from .errors import StorageError

logger = logging.getLogger("studytrack.streaks")


class StreakState(NamedTuple):
    current_streak: int
    max_streak: int
    last_active_day: Optional[str]


class StripedLocks:
    """A fixed pool of locks; a key always maps to the same stripe.

    Distinct keys may share a stripe, which only costs some contention.
    """

    def __init__(self, stripes: int = 64):
        self._locks = tuple(threading.Lock() for _ in range(stripes))

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, key) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]


_user_locks = StripedLocks()


def next_state(state: Optional[StreakState], day: str) -> StreakState:
    """Return the streak after activity on `day`."""
    if state is None:
        return StreakState(1, 1, day)
    if state.last_active_day == day:
        return state
    if state.last_active_day is not None and dates.shift_day(state.last_active_day, 1) == day:
        current = state.current_streak + 1
    else:
        current = 1
    return StreakState(current, max(state.max_streak, current), day)


class StreakEngine:
    """Apply ledger activity to the per-user streak record."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.StreakRepository(session)

    def notify_activity(self, user_id: int, day: str) -> StreakState:
        """Record activity for `day` and return the resulting state.

        Replaying the same day is a no-op. Raises `StorageError` if the
        store fails or the swap keeps losing to concurrent writers.
        """
        with _user_locks.get(user_id):
            try:
                return self._apply(user_id, day)
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.exception("streak update failed user_id=%s day=%s", user_id, day)
                raise StorageError("failed to update streak") from exc

    def _apply(self, user_id: int, day: str) -> StreakState:
        for attempt in range(settings.STREAK_MAX_RETRIES):
            row = self.repo.get(user_id)
            if row is None:
                state = next_state(None, day)
                if self.repo.create_if_absent(user_id, state.current_streak, state.max_streak, day):
                    logger.info("streak started user_id=%s day=%s", user_id, day)
                    return state
                continue
            observed = StreakState(row.current_streak, row.max_streak, row.last_active_day)
            state = next_state(observed, day)
            if state == observed:
                return state
            if self.repo.compare_and_swap(
                user_id,
                observed.last_active_day,
                observed.current_streak,
                state.current_streak,
                state.max_streak,
                day,
            ):
                logger.debug("streak user_id=%s %s -> %s", user_id, observed, state)
                return state
            logger.info("streak swap lost user_id=%s attempt=%d", user_id, attempt + 1)
        raise StorageError(f"streak update for user {user_id} did not settle after {settings.STREAK_MAX_RETRIES} attempts")

    def get_streak(self, user_id: int) -> dict:
        """Return `{current_streak, max_streak}`; zeros for a user with no record."""
        row = self.repo.get(user_id)
        if row is None:
            return {"current_streak": 0, "max_streak": 0}
        return {"current_streak": row.current_streak, "max_streak": row.max_streak}
