"""Progress reports built from ledger windows.

The daily report is subject driven (every subject appears, zero filled);
the weekly/monthly report is activity driven (only subjects with
sessions in the window appear). The heatmap always covers exactly
`HEATMAP_DAYS` days ending today.
"""

from typing import Dict, List, Optional

from sqlmodel import Session

from . import dates, models, repositories
from .errors import ValidationError
from .ledger import SessionLedger

HEATMAP_DAYS = 365
WINDOWS = {"weekly": 7, "monthly": 30}


def _daily_targets(subject: models.Subject):
    """Per-day targets with the metric the tracking mode ignores nulled out."""
    minutes = subject.target_per_day_minutes if subject.tracking_mode != "questions" else None
    questions = subject.target_per_day_questions if subject.tracking_mode != "time" else None
    return minutes, questions


class ProgressAggregator:
    def __init__(self, session: Session, ledger: Optional[SessionLedger] = None):
        self.session = session
        self.ledger = ledger or SessionLedger(session)
        self.subject_repo = repositories.SubjectRepository(session)

    def daily_progress(self, user_id: int, day: Optional[str] = None) -> List[dict]:
        """One row per subject the user owns for `day` (default today)."""
        day = day or dates.today()
        by_subject = {r.subject_id: r for r in self.ledger.query_by_day(user_id, day)}
        rows = []
        for subject in self.subject_repo.list_for_user(user_id):
            record = by_subject.get(subject.id)
            target_minutes, target_questions = _daily_targets(subject)
            rows.append({
                "subject_id": subject.id,
                "subject_name": subject.name,
                "tracking_mode": subject.tracking_mode,
                "color_code": subject.color_code,
                "completed_minutes": record.duration_minutes if record else 0,
                "completed_questions": record.questions_solved if record else 0,
                "target_minutes": target_minutes,
                "target_questions": target_questions,
            })
        return rows

    def window_progress(self, user_id: int, window_days: int, today: Optional[str] = None) -> List[dict]:
        """Totals per active subject for records with `day >= today - window_days`.

        `expected_*` is the per-day target times `window_days`, or None
        when the subject has no such target.
        """
        if window_days not in WINDOWS.values():
            raise ValidationError(f"window_days must be one of {sorted(WINDOWS.values())}")
        today = today or dates.today()
        start = dates.shift_day(today, -window_days)

        totals: Dict[int, Dict[str, int]] = {}
        for record in self.ledger.query_since(user_id, start):
            bucket = totals.setdefault(record.subject_id, {"minutes": 0, "questions": 0})
            bucket["minutes"] += record.duration_minutes or 0
            bucket["questions"] += record.questions_solved or 0

        rows = []
        for subject_id, total in totals.items():
            subject = self.subject_repo.get_for_user(user_id, subject_id)
            if subject is None:
                continue
            per_day_minutes = subject.target_per_day_minutes
            per_day_questions = subject.target_per_day_questions
            rows.append({
                "subject_id": subject.id,
                "subject_name": subject.name,
                "tracking_mode": subject.tracking_mode,
                "color_code": subject.color_code,
                "completed_minutes": total["minutes"],
                "completed_questions": total["questions"],
                "target_per_day_minutes": per_day_minutes,
                "target_per_day_questions": per_day_questions,
                "expected_minutes": per_day_minutes * window_days if per_day_minutes else None,
                "expected_questions": per_day_questions * window_days if per_day_questions else None,
            })
        return rows

    def heatmap(self, user_id: int, today: Optional[str] = None) -> List[dict]:
        """`HEATMAP_DAYS` chronological `{day, count}` entries ending `today`.

        `count` is the day's total minutes; a record without minutes
        counts as 1 so question-only days still show up.
        """
        today = today or dates.today()
        start = dates.shift_day(today, -(HEATMAP_DAYS - 1))
        counts: Dict[str, int] = {}
        for record in self.ledger.query_range(user_id, start, today):
            counts[record.day] = counts.get(record.day, 0) + (record.duration_minutes or 1)
        return [{"day": day, "count": counts.get(day, 0)} for day in dates.day_series(start, HEATMAP_DAYS)]
