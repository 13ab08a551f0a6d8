"""Weekly study insights.

The ledger is summarised into one sentence per session for the current
and the previous Monday-Sunday week. Those summaries are handed to an
insight generator (any callable; typically a thin wrapper around a text
generation API) which returns feedback, motivation, risks and a
comparison. At most one insight is stored per user and week.
"""

import json
import logging
from typing import Callable, Optional, Tuple, Union

from sqlmodel import Session

from . import dates, models, repositories
from .errors import ConflictError, UpstreamError
from .ledger import SessionLedger

logger = logging.getLogger("studytrack.insights")

InsightGenerator = Callable[[str, str], Union[dict, str]]

EMPTY_CURRENT = "No study sessions were recorded this week."
EMPTY_PREVIOUS = "No study sessions were recorded last week."
REQUIRED_KEYS = ("feedback", "motivation", "risks", "comparison")

FALLBACK = {
    "feedback_text": "No study logs yet this week. Start with one short, focused 25-minute session; getting started is the hardest part!",
    "motivational_text": "Every streak starts at 1. Pick one subject and do 25 minutes. You've got this.",
    "risk_areas": "Inconsistency • No defined study slot • Over-planning without action",
    "comparison_with_last_week": "No recorded activity to compare. Treat this as a fresh start.",
}


def parse_insight_payload(raw: str) -> dict:
    """Decode a generator reply, tolerating a ```json fenced block."""
    cleaned = raw.replace("```json", "").replace("```", "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise UpstreamError("could not parse insight generator response") from exc
    if not isinstance(data, dict):
        raise UpstreamError("insight generator response must be a JSON object")
    return data


def _as_text(value) -> str:
    if isinstance(value, list):
        return "\n• ".join(str(v) for v in value)
    return str(value)


def _to_dict(insight: models.WeeklyInsight) -> dict:
    return {
        "week_start": insight.week_start,
        "week_end": insight.week_end,
        "feedback_text": insight.feedback_text,
        "motivational_text": insight.motivational_text,
        "risk_areas": insight.risk_areas,
        "comparison_with_last_week": insight.comparison_with_last_week,
    }


class InsightService:
    def __init__(self, session: Session, ledger: Optional[SessionLedger] = None):
        self.session = session
        self.ledger = ledger or SessionLedger(session)
        self.repo = repositories.InsightRepository(session)
        self.subject_repo = repositories.SubjectRepository(session)

    def week_summary(self, user_id: int, week_start: str, week_end: str, empty_text: str = EMPTY_CURRENT) -> str:
        """One sentence per stored session in the week, or `empty_text`."""
        names = {s.id: s.name for s in self.subject_repo.list_for_user(user_id)}
        sentences = [
            f"On {r.day}, studied {names.get(r.subject_id, 'Unknown Subject')} for {r.duration_minutes or 0} minutes."
            for r in self.ledger.query_range(user_id, week_start, week_end)
        ]
        return " ".join(sentences) if sentences else empty_text

    def generate(self, user_id: int, generator: InsightGenerator, today: Optional[str] = None) -> dict:
        """Generate and store this week's insight.

        Raises `ConflictError` if one was already generated this week and
        `UpstreamError` if the generator fails or omits a field.
        """
        week_start, week_end = dates.iso_week_range(today or dates.today())
        if self.repo.get_for_week(user_id, week_start) is not None:
            raise ConflictError("Insights already generated for this week")

        current = self.week_summary(user_id, week_start, week_end)
        previous = self.week_summary(
            user_id, dates.shift_day(week_start, -7), dates.shift_day(week_end, -7), empty_text=EMPTY_PREVIOUS
        )
        try:
            reply = generator(current, previous)
        except UpstreamError:
            raise
        except Exception as exc:
            logger.exception("insight generator failed user_id=%s week_start=%s", user_id, week_start)
            raise UpstreamError("Failed to generate insights") from exc
        data = parse_insight_payload(reply) if isinstance(reply, str) else reply
        missing = [k for k in REQUIRED_KEYS if not data.get(k)]
        if missing:
            raise UpstreamError(f"insight generator response missing: {', '.join(missing)}")

        insight = self.repo.create(models.WeeklyInsight(
            user_id=user_id,
            week_start=week_start,
            week_end=week_end,
            feedback_text=_as_text(data["feedback"]),
            motivational_text=_as_text(data["motivation"]),
            risk_areas=_as_text(data["risks"]),
            comparison_with_last_week=_as_text(data["comparison"]),
        ))
        logger.info("insight stored user_id=%s week_start=%s", user_id, week_start)
        return _to_dict(insight)

    def get_weekly(self, user_id: int, today: Optional[str] = None) -> Tuple[dict, bool]:
        """This week's insight and whether the fixed fallback was used."""
        week_start, week_end = dates.iso_week_range(today or dates.today())
        insight = self.repo.get_for_week(user_id, week_start)
        if insight is None:
            return {"week_start": week_start, "week_end": week_end, **FALLBACK}, True
        return _to_dict(insight), False
