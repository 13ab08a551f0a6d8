import pytest

from studytrack import dates, services
from studytrack.errors import ValidationError
from studytrack.ledger import SessionLedger
from studytrack.progress import HEATMAP_DAYS, ProgressAggregator

TODAY = "2024-03-31"


def test_daily_progress_has_a_row_for_every_subject(session, user, make_subject):
    maths = make_subject(user.id, "Maths", "time", minutes=60)
    make_subject(user.id, "Physics", "questions", questions=20)
    SessionLedger(session).log_session(user.id, maths.id, TODAY, 25)
    SessionLedger(session).log_session(user.id, maths.id, "2024-03-30", 40)

    rows = {r["subject_name"]: r for r in ProgressAggregator(session).daily_progress(user.id, TODAY)}
    assert set(rows) == {"Maths", "Physics"}
    assert rows["Maths"]["completed_minutes"] == 25
    assert rows["Maths"]["target_minutes"] == 60
    assert rows["Maths"]["target_questions"] is None
    assert rows["Physics"]["completed_minutes"] == 0
    assert rows["Physics"]["completed_questions"] == 0
    assert rows["Physics"]["target_questions"] == 20


def test_daily_progress_hides_target_the_mode_ignores(session, user):
    svc = services.SubjectService(session)
    subject = svc.create(user.id, "Chemistry", "both", target_per_day_minutes=45, target_per_day_questions=10)
    svc.update(user.id, subject.id, {"tracking_mode": "questions", "target_per_day_questions": 20})

    [row] = ProgressAggregator(session).daily_progress(user.id, TODAY)
    assert row["tracking_mode"] == "questions"
    assert row["target_minutes"] is None
    assert row["target_questions"] == 20


def test_daily_progress_for_user_without_subjects(session, user):
    assert ProgressAggregator(session).daily_progress(user.id, TODAY) == []


def test_weekly_progress_groups_by_subject_and_omits_idle(session, user, make_subject):
    maths = make_subject(user.id, "Maths", "both", minutes=30, questions=10)
    history = make_subject(user.id, "History", "time", minutes=None)
    make_subject(user.id, "Idle", "time", minutes=15)
    ledger = SessionLedger(session)
    ledger.log_session(user.id, maths.id, TODAY, 20, 4)
    ledger.log_session(user.id, maths.id, dates.shift_day(TODAY, -3), 10, 6)
    ledger.log_session(user.id, maths.id, dates.shift_day(TODAY, -7), 5)
    ledger.log_session(user.id, maths.id, dates.shift_day(TODAY, -8), 100)
    ledger.log_session(user.id, history.id, dates.shift_day(TODAY, -1), 50)

    rows = {r["subject_name"]: r for r in ProgressAggregator(session).window_progress(user.id, 7, today=TODAY)}
    assert set(rows) == {"Maths", "History"}
    assert rows["Maths"]["completed_minutes"] == 35
    assert rows["Maths"]["completed_questions"] == 10
    assert rows["Maths"]["expected_minutes"] == 210
    assert rows["Maths"]["expected_questions"] == 70
    assert rows["History"]["expected_minutes"] is None
    assert rows["History"]["expected_questions"] is None


def test_monthly_window_reaches_thirty_days_back(session, user, make_subject):
    maths = make_subject(user.id, "Maths", "time", minutes=10)
    ledger = SessionLedger(session)
    ledger.log_session(user.id, maths.id, dates.shift_day(TODAY, -30), 7)
    ledger.log_session(user.id, maths.id, dates.shift_day(TODAY, -31), 100)

    [row] = ProgressAggregator(session).window_progress(user.id, 30, today=TODAY)
    assert row["completed_minutes"] == 7
    assert row["expected_minutes"] == 300


def test_window_progress_rejects_unknown_window(session, user):
    with pytest.raises(ValidationError):
        ProgressAggregator(session).window_progress(user.id, 14, today=TODAY)


def test_heatmap_is_always_365_days(session, user):
    heatmap = ProgressAggregator(session).heatmap(user.id, today=TODAY)
    assert len(heatmap) == HEATMAP_DAYS == 365
    assert heatmap[0]["day"] == "2023-04-02"
    assert heatmap[-1]["day"] == TODAY
    assert all(e["count"] == 0 for e in heatmap)
    days = [e["day"] for e in heatmap]
    assert days == sorted(days)


def test_heatmap_sums_minutes_per_day(session, user, make_subject):
    maths = make_subject(user.id, "Maths")
    physics = make_subject(user.id, "Physics")
    ledger = SessionLedger(session)
    ledger.log_session(user.id, maths.id, TODAY, 20)
    ledger.log_session(user.id, physics.id, TODAY, 15)
    # question-only record counts once
    ledger.log_session(user.id, physics.id, "2024-03-01", 0, 30)
    ledger.log_session(user.id, maths.id, "2023-04-02", 5)
    ledger.log_session(user.id, maths.id, "2023-04-01", 500)

    heatmap = ProgressAggregator(session).heatmap(user.id, today=TODAY)
    counts = {e["day"]: e["count"] for e in heatmap}
    assert len(heatmap) == 365
    assert counts[TODAY] == 35
    assert counts["2024-03-01"] == 1
    assert counts["2023-04-02"] == 5
    assert "2023-04-01" not in counts
    assert sum(counts.values()) == 41


def test_progress_defaults_to_today(session, user, make_subject, freeze_today):
    freeze_today(TODAY)
    maths = make_subject(user.id)
    SessionLedger(session).log_session(user.id, maths.id, TODAY, 12)
    aggregator = ProgressAggregator(session)
    assert aggregator.daily_progress(user.id)[0]["completed_minutes"] == 12
    assert aggregator.window_progress(user.id, 7)[0]["completed_minutes"] == 12
    assert aggregator.heatmap(user.id)[-1] == {"day": TODAY, "count": 12}
