import threading

from sqlmodel import Session

from studytrack import models, repositories
from studytrack.database import build_engine, create_db_and_tables
from studytrack.ledger import SessionLedger
from studytrack.streaks import StreakEngine

DAY = "2024-01-01"


def _file_engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    create_db_and_tables(eng)
    return eng


def _run_threads(count, target):
    errors = []

    def _wrapped(i):
        try:
            target(i)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_wrapped, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return errors


def test_concurrent_same_day_logs_lose_no_update(tmp_path):
    eng = _file_engine(tmp_path)
    with Session(eng) as s:
        user = repositories.UserRepository(s).create(models.User(username="alice", password_hash="x"))
        subject_ids = [
            repositories.SubjectRepository(s).save(models.Subject(user_id=user.id, name=f"S{i}", tracking_mode="time")).id
            for i in range(4)
        ]
        user_id = user.id

    def _log(i):
        with Session(eng) as s:
            SessionLedger(s).log_session(user_id, subject_ids[i % 4], DAY, 1)

    errors = _run_threads(40, _log)
    assert errors == []

    with Session(eng) as s:
        rows = SessionLedger(s).query_by_day(user_id, DAY)
        assert len(rows) == 4
        assert sum(r.duration_minutes for r in rows) == 40
        assert all(r.duration_minutes == 10 for r in rows)
        assert StreakEngine(s).get_streak(user_id) == {"current_streak": 1, "max_streak": 1}
    eng.dispose()


def test_concurrent_notifications_extend_streak_once(tmp_path):
    eng = _file_engine(tmp_path)
    with Session(eng) as s:
        user_id = repositories.UserRepository(s).create(models.User(username="bob", password_hash="x")).id
        StreakEngine(s).notify_activity(user_id, DAY)

    def _notify(i):
        with Session(eng) as s:
            StreakEngine(s).notify_activity(user_id, "2024-01-02")

    errors = _run_threads(20, _notify)
    assert errors == []
    with Session(eng) as s:
        assert StreakEngine(s).get_streak(user_id) == {"current_streak": 2, "max_streak": 2}
    eng.dispose()
