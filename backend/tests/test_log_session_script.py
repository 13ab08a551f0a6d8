import importlib.util
from pathlib import Path

from studytrack import repositories

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "log_session.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("log_session_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_logs_and_reports_streak(engine, session, user, make_subject, capsys):
    make_subject(user.id, "Maths")
    script = _load_script()
    assert script.main("alice", "Maths", minutes=25, day="2024-05-01", bind=engine) == 0
    assert script.main("alice", "Maths", minutes=5, day="2024-05-01", bind=engine) == 0
    out = capsys.readouterr().out
    assert "Created 2024-05-01 Maths: 25 min, 0 questions" in out
    assert "Updated 2024-05-01 Maths: 30 min, 0 questions" in out
    assert "Streak: 1 (best 1)" in out
    assert repositories.StreakRepository(session).get(user.id).last_active_day == "2024-05-01"


def test_unknown_user_or_subject_and_rejected_input(engine, user, make_subject, capsys):
    make_subject(user.id, "Maths")
    script = _load_script()
    assert script.main("nobody", "Maths", minutes=5, bind=engine) == 1
    assert script.main("alice", "Art", minutes=5, bind=engine) == 1
    assert script.main("alice", "Maths", bind=engine) == 1
    out = capsys.readouterr().out
    assert "User not found: nobody" in out
    assert "Subject not found for alice: Art" in out
    assert "Rejected:" in out
