import os

# must be set before `studytrack` is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STUDY_TIMEZONE"] = "UTC"

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from studytrack import dates, models, repositories
from studytrack.database import build_engine, create_db_and_tables, get_session


@pytest.fixture
def engine():
    """A fresh in-memory database per test."""
    eng = build_engine("sqlite://")
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(engine):
    from studytrack.main import app

    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    app.state.insight_generator = None
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.insight_generator = None


@pytest.fixture
def freeze_today(monkeypatch):
    """Pin `dates.now()` to noon UTC of the given day."""
    def _freeze(day: str):
        instant = datetime.strptime(day, "%Y-%m-%d").replace(hour=12, tzinfo=ZoneInfo("UTC"))
        monkeypatch.setattr(dates, "now", lambda: instant)
        return instant
    return _freeze


@pytest.fixture
def make_user(session):
    def _make(username: str = "alice") -> models.User:
        return repositories.UserRepository(session).create(models.User(username=username, password_hash="x"))
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_subject(session):
    def _make(user_id: int, name: str = "Maths", tracking_mode: str = "both", minutes=None, questions=None, color="#123456"):
        return repositories.SubjectRepository(session).save(models.Subject(
            user_id=user_id,
            name=name,
            tracking_mode=tracking_mode,
            target_per_day_minutes=minutes,
            target_per_day_questions=questions,
            color_code=color,
        ))
    return _make


@pytest.fixture
def auth_headers(client):
    """Register + login and return bearer headers for `username`."""
    def _headers(username: str = "alice", password: str = "pass123") -> dict:
        client.post('/auth/register', json={'username': username, 'password': password})
        r = client.post('/auth/login', json={'username': username, 'password': password})
        assert r.status_code == 200
        return {'Authorization': f"Bearer {r.json()['access_token']}"}
    return _headers
