import pytest

from studytrack.config import Settings


def test_defaults(monkeypatch):
    for name in ("ENV", "JWT_SECRET", "STUDY_TIMEZONE", "STREAK_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.ENV == "dev"
    assert s.STUDY_TIMEZONE == "UTC"
    assert s.STREAK_MAX_RETRIES == 5


def test_default_secret_refused_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.delenv("ALLOW_INSECURE_JWT", raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv("JWT_SECRET", "a-real-secret-that-is-long-enough-for-hs256")
    assert Settings().ENV == "prod"


def test_unknown_timezone_is_refused(monkeypatch):
    monkeypatch.setenv("STUDY_TIMEZONE", "Mars/Olympus_Mons")
    with pytest.raises(RuntimeError):
        Settings()
