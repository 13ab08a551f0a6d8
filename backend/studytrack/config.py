"""Application settings and validation."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_JWT_SECRET = "change_me_for_prod_study_tracker_jwt"
BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    DATABASE_URL: str
    STUDY_TIMEZONE: str
    STREAK_MAX_RETRIES: int
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        # every calendar-day string in the system is computed in this zone
        self.STUDY_TIMEZONE = os.getenv("STUDY_TIMEZONE", "UTC")
        self.STREAK_MAX_RETRIES = int(os.getenv("STREAK_MAX_RETRIES", "5"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        try:
            ZoneInfo(self.STUDY_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise RuntimeError(f"STUDY_TIMEZONE is not a known timezone: {self.STUDY_TIMEZONE}")
        if self.STREAK_MAX_RETRIES < 1:
            raise RuntimeError("STREAK_MAX_RETRIES must be >= 1")


settings = Settings()
