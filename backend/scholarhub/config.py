"""Application settings and validation."""

import os


class Settings:
    ENV: str
    DATABASE_URL: str
    SESSION_COOKIE_NAME: str
    SESSION_TTL_SECONDS: int
    SESSION_MAX_ENTRIES: int
    COOKIE_SECURE: bool
    ALLOW_INSECURE_COOKIES: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", "")
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sid")
        self.SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 3600)))  # 24 h
        self.SESSION_MAX_ENTRIES = int(os.getenv("SESSION_MAX_ENTRIES", "10000"))
        self.COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"
        self.ALLOW_INSECURE_COOKIES = os.getenv("ALLOW_INSECURE_COOKIES", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.COOKIE_SECURE and not self.ALLOW_INSECURE_COOKIES:
            raise RuntimeError("COOKIE_SECURE must be enabled in non-dev environments")
        if self.SESSION_TTL_SECONDS <= 0:
            raise RuntimeError("SESSION_TTL_SECONDS must be positive")


settings = Settings()
