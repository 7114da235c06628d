"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "GoalTracker"
    DB_FILENAME = "goaltracker.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}
    DEV_SUBJECT = "local|dev-user"
    DEBUG = False
    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("GOALTRACKER_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("GOALTRACKER_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("GOALTRACKER_DATABASE_URL", self._build_sqlite_url())
        self.API_PREFIX = os.getenv("GOALTRACKER_API_PREFIX", "/api").rstrip("/")
        self.AUTH_SUBJECT_HEADER = os.getenv("GOALTRACKER_AUTH_SUBJECT_HEADER", "X-Auth-Subject")
        self.LOG_TO_FILE = _env_bool("GOALTRACKER_LOG_TO_FILE", default=True)
        # Identity provider settings are surfaced for clients; tokens are validated upstream.
        self.AUTH0_DOMAIN = os.getenv("AUTH0_DOMAIN", "")
        self.AUTH0_AUDIENCE = os.getenv("AUTH0_AUDIENCE", "")
        self.AUTH0_CLIENT_ID = os.getenv("AUTH0_CLIENT_ID", "")
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("GOALTRACKER_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("GOALTRACKER_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.is_sqlite:
            return {"pool_pre_ping": True}
        return {"connect_args": {"check_same_thread": False}}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration used by the test-suite: throwaway database, no log files."""

    __test__ = False
    DEBUG = False
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DEV_MODE = True
        self.LOG_TO_FILE = False
        self.DATABASE_URL = os.getenv("GOALTRACKER_TEST_DATABASE_URL", "sqlite://")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        options = super().sqlalchemy_engine_options()
        if self.DATABASE_URL == "sqlite://":
            # A single shared connection keeps the in-memory schema alive across sessions.
            from sqlalchemy.pool import StaticPool

            options["poolclass"] = StaticPool
        return options
