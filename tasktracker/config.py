"""Settings loaded from environment variables (+ optional .env)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ENV_PREFIX = "TASKTRACKER"
DEFAULT_JWT_SECRET = "dev-secret-change-me"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    environment: str
    log_level: str

    # ---- Storage ----
    database_url: str

    # ---- Tokens ----
    jwt_secret: str
    jwt_algorithm: str
    token_expire_days: int

    # ---- HTTP ----
    cors_origins: List[str]

    # ---- Client ----
    api_url: str
    token_file: Path

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_env(_k("APP_NAME"), "Task Tracker API"),
            environment=_env(_k("ENV"), "production").strip().lower(),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            database_url=_env(_k("DATABASE_URL"), "sqlite:///./tasktracker.sqlite3"),
            jwt_secret=_env(_k("JWT_SECRET"), DEFAULT_JWT_SECRET),
            jwt_algorithm=_env(_k("JWT_ALGORITHM"), "HS256"),
            token_expire_days=_env_int(_k("TOKEN_EXPIRE_DAYS"), 7),
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
            api_url=_env(_k("API_URL"), "http://localhost:8000").rstrip("/"),
            token_file=_env_path(_k("TOKEN_FILE"), Path(".local/tasktracker/token.json")),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
