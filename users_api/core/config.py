"""
Configuration helpers for the users API.

Settings are read from environment variables once and cached so that routers,
repositories and the app factory do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

DEFAULT_USERS_FILE = Path(__file__).resolve().parents[2] / "users.json"
LOAD_FAILURE_POLICIES = ("fail", "empty")


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    users_file: Path
    log_level: str
    load_failure_policy: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _choice(value: str | None, choices: tuple[str, ...], default: str) -> str:
        normalized = (value or "").strip().lower()
        return normalized if normalized in choices else default

    users_file = (os.getenv("USERS_FILE") or "").strip()
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        users_file=Path(users_file) if users_file else DEFAULT_USERS_FILE,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        load_failure_policy=_choice(os.getenv("USERS_LOAD_FAILURE"), LOAD_FAILURE_POLICIES, "fail"),
    )
