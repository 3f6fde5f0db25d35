from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

_DEFAULT_SESSION_MAX_AGE = 14 * 24 * 60 * 60
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/taskdesk.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - SESSION_SECRET_KEY: key used to sign the session cookie (random per process when unset)
    - SESSION_MAX_AGE: session cookie lifetime in seconds (default: 14 days)
    - BCRYPT_ROUNDS: bcrypt cost factor, 4..31 (default: 12)
    - LOG_LEVEL: root log level (default: INFO)
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    session_secret_key: str
    session_max_age: int
    bcrypt_rounds: int
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/taskdesk.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    secret_key = os.getenv("SESSION_SECRET_KEY") or ""
    if not secret_key.strip():
        # Sessions will not survive a restart with a per-process key
        logger.warning("SESSION_SECRET_KEY is not set; using a random per-process key")
        secret_key = secrets.token_urlsafe(32)

    max_age = _parse_int(_get_env("SESSION_MAX_AGE", str(_DEFAULT_SESSION_MAX_AGE)), _DEFAULT_SESSION_MAX_AGE)
    if max_age <= 0:
        max_age = _DEFAULT_SESSION_MAX_AGE

    rounds = _parse_int(_get_env("BCRYPT_ROUNDS", "12"), 12)
    rounds = min(max(rounds, 4), 31)

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        log_level = "INFO"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        session_secret_key=secret_key,
        session_max_age=max_age,
        bcrypt_rounds=rounds,
        log_level=log_level,
    )
