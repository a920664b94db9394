"""Runtime configuration for the loan tracker.

Settings are read from environment variables once by :func:`load_settings`.
The numeric core never reads them itself: the CLI and the web app pass the
relevant values in as arguments.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import InvalidParameters

DEFAULT_INCOME_GROWTH = 0.02
DEFAULT_HORIZON_YEARS = 30
DEFAULT_DATABASE_URL = "sqlite:///loan_tracker.sqlite3"


@dataclass(frozen=True)
class Settings:
    income_growth: float = DEFAULT_INCOME_GROWTH
    horizon_years: int = DEFAULT_HORIZON_YEARS
    log_level: str = "WARNING"
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = "dev-secret-key"


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidParameters(f"{name} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidParameters(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise InvalidParameters(f"{name} must be at least 1, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    return Settings(
        income_growth=_env_float(env, "LOAN_TRACKER_INCOME_GROWTH", DEFAULT_INCOME_GROWTH),
        horizon_years=_env_int(env, "LOAN_TRACKER_HORIZON_YEARS", DEFAULT_HORIZON_YEARS),
        log_level=env.get("LOAN_TRACKER_LOG_LEVEL", "WARNING").upper(),
        database_url=env.get("LOAN_TRACKER_DATABASE_URL") or DEFAULT_DATABASE_URL,
        secret_key=env.get("FLASK_SECRET_KEY", "dev-secret-key"),
    )
