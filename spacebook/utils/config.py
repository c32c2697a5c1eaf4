"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    database_path: Path
    log_level: str
    admin_token: str
    max_booking_hours: int
    allow_past_bookings: bool
    seed_default_spaces: bool
    session_ttl_minutes: int = 480
    max_admin_sessions: int = 20
    time_format_regex: str = r"^([01]\d|2[0-3]):[0-5]\d$"
    end_time_format_regex: str = r"^(([01]\d|2[0-3]):[0-5]\d|24:00)$"
    default_spaces: tuple[tuple[str, str, int], ...] = (
        ("Office 1", "office", 1),
        ("Office 2", "office", 2),
        ("Desk 1", "desk", 1),
        ("Desk 2", "desk", 2),
        ("Conference Room 1", "conference", 1),
        ("Conference Room 2", "conference", 2),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests override via dataclasses.replace."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Spacebook Reservations"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        database_path=Path(os.getenv("DATABASE_PATH", "data/spacebook.db")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        admin_token=os.getenv("ADMIN_TOKEN", ""),
        max_booking_hours=int(os.getenv("MAX_BOOKING_HOURS", "12")),
        allow_past_bookings=_env_bool("ALLOW_PAST_BOOKINGS", False),
        seed_default_spaces=_env_bool("SEED_DEFAULT_SPACES", True),
        session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", "480")),
        max_admin_sessions=int(os.getenv("MAX_ADMIN_SESSIONS", "20")),
    )
