"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    store_timeout_seconds: float
    admin_token: str | None
    timezone: str
    first_hour: int
    last_hour: int
    rooms: tuple[str, ...]
    slot_duration_minutes: int
    self_cancellation_notice_hours: int
    notification_backend: str
    resend_api_key: str | None
    notification_sender: str
    public_app_url: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants with replace()."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Classbook Slot Booking"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(os.getenv("DATABASE_PATH", "config/classbook.db")),
        store_timeout_seconds=_env_float("STORE_TIMEOUT_SECONDS", 5.0),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        timezone=os.getenv("APP_TIMEZONE", "Europe/Rome"),
        first_hour=_env_int("SCHEDULE_FIRST_HOUR", 7),
        last_hour=_env_int("SCHEDULE_LAST_HOUR", 22),
        rooms=_env_tuple("SCHEDULE_ROOMS", ("Aula 1 Grande", "Aula 2 Piccola")),
        slot_duration_minutes=_env_int("SLOT_DURATION_MINUTES", 60),
        self_cancellation_notice_hours=_env_int("SELF_CANCELLATION_NOTICE_HOURS", 24),
        notification_backend=os.getenv("NOTIFICATION_BACKEND", "log").lower(),
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        notification_sender=os.getenv(
            "NOTIFICATION_SENDER",
            "Classbook Booking <booking@classbook.local>",
        ),
        public_app_url=os.getenv("PUBLIC_APP_URL", "http://127.0.0.1:8000"),
    )
