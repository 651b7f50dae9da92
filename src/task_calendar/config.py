# src/task_calendar/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is required at import time; every value has a default.
- Paths live under a local (gitignored) data directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "TASKCAL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Values already present in the environment win over .env.
load_dotenv(override=False)


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


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def resolve_timezone(name: str | None) -> tzinfo:
    """
    Turn a zone name into a tzinfo.

    Empty name means "system local". Unknown names fall back to local as well,
    so a typo in .env never prevents startup.
    """
    if name and name.strip():
        try:
            return ZoneInfo(name.strip())
        except (ZoneInfoNotFoundError, ValueError):
            pass
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else ZoneInfo("UTC")


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    log_dir: Path

    # ---- Calendar ----
    timezone: str
    goal_debounce_seconds: float
    undo_limit: int

    # ---- Import ----
    import_date_format: str
    import_timezone: str

    @property
    def tz(self) -> tzinfo:
        return resolve_timezone(self.timezone)

    @property
    def import_tz(self) -> tzinfo:
        return resolve_timezone(self.import_timezone)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "task-calendar")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_calendar"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "calendar.sqlite3")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)

        timezone = _env(_k("TIMEZONE"), "")
        goal_debounce_seconds = max(0.0, _env_float(_k("GOAL_DEBOUNCE_SECONDS"), 0.5))
        undo_limit = max(1, _env_int(_k("UNDO_LIMIT"), 50))

        import_date_format = _env(_k("IMPORT_DATE_FORMAT"), "%Y-%m-%d %H:%M:%S")
        import_timezone = _env(_k("IMPORT_TIMEZONE"), "UTC")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            log_dir=log_dir,
            timezone=timezone,
            goal_debounce_seconds=goal_debounce_seconds,
            undo_limit=undo_limit,
            import_date_format=import_date_format,
            import_timezone=import_timezone,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
