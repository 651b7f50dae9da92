# src/task_calendar/tasks/exporter.py

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .task_models import Task
from .task_store import DAILY_GOALS_KEY, EVENTS_KEY, WEEKLY_GOALS_KEY


def export_document(
    tasks: Iterable[Task],
    weekly_goals: Mapping[str, str],
    daily_goals: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """The structured export: same shape as the stored documents, in one object."""
    return {
        EVENTS_KEY: [t.to_dict() for t in tasks],
        WEEKLY_GOALS_KEY: dict(weekly_goals),
        DAILY_GOALS_KEY: dict(daily_goals or {}),
    }


def dumps_export(
    tasks: Iterable[Task],
    weekly_goals: Mapping[str, str],
    daily_goals: Mapping[str, str] | None = None,
) -> str:
    return json.dumps(export_document(tasks, weekly_goals, daily_goals), ensure_ascii=False, indent=2)


def write_export(path: str | Path, text: str) -> Path:
    """Write atomically (tmp file + replace)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, "utf-8")
    os.replace(tmp, path)
    return path
