# tests/conftest.py

from __future__ import annotations

from datetime import UTC
from pathlib import Path
from types import SimpleNamespace

import pytest

from task_calendar.core.service import CalendarService
from task_calendar.tasks.calendar_data import CalendarData
from task_calendar.tasks.history import UndoStack
from task_calendar.tasks.task_store import TaskStore

from .fakes import InMemoryDocumentBackend


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "calendar.sqlite3",
        log_dir=tmp_path,
        # Behaviour
        timezone="UTC",
        goal_debounce_seconds=0.01,
        undo_limit=50,
        import_date_format="%Y-%m-%d %H:%M:%S",
        import_timezone="UTC",
    )


@pytest.fixture()
def backend() -> InMemoryDocumentBackend:
    return InMemoryDocumentBackend()


@pytest.fixture()
def store(backend: InMemoryDocumentBackend) -> TaskStore:
    return TaskStore(backend)


@pytest.fixture()
def data(store: TaskStore) -> CalendarData:
    """
    Collections over the in-memory backend, expressed in UTC.

    Debounce is short so goal saves can be awaited with flush() or a small sleep.
    """
    return CalendarData(store, tz=UTC, goal_debounce_seconds=0.01)


@pytest.fixture()
def service(data: CalendarData) -> CalendarService:
    return CalendarService(data, history=UndoStack(50), tz=UTC, import_tz=UTC)
