# src/task_calendar/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the document backend, task store, collections and service into AppState,
- loads the collections before anything reads them.
"""

from __future__ import annotations

import logging

from ..config import get_settings, resolve_timezone
from ..core.ports import DocumentBackend
from ..core.service import CalendarService
from ..core.state import AppState
from ..tasks.backend import SQLiteDocumentBackend
from ..tasks.calendar_data import CalendarData
from ..tasks.history import UndoStack
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, backend: DocumentBackend | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the backend) injectable makes the app easier to test
    and avoids hidden global config reads. If settings is None, falls back to
    get_settings().
    """
    if settings is None:
        settings = get_settings()

    if backend is None:
        _ensure_local_dirs(settings)
        backend = SQLiteDocumentBackend(settings.db_path)

    tz = resolve_timezone(getattr(settings, "timezone", ""))
    import_tz = resolve_timezone(getattr(settings, "import_timezone", "UTC"))

    store = TaskStore(backend)
    data = CalendarData(
        store,
        tz=tz,
        goal_debounce_seconds=float(getattr(settings, "goal_debounce_seconds", 0.5)),
    )
    service = CalendarService(
        data,
        history=UndoStack(int(getattr(settings, "undo_limit", 50))),
        tz=tz,
        import_tz=import_tz,
        import_date_format=str(getattr(settings, "import_date_format", "%Y-%m-%d %H:%M:%S")),
    )
    return AppState(settings=settings, backend=backend, store=store, data=data, service=service)


async def open_state(*, settings=None, backend: DocumentBackend | None = None) -> AppState:
    """Create the state and load every collection from the store."""
    state = create_initial_state(settings=settings, backend=backend)
    await state.data.load()
    return state


async def close_state(state: AppState) -> None:
    """Best-effort shutdown: flush debounced writes, never raise."""
    try:
        await state.data.flush()
    except Exception:
        logger.exception("Failed to flush pending writes.")

    close = getattr(state.backend, "close", None)
    if close is not None:
        try:
            close()
        except Exception:
            logger.debug("Backend close failed.", exc_info=True)
