# src/task_calendar/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.calendar_data import CalendarData
from ..tasks.task_store import TaskStore
from .ports import DocumentBackend
from .service import CalendarService


@dataclass
class AppState:
    # Settings are kept on the state so entry points read one object.
    settings: object

    backend: DocumentBackend
    store: TaskStore
    data: CalendarData
    service: CalendarService
