# src/task_calendar/tasks/history.py

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from .task_models import Task


@dataclass(frozen=True, slots=True)
class CreateTask:
    task: Task


@dataclass(frozen=True, slots=True)
class DeleteTask:
    task: Task


@dataclass(frozen=True, slots=True)
class EditTask:
    before: Task
    after: Task


Operation = CreateTask | DeleteTask | EditTask


class UndoStack:
    """
    Bounded undo/redo history.

    Pushing a new operation clears the redo side; the oldest entries fall off
    once max_size is exceeded.
    """

    def __init__(self, max_size: int = 50) -> None:
        self._undo: deque[Operation] = deque(maxlen=max(1, int(max_size)))
        self._redo: list[Operation] = []

    def push(self, op: Operation) -> None:
        self._undo.append(op)
        self._redo.clear()

    def undo(self) -> Operation | None:
        if not self._undo:
            return None
        op = self._undo.pop()
        self._redo.append(op)
        return op

    def redo(self) -> Operation | None:
        if not self._redo:
            return None
        op = self._redo.pop()
        self._undo.append(op)
        return op

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
