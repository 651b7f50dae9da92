# src/task_calendar/tasks/task_models.py

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any

TaskId = int | str

DEFAULT_DURATION = timedelta(hours=1)

_id_lock = threading.Lock()
_last_id = 0


def next_id() -> int:
    """
    Time-derived id (epoch milliseconds), bumped when two ids land in the same ms.

    Unique within a process; ids restored from storage are never regenerated.
    """
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return candidate


class TaskNotFoundError(KeyError):
    """Raised when a mutation targets an id that is not in the collection."""


@dataclass(frozen=True, slots=True)
class Subtask:
    id: TaskId
    title: str
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "completed": self.completed}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Subtask:
        return cls(
            id=raw["id"],
            title=str(raw.get("title") or ""),
            completed=bool(raw.get("completed", False)),
        )


@dataclass(frozen=True, slots=True)
class Comment:
    id: TaskId
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Comment:
        return cls(id=raw["id"], text=str(raw.get("text") or ""))


@dataclass(frozen=True, slots=True)
class Task:
    """
    A task placed on the calendar.

    Tasks are immutable values; every mutation returns a new Task
    (see tasks/mutations.py). `order` is the position within the task's day.
    """

    id: TaskId
    title: str
    start: datetime
    end: datetime
    completed: bool = False
    urgent: bool = False
    subtasks: tuple[Subtask, ...] = field(default_factory=tuple)
    comments: tuple[Comment, ...] = field(default_factory=tuple)
    order: int = 0

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("title is required")
        if self.end < self.start:
            raise ValueError("end must not be before start")

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def is_on_date(self, d: date) -> bool:
        return self.day == d

    # ---- serialization ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "completed": self.completed,
            "urgent": self.urgent,
            "subtasks": [s.to_dict() for s in self.subtasks],
            "comments": [c.to_dict() for c in self.comments],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], tz: tzinfo | None = None) -> Task:
        """
        Build a Task from its stored/exported form.

        Raises KeyError/ValueError/TypeError on malformed input; callers decide
        whether that is fatal.
        """
        start = parse_instant(raw["start"], tz)
        end_raw = raw.get("end")
        end = parse_instant(end_raw, tz) if end_raw not in (None, "") else start + DEFAULT_DURATION
        return cls(
            id=raw["id"],
            title=str(raw.get("title") or ""),
            start=start,
            end=end,
            completed=bool(raw.get("completed", False)),
            urgent=bool(raw.get("urgent", False)),
            subtasks=tuple(Subtask.from_dict(s) for s in raw.get("subtasks") or []),
            comments=tuple(Comment.from_dict(c) for c in raw.get("comments") or []),
            order=int(raw.get("order") or 0),
        )


def parse_instant(value: Any, tz: tzinfo | None = None) -> datetime:
    """
    Accept ISO-8601 strings (including a trailing 'Z') or epoch milliseconds.

    The result is timezone-aware and expressed in `tz` (or left in its own
    offset when tz is None). Naive strings are taken to be in `tz`.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise TypeError(f"not an instant: {value!r}")
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(float(value) / 1000.0, tz=tz)
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip())
    else:
        raise TypeError(f"not an instant: {value!r}")

    if dt.tzinfo is None:
        if tz is None:
            return dt.astimezone()
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz) if tz is not None else dt


def new_task(
    title: str,
    start: datetime,
    *,
    end: datetime | None = None,
    comments: tuple[Comment, ...] = (),
    completed: bool = False,
    order: int = 0,
) -> Task:
    """Create a fresh task with a new id; end defaults to one hour after start."""
    return Task(
        id=next_id(),
        title=title.strip(),
        start=start,
        end=end if end is not None else start + DEFAULT_DURATION,
        completed=completed,
        comments=tuple(comments),
        order=order,
    )


def new_comment(text: str) -> Comment:
    return Comment(id=next_id(), text=text)


def new_subtask(title: str) -> Subtask:
    return Subtask(id=next_id(), title=title.strip())


