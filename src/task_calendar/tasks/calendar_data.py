# src/task_calendar/tasks/calendar_data.py

"""
In-memory task and goal collections backed by the TaskStore.

CalendarData is the single owner of:
- the task list ("events"),
- the weekly goal map (week key -> text),
- the daily goal map (day key -> text).

Everything else (aggregation, views) works on snapshots returned from here.

Persistence:
- task list writes are fire-and-forget background tasks, one per change;
- goal writes are debounced: each edit restarts a short timer and only the
  last value within the window is written;
- failures are logged, never raised into the caller, and never roll back
  the in-memory state;
- a document that failed to load is never written until a later load()
  reads it, so the empty fallback cannot replace stored data.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import tzinfo
from typing import Any

from .backend import DocumentNotFound
from .task_models import Task, TaskId, TaskNotFoundError
from .task_store import DAILY_GOALS_KEY, EVENTS_KEY, WEEKLY_GOALS_KEY, TaskStore

logger = logging.getLogger(__name__)


class CalendarData:
    def __init__(
        self,
        store: TaskStore,
        *,
        tz: tzinfo | None = None,
        goal_debounce_seconds: float = 0.5,
    ) -> None:
        self._store = store
        self._tz = tz
        self._debounce_s = max(0.0, float(goal_debounce_seconds))

        self._tasks: list[Task] = []
        self._weekly_goals: dict[str, str] = {}
        self._daily_goals: dict[str, str] = {}

        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._pending: set[asyncio.Task[Any]] = set()
        self._write_locks: dict[str, asyncio.Lock] = {}
        # Keys whose load failed; saves to them are held back.
        self._unreadable: set[str] = set()

    # ---- snapshots ----

    @property
    def tz(self) -> tzinfo | None:
        return self._tz

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def weekly_goals(self) -> dict[str, str]:
        return dict(self._weekly_goals)

    @property
    def daily_goals(self) -> dict[str, str]:
        return dict(self._daily_goals)

    def get_task(self, task_id: TaskId) -> Task:
        for t in self._tasks:
            if t.id == task_id:
                return t
        raise TaskNotFoundError(task_id)

    def has_task(self, task_id: TaskId) -> bool:
        return any(t.id == task_id for t in self._tasks)

    # ---- loading ----

    async def load(self) -> None:
        """
        Load all collections.

        Not-found (first run) creates the empty document. Any other failure is
        logged and leaves that collection empty so the app stays usable. Saves
        to that document are then held back, so the stored copy is not replaced
        by the empty fallback; calling load() again retries.
        """
        self._unreadable.clear()
        raw_tasks = await self._load_key(EVENTS_KEY, [])
        self._tasks = self._decode_tasks(raw_tasks)
        self._weekly_goals = self._decode_goals(await self._load_key(WEEKLY_GOALS_KEY, {}))
        self._daily_goals = self._decode_goals(await self._load_key(DAILY_GOALS_KEY, {}))
        logger.info(
            "Calendar loaded tasks=%d weekly_goals=%d daily_goals=%d",
            len(self._tasks),
            len(self._weekly_goals),
            len(self._daily_goals),
        )

    async def _load_key(self, key: str, default: Any) -> Any:
        try:
            doc = await self._store.load(key)
            return doc.data
        except DocumentNotFound:
            logger.info("No %s document yet; creating an empty one", key)
            try:
                await self._store.save(key, default)
            except Exception:
                logger.exception("Failed to create empty %s document", key)
            return default
        except Exception:
            logger.exception("Failed to load %s; starting empty, saves held back", key)
            self._unreadable.add(key)
            return default

    def _decode_tasks(self, raw: Any) -> list[Task]:
        if not isinstance(raw, list):
            logger.warning("events document is not a list; ignoring")
            return []
        out: list[Task] = []
        for item in raw:
            try:
                out.append(Task.from_dict(item, self._tz))
            except Exception:
                logger.warning("Skipping malformed stored task: %r", item, exc_info=True)
        return out

    @staticmethod
    def _decode_goals(raw: Any) -> dict[str, str]:
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items() if isinstance(v, str)}

    # ---- task collection ----

    def replace_tasks(self, tasks: Iterable[Task]) -> None:
        """Swap in a new task list and persist it."""
        self._tasks = list(tasks)
        self._schedule_events_save()

    def upsert_task(self, task: Task) -> None:
        for i, t in enumerate(self._tasks):
            if t.id == task.id:
                self._tasks[i] = task
                break
        else:
            self._tasks.append(task)
        self._schedule_events_save()

    def remove_task(self, task_id: TaskId) -> Task:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                removed = self._tasks.pop(i)
                self._schedule_events_save()
                return removed
        raise TaskNotFoundError(task_id)

    def events_document(self) -> list[dict[str, Any]]:
        return [t.to_dict() for t in self._tasks]

    # ---- goals ----

    def set_weekly_goal(self, week_key: str, text: str) -> None:
        self._set_goal(self._weekly_goals, WEEKLY_GOALS_KEY, week_key, text)

    def set_daily_goal(self, day_key: str, text: str) -> None:
        self._set_goal(self._daily_goals, DAILY_GOALS_KEY, day_key, text)

    def _set_goal(self, goals: dict[str, str], doc_key: str, period_key: str, text: str) -> None:
        if text:
            goals[period_key] = text
        else:
            goals.pop(period_key, None)
        self._schedule_goal_save(doc_key)

    def replace_all(
        self,
        tasks: Iterable[Task],
        weekly_goals: Mapping[str, str],
        daily_goals: Mapping[str, str] | None = None,
    ) -> None:
        """Destructive: the given collections replace (not merge into) the current ones."""
        self._tasks = list(tasks)
        self._weekly_goals = dict(weekly_goals)
        self._daily_goals = dict(daily_goals or {})
        self._schedule_events_save()
        self._schedule_goal_save(WEEKLY_GOALS_KEY)
        self._schedule_goal_save(DAILY_GOALS_KEY)

    # ---- background persistence ----

    def _goal_document(self, doc_key: str) -> dict[str, str]:
        if doc_key == DAILY_GOALS_KEY:
            return dict(self._daily_goals)
        return dict(self._weekly_goals)

    def _schedule_events_save(self) -> None:
        self._spawn(EVENTS_KEY, self.events_document)

    def _schedule_goal_save(self, doc_key: str) -> None:
        loop = asyncio.get_running_loop()
        timer = self._timers.pop(doc_key, None)
        if timer is not None:
            timer.cancel()
        self._timers[doc_key] = loop.call_later(self._debounce_s, self._fire_goal_save, doc_key)

    def _fire_goal_save(self, doc_key: str) -> None:
        self._timers.pop(doc_key, None)
        self._spawn(doc_key, lambda: self._goal_document(doc_key))

    @property
    def unreadable_keys(self) -> frozenset[str]:
        return frozenset(self._unreadable)

    def _spawn(self, key: str, snapshot: Callable[[], Any]) -> None:
        if key in self._unreadable:
            logger.warning("Not saving %s: stored document failed to load", key)
            return
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._save_quietly(key, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save_quietly(self, key: str, snapshot: Callable[[], Any]) -> None:
        # One writer per key. The snapshot is read under the lock, never earlier.
        lock = self._write_locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                await self._store.save(key, snapshot())
        except Exception:
            logger.exception("Background save of %s failed; in-memory state kept", key)

    async def flush(self) -> None:
        """Fire pending debounced goal saves now and wait for all in-flight writes."""
        for doc_key, timer in list(self._timers.items()):
            timer.cancel()
            self._fire_goal_save(doc_key)
        while self._pending:
            await asyncio.gather(*list(self._pending))
