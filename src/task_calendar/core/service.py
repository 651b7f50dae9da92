# src/task_calendar/core/service.py

"""
Mutation & command layer.

CalendarService is what the (external) view layer talks to:
- drag/drop hands it DropEvent(task_id, target_date) and gets the updated Task,
- detail views append comments / toggle subtasks through it,
- read paths (grid, search, year summary) return derived snapshots.

Every mutation:
1. computes the new Task with a pure function (tasks/mutations.py),
2. writes it into CalendarData (which persists in the background),
3. records an undo operation.

Methods that change data must be called from a running event loop, because
persistence is scheduled as background asyncio work.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from ..calendar.aggregate import AggregatedGrid, CountMode, YearSummary, aggregate, year_summary
from ..calendar.grid import generate_grid
from ..calendar.periods import PeriodType, day_key, start_of_layout_week, week_key
from ..calendar.search import SearchResults, search
from ..tasks.calendar_data import CalendarData
from ..tasks.commands import CommentOutcome, apply_comment
from ..tasks.exporter import dumps_export
from ..tasks.history import CreateTask, DeleteTask, EditTask, Operation, UndoStack
from ..tasks.importer import ImportFormat, ImportResult, parse
from ..tasks.mutations import (
    add_subtask,
    move_task,
    next_order,
    normalize_day,
    place_in_day,
    rename,
    set_completed,
    set_urgent,
    toggle_subtask,
)
from ..tasks.task_models import DEFAULT_DURATION, Task, TaskId, new_task, next_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DropEvent:
    """Emitted by the drag/drop collaborator: task `task_id` dropped on `target_date`."""

    task_id: TaskId
    target_date: date
    position: int | None = None


class CalendarService:
    def __init__(
        self,
        data: CalendarData,
        *,
        history: UndoStack | None = None,
        tz: tzinfo | None = None,
        import_tz: tzinfo | None = None,
        import_date_format: str = "%Y-%m-%d %H:%M:%S",
    ) -> None:
        self._data = data
        self._history = history if history is not None else UndoStack()
        self._tz = tz if tz is not None else data.tz
        self._import_tz = import_tz
        self._import_date_format = import_date_format

    @property
    def data(self) -> CalendarData:
        return self._data

    @property
    def history(self) -> UndoStack:
        return self._history

    # ---- helpers ----

    def _now(self) -> datetime:
        return datetime.now(tz=self._tz) if self._tz is not None else datetime.now().astimezone()

    def _aware(self, dt: datetime) -> datetime:
        if dt.tzinfo is not None:
            return dt
        return dt.replace(tzinfo=self._tz) if self._tz is not None else dt.astimezone()

    def _commit_edit(self, before: Task, after: Task) -> Task:
        if after == before:
            return before
        self._data.upsert_task(after)
        self._history.push(EditTask(before=before, after=after))
        return after

    # ---- creation / deletion ----

    def add_task(self, title: str, start: datetime, *, end: datetime | None = None) -> Task:
        start = self._aware(start)
        end = self._aware(end) if end is not None else None
        order = next_order(self._data.tasks, start.date())
        task = new_task(title, start, end=end, order=order)
        self._data.upsert_task(task)
        self._history.push(CreateTask(task=task))
        logger.info("Task created id=%s day=%s", task.id, task.day)
        return task

    def add_task_on(self, day: date, title: str) -> Task:
        """Create a task at midnight of `day` lasting one hour (double-click on a day cell)."""
        start = self._aware(datetime.combine(day, datetime.min.time()))
        return self.add_task(title, start, end=start + DEFAULT_DURATION)

    def delete_task(self, task_id: TaskId) -> Task:
        removed = self._data.remove_task(task_id)
        remaining = normalize_day(list(self._data.tasks), removed.day)
        if remaining != list(self._data.tasks):
            self._data.replace_tasks(remaining)
        self._history.push(DeleteTask(task=removed))
        logger.info("Task deleted id=%s", task_id)
        return removed

    def duplicate_task(self, task_id: TaskId, target_date: date, position: int | None = None) -> Task:
        """Copy a task (fresh id) onto `target_date`, keeping its time-of-day and duration."""
        source = self._data.get_task(task_id)
        copy = dataclasses.replace(move_task(source, target_date), id=next_id())
        tasks = place_in_day(list(self._data.tasks), copy, position)
        self._data.replace_tasks(tasks)
        placed = self._data.get_task(copy.id)
        self._history.push(CreateTask(task=placed))
        return placed

    # ---- edits ----

    def move_task(self, task_id: TaskId, new_date: date, position: int | None = None) -> Task:
        """
        Move a task to `new_date`, keeping time-of-day and duration.

        Same date and no position: no-op returning the task unchanged.
        """
        before = self._data.get_task(task_id)
        moved = move_task(before, new_date)
        if moved is before and position is None:
            return before

        old_day = before.day
        tasks = place_in_day(list(self._data.tasks), moved, position)
        if old_day != moved.day:
            tasks = normalize_day(tasks, old_day)
        self._data.replace_tasks(tasks)
        after = self._data.get_task(task_id)
        self._history.push(EditTask(before=before, after=after))
        logger.debug("Task moved id=%s %s -> %s pos=%s", task_id, old_day, after.day, after.order)
        return after

    def handle_drop(self, event: DropEvent) -> Task:
        return self.move_task(event.task_id, event.target_date, event.position)

    def set_completed(self, task_id: TaskId, completed: bool) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, set_completed(before, completed))

    def toggle_completed(self, task_id: TaskId) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, set_completed(before, not before.completed))

    def toggle_urgent(self, task_id: TaskId) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, set_urgent(before, not before.urgent))

    def rename_task(self, task_id: TaskId, title: str) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, rename(before, title))

    def add_subtask(self, task_id: TaskId, title: str) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, add_subtask(before, title))

    def toggle_subtask(self, task_id: TaskId, subtask_id: TaskId) -> Task:
        before = self._data.get_task(task_id)
        return self._commit_edit(before, toggle_subtask(before, subtask_id))

    def add_comment(self, task_id: TaskId, text: str) -> CommentOutcome:
        """
        Append a comment and apply the command it names.

        'delete' removes the task instead of logging; the outcome tells the
        caller to close any open detail view.
        """
        before = self._data.get_task(task_id)
        outcome = apply_comment(before, text)
        if outcome.deleted:
            self.delete_task(task_id)
        elif outcome.task is not None:
            self._commit_edit(before, outcome.task)
        return outcome

    # ---- goals ----

    def set_week_goal(self, day: date, text: str) -> str:
        """Store the goal for the grid row (Sunday-first week) that contains `day`."""
        key = week_key(start_of_layout_week(day))
        self._data.set_weekly_goal(key, text)
        return key

    def set_day_goal(self, day: date, text: str) -> str:
        key = day_key(day)
        self._data.set_daily_goal(key, text)
        return key

    # ---- undo / redo ----

    def undo(self) -> Operation | None:
        op = self._history.undo()
        if op is None:
            return None
        tasks = list(self._data.tasks)
        if isinstance(op, CreateTask):
            tasks = _take_out(tasks, op.task)
        elif isinstance(op, DeleteTask):
            tasks = place_in_day(tasks, op.task, op.task.order)
        elif isinstance(op, EditTask):
            tasks = _swap(tasks, op.after, op.before)
        self._data.replace_tasks(tasks)
        logger.info("Undo %s", type(op).__name__)
        return op

    def redo(self) -> Operation | None:
        op = self._history.redo()
        if op is None:
            return None
        tasks = list(self._data.tasks)
        if isinstance(op, CreateTask):
            tasks = place_in_day(tasks, op.task, op.task.order)
        elif isinstance(op, DeleteTask):
            tasks = _take_out(tasks, op.task)
        elif isinstance(op, EditTask):
            tasks = _swap(tasks, op.before, op.after)
        self._data.replace_tasks(tasks)
        logger.info("Redo %s", type(op).__name__)
        return op

    # ---- import / export ----

    def import_text(self, raw_text: str, fmt: ImportFormat | str | None = None) -> ImportResult:
        """
        Parse and apply an import.

        Tabular rows are added to the collection. A structured export replaces
        tasks and goals wholesale (destructive) when it parsed as a document.
        """
        result = parse(
            raw_text,
            fmt,
            tz=self._tz,
            source_tz=self._import_tz,
            date_format=self._import_date_format,
            now=self._now(),
        )
        if result.format is ImportFormat.STRUCTURED:
            if result.ok:
                self._data.replace_all(result.tasks, result.weekly_goals, result.daily_goals)
                self._history.clear()
        elif result.tasks:
            tasks = list(self._data.tasks)
            for t in result.tasks:
                tasks = place_in_day(tasks, t, None)
            self._data.replace_tasks(tasks)
            self._history.clear()
        logger.info("Import %s finished: %s valid", result.format.value, result.success_ratio)
        return result

    def export_text(self) -> str:
        return dumps_export(self._data.tasks, self._data.weekly_goals, self._data.daily_goals)

    # ---- read paths ----

    def grid(
        self,
        reference: date,
        period_type: PeriodType = PeriodType.MONTH,
        mode: CountMode = CountMode.SCHEDULED,
    ) -> AggregatedGrid:
        return aggregate(
            self._data.tasks,
            self._data.weekly_goals,
            generate_grid(reference, PeriodType(period_type)),
            mode=mode,
            daily_goals=self._data.daily_goals,
            now=self._now(),
        )

    def year_summary(self, year: int) -> YearSummary:
        return year_summary(self._data.tasks, year)

    def search(self, query: str) -> SearchResults:
        goals = {**self._data.weekly_goals, **self._data.daily_goals}
        return search(self._data.tasks, goals, query)


# ---- history helpers ----


def _take_out(tasks: list[Task], task: Task) -> list[Task]:
    return normalize_day([t for t in tasks if t.id != task.id], task.day)


def _swap(tasks: list[Task], current: Task, restored: Task) -> list[Task]:
    """Put `restored` back at its recorded position; close the gap it leaves on another day."""
    tasks = place_in_day(tasks, restored, restored.order)
    if current.day != restored.day:
        tasks = normalize_day(tasks, current.day)
    return tasks
