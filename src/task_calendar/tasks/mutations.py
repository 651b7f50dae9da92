# src/task_calendar/tasks/mutations.py

"""
Pure task mutations.

Each function takes a Task (or a task list) and returns a new value; nothing
here touches storage. CalendarService applies the results to CalendarData.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from datetime import date, datetime, time

from .task_models import Comment, Task, TaskId, TaskNotFoundError, new_subtask


def move_task(task: Task, new_date: date) -> Task:
    """
    Put the task on `new_date`, keeping its time-of-day and duration.

    Moving to the task's current date returns the task unchanged.
    """
    if task.day == new_date:
        return task
    duration = task.end - task.start
    start_time = time(
        task.start.hour,
        task.start.minute,
        task.start.second,
        task.start.microsecond,
        fold=task.start.fold,
    )
    new_start = datetime.combine(new_date, start_time, tzinfo=task.start.tzinfo)
    return dataclasses.replace(task, start=new_start, end=new_start + duration)


def set_completed(task: Task, completed: bool) -> Task:
    if task.completed == completed:
        return task
    return dataclasses.replace(task, completed=completed)


def set_urgent(task: Task, urgent: bool) -> Task:
    if task.urgent == urgent:
        return task
    return dataclasses.replace(task, urgent=urgent)


def rename(task: Task, title: str) -> Task:
    return dataclasses.replace(task, title=title.strip())


def append_comment(task: Task, comment: Comment) -> Task:
    return dataclasses.replace(task, comments=(*task.comments, comment))


def add_subtask(task: Task, title: str) -> Task:
    if not title or not title.strip():
        raise ValueError("subtask title is required")
    return dataclasses.replace(task, subtasks=(*task.subtasks, new_subtask(title)))


def toggle_subtask(task: Task, subtask_id: TaskId) -> Task:
    found = False
    subtasks = []
    for st in task.subtasks:
        if st.id == subtask_id:
            found = True
            st = dataclasses.replace(st, completed=not st.completed)
        subtasks.append(st)
    if not found:
        raise TaskNotFoundError(subtask_id)
    return dataclasses.replace(task, subtasks=tuple(subtasks))


# ---- per-day ordering ----


def tasks_on(tasks: Iterable[Task], day: date) -> list[Task]:
    return sorted((t for t in tasks if t.day == day), key=lambda t: (t.order, t.start))


def next_order(tasks: Iterable[Task], day: date) -> int:
    """Order value that appends after the last task of `day`."""
    orders = [t.order for t in tasks if t.day == day]
    return max(orders) + 1 if orders else 0


def place_in_day(tasks: list[Task], task: Task, position: int | None) -> list[Task]:
    """
    Return a new list where `task` (already dated) sits at `position` within its day.

    Other tasks of that day are renumbered 0..n-1 in their existing order.
    position=None appends at the end of the day. Tasks on other days are untouched.
    """
    others = [t for t in tasks if t.id != task.id]
    day_tasks = tasks_on(others, task.day)
    if position is None or position > len(day_tasks):
        position = len(day_tasks)
    position = max(0, position)
    day_tasks.insert(position, task)

    renumbered = {t.id: dataclasses.replace(t, order=i) for i, t in enumerate(day_tasks)}

    out = [renumbered.get(t.id, t) for t in others]
    out.append(renumbered[task.id])
    return out


def normalize_day(tasks: list[Task], day: date) -> list[Task]:
    """Close gaps in the order of `day` (after a removal)."""
    renumbered = {t.id: dataclasses.replace(t, order=i) for i, t in enumerate(tasks_on(tasks, day))}
    return [renumbered.get(t.id, t) for t in tasks]
