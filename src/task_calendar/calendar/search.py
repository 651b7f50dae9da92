# src/task_calendar/calendar/search.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..tasks.task_models import Task


@dataclass(frozen=True, slots=True)
class GoalMatch:
    period_key: str
    goal: str


@dataclass(frozen=True, slots=True)
class SearchResults:
    query: str
    tasks: tuple[Task, ...]
    goals: tuple[GoalMatch, ...]

    @property
    def empty(self) -> bool:
        return not self.tasks and not self.goals


def task_matches(task: Task, needle: str) -> bool:
    if needle in task.title.lower():
        return True
    if any(needle in st.title.lower() for st in task.subtasks):
        return True
    return any(needle in c.text.lower() for c in task.comments)


def search(tasks: Iterable[Task], goals: Mapping[str, str], query: str) -> SearchResults:
    """Case-insensitive substring search over titles, subtasks, comments and goal texts."""
    needle = (query or "").strip().lower()
    if not needle:
        return SearchResults(query=query, tasks=(), goals=())

    found_tasks = tuple(t for t in tasks if task_matches(t, needle))
    found_goals = tuple(
        GoalMatch(period_key=k, goal=v) for k, v in sorted(goals.items()) if needle in v.lower()
    )
    return SearchResults(query=query, tasks=found_tasks, goals=found_goals)
