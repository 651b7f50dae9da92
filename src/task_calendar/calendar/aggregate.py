# src/task_calendar/calendar/aggregate.py

"""
Aggregation engine.

Joins a task snapshot and goal maps onto a generated grid. Everything here is
a pure function: inputs are never mutated and results are new objects, so the
output may be cached on (tasks, goals, reference date, period type).

Two counting modes exist and are not interchangeable:
- COMPLETED: activity / contribution view, only completed tasks count;
- SCHEDULED: scheduling / goal view, every task counts.
"""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum

from ..tasks.task_models import Task
from .grid import CalendarBucket, CalendarGrid
from .periods import day_key, display_date, iso_week_number, same_iso_week, week_key

# Upper bounds (exclusive) of bands 1..4; anything at or above 0.8 is band 5.
INTENSITY_THRESHOLDS = (0.2, 0.4, 0.6, 0.8)
NO_ACTIVITY = 0


class CountMode(StrEnum):
    COMPLETED = "completed"
    SCHEDULED = "scheduled"


@dataclass(frozen=True, slots=True)
class DayCell:
    bucket: CalendarBucket
    count: int
    band: int
    goal: str

    @property
    def day(self) -> date:
        return self.bucket.day

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self.bucket.tasks


@dataclass(frozen=True, slots=True)
class WeekSummary:
    week_key: str
    week_number: int
    start: date
    end: date
    start_label: str
    end_label: str
    goal: str
    task_count: int
    completed_count: int
    is_current: bool


@dataclass(frozen=True, slots=True)
class AggregatedGrid:
    grid: CalendarGrid
    mode: CountMode
    rows: tuple[tuple[DayCell, ...], ...]
    weeks: tuple[WeekSummary, ...]
    max_count: int

    def cells(self) -> list[DayCell]:
        return [c for row in self.rows for c in row]

    def total_count(self) -> int:
        return sum(c.count for c in self.cells())


@dataclass(frozen=True, slots=True)
class YearSummary:
    year: int
    total_tasks: int
    completed_tasks: int
    month_completed: tuple[int, ...]
    active_days: int
    max_daily_completed: int
    busiest_day: date | None


# ---- indexing ----


def index_by_day(tasks: Iterable[Task]) -> dict[date, list[Task]]:
    """Group tasks by start date once; each day's list is ordered by (order, start)."""
    out: dict[date, list[Task]] = defaultdict(list)
    for t in tasks:
        out[t.day].append(t)
    for day_tasks in out.values():
        day_tasks.sort(key=lambda t: (t.order, t.start))
    return dict(out)


def count_tasks(tasks: Iterable[Task], mode: CountMode) -> int:
    if mode is CountMode.COMPLETED:
        return sum(1 for t in tasks if t.completed)
    return sum(1 for _ in tasks)


def daily_counts(tasks: Iterable[Task], mode: CountMode) -> dict[date, int]:
    counts: dict[date, int] = defaultdict(int)
    for t in tasks:
        if mode is CountMode.COMPLETED and not t.completed:
            continue
        counts[t.day] += 1
    return dict(counts)


def intensity_band(count: int, max_count: int) -> int:
    """
    Map a count onto 0..5.

    0 is "no activity"; 1..5 split count/max at 0.2, 0.4, 0.6, 0.8.
    max_count is floored at 1.
    """
    if count <= 0:
        return NO_ACTIVITY
    ratio = count / max(1, max_count)
    for band, upper in enumerate(INTENSITY_THRESHOLDS, start=1):
        if ratio < upper:
            return band
    return len(INTENSITY_THRESHOLDS) + 1


# ---- grid aggregation ----


def aggregate(
    tasks: Iterable[Task],
    weekly_goals: Mapping[str, str],
    grid: CalendarGrid,
    *,
    mode: CountMode = CountMode.SCHEDULED,
    daily_goals: Mapping[str, str] | None = None,
    now: datetime | date | None = None,
) -> AggregatedGrid:
    """Attach tasks, counts, intensity bands and week summaries to `grid`."""
    mode = CountMode(mode)
    by_day = index_by_day(tasks)
    daily_goals = daily_goals or {}
    today = _as_date(now)

    filled_rows: list[tuple[CalendarBucket, ...]] = []
    counts: list[list[int]] = []
    for row in grid.rows:
        new_row = []
        row_counts = []
        for bucket in row:
            day_tasks = tuple(by_day.get(bucket.day, ()))
            new_row.append(dataclasses.replace(bucket, tasks=day_tasks))
            row_counts.append(count_tasks(day_tasks, mode))
        filled_rows.append(tuple(new_row))
        counts.append(row_counts)

    max_count = max([1, *(c for row_counts in counts for c in row_counts)])

    rows = tuple(
        tuple(
            DayCell(
                bucket=bucket,
                count=count,
                band=intensity_band(count, max_count),
                goal=daily_goals.get(day_key(bucket.day), ""),
            )
            for bucket, count in zip(row, row_counts)
        )
        for row, row_counts in zip(filled_rows, counts)
    )

    weeks = week_summaries(filled_rows, weekly_goals, today=today)

    return AggregatedGrid(grid=grid, mode=mode, rows=rows, weeks=weeks, max_count=max_count)


def week_summaries(
    rows: Iterable[tuple[CalendarBucket, ...]],
    weekly_goals: Mapping[str, str],
    *,
    today: date,
) -> tuple[WeekSummary, ...]:
    """
    One summary per distinct week start, in grid order.

    Rows start on Sunday but keys and `is_current` use the ISO week of that
    Sunday, which is the ISO week ending on it. On Monday to Saturday the row
    flagged current is therefore the one after the row holding today. Goal
    lookup uses the same key, and set_week_goal writes it from the row's
    Sunday, so a goal set for a day shows on that day's row.
    """
    out: list[WeekSummary] = []
    seen: set[date] = set()
    for row in rows:
        start = row[0].day
        if start in seen:
            continue
        seen.add(start)
        end = start + timedelta(days=6)
        row_tasks = [t for b in row for t in b.tasks]
        key = week_key(start)
        out.append(
            WeekSummary(
                week_key=key,
                week_number=iso_week_number(start),
                start=start,
                end=end,
                start_label=display_date(start),
                end_label=display_date(end),
                goal=weekly_goals.get(key, ""),
                task_count=len(row_tasks),
                completed_count=sum(1 for t in row_tasks if t.completed),
                is_current=same_iso_week(start, today),
            )
        )
    return tuple(out)


def year_summary(tasks: Iterable[Task], year: int) -> YearSummary:
    """Totals for one Gregorian year; activity figures count completed tasks."""
    in_year = [t for t in tasks if t.day.year == year]
    completed = [t for t in in_year if t.completed]

    month_completed = [0] * 12
    for t in completed:
        month_completed[t.day.month - 1] += 1

    per_day = daily_counts(completed, CountMode.COMPLETED)
    busiest: date | None = None
    max_daily = 0
    for d, n in sorted(per_day.items()):
        if n > max_daily:
            busiest, max_daily = d, n

    return YearSummary(
        year=year,
        total_tasks=len(in_year),
        completed_tasks=len(completed),
        month_completed=tuple(month_completed),
        active_days=len(per_day),
        max_daily_completed=max_daily,
        busiest_day=busiest,
    )


def _as_date(now: datetime | date | None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now
