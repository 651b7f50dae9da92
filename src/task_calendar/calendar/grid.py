# src/task_calendar/calendar/grid.py

from __future__ import annotations

"""
Calendar grid generator.

A grid is an ordered sequence of week rows, each exactly 7 day buckets,
Sunday first. Buckets are view-models only: they are recomputed from
(reference date, period type) on every call and never stored.
"""

import functools
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..tasks.task_models import Task
from .periods import (
    PeriodType,
    end_of_layout_week,
    month_bounds,
    period_bounds,
    quarter_bounds,
    start_of_layout_week,
    year_bounds,
)


@dataclass(frozen=True, slots=True)
class CalendarBucket:
    day: date
    in_focus_month: bool
    in_focus_year: bool
    in_focus_period: bool
    tasks: tuple[Task, ...] = field(default_factory=tuple)


WeekRow = tuple[CalendarBucket, ...]


@dataclass(frozen=True, slots=True)
class CalendarGrid:
    reference: date
    period_type: PeriodType
    period_start: date
    period_end: date
    rows: tuple[WeekRow, ...]

    @property
    def first_day(self) -> date:
        return self.rows[0][0].day

    @property
    def last_day(self) -> date:
        return self.rows[-1][-1].day

    @property
    def week_starts(self) -> tuple[date, ...]:
        return tuple(row[0].day for row in self.rows)

    def days(self) -> list[date]:
        return [b.day for row in self.rows for b in row]

    def buckets(self) -> list[CalendarBucket]:
        return [b for row in self.rows for b in row]

    def contains(self, d: date) -> bool:
        return self.first_day <= d <= self.last_day


def _layout_range(reference: date, period_type: PeriodType) -> tuple[date, date]:
    if period_type is PeriodType.WEEK:
        return start_of_layout_week(reference), end_of_layout_week(reference)

    if period_type is PeriodType.MONTH:
        first, last = month_bounds(reference)
        return start_of_layout_week(first), end_of_layout_week(last)

    if period_type is PeriodType.QUARTER:
        # Every week whose start lies in [week-aligned quarter start, quarter end].
        first, last = quarter_bounds(reference)
        start = start_of_layout_week(first)
        last_week_start = start_of_layout_week(last)
        return start, last_week_start + timedelta(days=6)

    if period_type is PeriodType.YEAR:
        first, last = year_bounds(reference)
        return start_of_layout_week(first), end_of_layout_week(last)

    raise ValueError(f"unknown period type: {period_type!r}")


@functools.lru_cache(maxsize=256)
def generate_grid(reference: date, period_type: PeriodType) -> CalendarGrid:
    """
    Build the grid for the period containing `reference`.

    Month/year flags compare against the reference date; the period flag marks
    days inside the requested period itself.
    """
    period_type = PeriodType(period_type)
    start, end = _layout_range(reference, period_type)
    p_start, p_end = period_bounds(reference, period_type)

    rows: list[WeekRow] = []
    day = start
    while day <= end:
        row = []
        for _ in range(7):
            row.append(
                CalendarBucket(
                    day=day,
                    in_focus_month=(day.year == reference.year and day.month == reference.month),
                    in_focus_year=(day.year == reference.year),
                    in_focus_period=(p_start <= day <= p_end),
                )
            )
            day += timedelta(days=1)
        rows.append(tuple(row))

    return CalendarGrid(
        reference=reference,
        period_type=period_type,
        period_start=p_start,
        period_end=p_end,
        rows=tuple(rows),
    )
