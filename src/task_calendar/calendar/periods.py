# src/task_calendar/calendar/periods.py

"""
Period arithmetic shared by every view.

Two week definitions live here and must not be mixed:
- layout weeks start on Sunday (grid rows),
- period keys use ISO weeks (Monday start, week 1 holds the first Thursday).
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from enum import StrEnum


class PeriodType(StrEnum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# ---- period keys ----


def week_key(d: date) -> str:
    """ISO week-year and week number, e.g. '2025-01' for 2024-12-30."""
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year:04d}-{iso_week:02d}"


def day_key(d: date) -> str:
    return d.isoformat()


def iso_week_number(d: date) -> int:
    return d.isocalendar()[1]


def same_iso_week(a: date, b: date) -> bool:
    return a.isocalendar()[:2] == b.isocalendar()[:2]


# ---- layout weeks (Sunday first) ----


def start_of_layout_week(d: date) -> date:
    # date.weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def end_of_layout_week(d: date) -> date:
    return start_of_layout_week(d) + timedelta(days=6)


# ---- calendar periods ----


def month_bounds(d: date) -> tuple[date, date]:
    last = calendar.monthrange(d.year, d.month)[1]
    return date(d.year, d.month, 1), date(d.year, d.month, last)


def quarter_of(d: date) -> int:
    return (d.month - 1) // 3 + 1


def quarter_bounds(d: date) -> tuple[date, date]:
    first_month = (quarter_of(d) - 1) * 3 + 1
    start = date(d.year, first_month, 1)
    _, end = month_bounds(date(d.year, first_month + 2, 1))
    return start, end


def year_bounds(d: date) -> tuple[date, date]:
    return date(d.year, 1, 1), date(d.year, 12, 31)


def period_bounds(d: date, period_type: PeriodType) -> tuple[date, date]:
    """First and last calendar day of the period that contains `d`."""
    if period_type is PeriodType.WEEK:
        return start_of_layout_week(d), end_of_layout_week(d)
    if period_type is PeriodType.MONTH:
        return month_bounds(d)
    if period_type is PeriodType.QUARTER:
        return quarter_bounds(d)
    if period_type is PeriodType.YEAR:
        return year_bounds(d)
    raise ValueError(f"unknown period type: {period_type!r}")


def add_months(d: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last))


def shift_reference(d: date, period_type: PeriodType, steps: int) -> date:
    """Move a reference date by `steps` periods (negative = backwards)."""
    if period_type is PeriodType.WEEK:
        return d + timedelta(weeks=steps)
    if period_type is PeriodType.MONTH:
        return add_months(d, steps)
    if period_type is PeriodType.QUARTER:
        return add_months(d, 3 * steps)
    if period_type is PeriodType.YEAR:
        return add_months(d, 12 * steps)
    raise ValueError(f"unknown period type: {period_type!r}")


def display_date(d: date) -> str:
    """Short label used by week summaries, e.g. 'Jan 5'."""
    return f"{calendar.month_abbr[d.month]} {d.day}"
