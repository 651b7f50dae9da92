# src/task_calendar/cli/main.py

"""
CLI entrypoint.

Initializes logging, opens the calendar state, runs one maintenance command
and flushes pending writes before exiting:

  task-calendar import FILE [--format csv|json]
  task-calendar export FILE
  task-calendar grid [--period month] [--date YYYY-MM-DD] [--mode scheduled]
  task-calendar year [--year YYYY]
  task-calendar search TEXT
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from ..calendar.aggregate import CountMode
from ..calendar.periods import PeriodType
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.exporter import write_export
from ..tasks.importer import ImportFormat
from .bootstrap import close_state, open_state

logger = logging.getLogger(__name__)


def _parse_date(raw: str | None) -> date:
    if not raw:
        return date.today()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {raw!r}") from None


def cmd_import(state: AppState, args: argparse.Namespace) -> int:
    path = Path(args.file)
    try:
        raw = path.read_text("utf-8")
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return 1

    result = state.service.import_text(raw, args.format)
    print(f"Imported {result.success_ratio} rows from {path}")
    for err in result.errors[:20]:
        print(f"  - {err}")
    if len(result.errors) > 20:
        print(f"  ... {len(result.errors) - 20} more")
    return 0 if result.ok else 1


def cmd_export(state: AppState, args: argparse.Namespace) -> int:
    out = write_export(args.file, state.service.export_text())
    print(f"Exported {len(state.data.tasks)} tasks to {out}")
    return 0


def cmd_grid(state: AppState, args: argparse.Namespace) -> int:
    agg = state.service.grid(_parse_date(args.date), PeriodType(args.period), CountMode(args.mode))
    print(f"{agg.grid.period_type.value} {agg.grid.period_start} .. {agg.grid.period_end} ({agg.mode.value})")
    for row, week in zip(agg.rows, agg.weeks):
        cells = " ".join(
            f"{c.day.day:>2}{'*' if c.bucket.in_focus_period else ' '}{c.count:>2}" for c in row
        )
        # ">" follows WeekSummary.is_current (ISO week of the row's Sunday), not the row holding today.
        marker = ">" if week.is_current else " "
        goal = f"  {week.goal}" if week.goal else ""
        print(f"{marker}W{week.week_number:02d} {cells}{goal}")
    return 0


def cmd_year(state: AppState, args: argparse.Namespace) -> int:
    s = state.service.year_summary(args.year)
    print(f"{s.completed_tasks} tasks completed in {s.year} ({s.total_tasks} scheduled)")
    print("by month: " + " ".join(str(n) for n in s.month_completed))
    if s.busiest_day is not None:
        print(f"busiest day: {s.busiest_day} ({s.max_daily_completed}); active days: {s.active_days}")
    return 0


def cmd_search(state: AppState, args: argparse.Namespace) -> int:
    res = state.service.search(args.text)
    if res.empty:
        print("No matches.")
        return 0
    for t in res.tasks:
        print(f"task {t.id} {t.day} {t.title}")
    for g in res.goals:
        print(f"goal {g.period_key}: {g.goal}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="task-calendar", description="Task calendar data engine")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import a CSV task export or a JSON backup")
    p_import.add_argument("file")
    p_import.add_argument("--format", choices=[f.value for f in ImportFormat], default=None)
    p_import.set_defaults(func=cmd_import)

    p_export = sub.add_parser("export", help="Write a JSON backup of tasks and goals")
    p_export.add_argument("file")
    p_export.set_defaults(func=cmd_export)

    p_grid = sub.add_parser("grid", help="Print per-day counts for a period")
    p_grid.add_argument("--period", choices=[p.value for p in PeriodType], default=PeriodType.MONTH.value)
    p_grid.add_argument("--date", default=None, help="Reference date YYYY-MM-DD (default: today)")
    p_grid.add_argument("--mode", choices=[m.value for m in CountMode], default=CountMode.SCHEDULED.value)
    p_grid.set_defaults(func=cmd_grid)

    p_year = sub.add_parser("year", help="Completed-task totals for a year")
    p_year.add_argument("--year", type=int, default=date.today().year)
    p_year.set_defaults(func=cmd_year)

    p_search = sub.add_parser("search", help="Search tasks, subtasks, comments and goals")
    p_search.add_argument("text")
    p_search.set_defaults(func=cmd_search)

    return parser


async def run(args: argparse.Namespace, settings=None) -> int:
    state = await open_state(settings=settings)
    try:
        return int(args.func(state, args))
    finally:
        await close_state(state)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "log_dir", ".local/task_calendar"), console_level=console_level)

    args = build_parser().parse_args(argv)
    logger.debug("Running command %s", args.command)

    try:
        return asyncio.run(run(args, settings=settings))
    except argparse.ArgumentTypeError as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
