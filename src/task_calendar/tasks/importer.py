# src/task_calendar/tasks/importer.py

"""
Bulk import.

Two input formats:

- TABULAR: comma-separated text with a header row naming at least
  "Task Name", "Task Content" and "Due Date Text" (case-insensitive),
  the layout of a common task-tool export. Each data row becomes one task.
- STRUCTURED: the JSON document produced by tasks/exporter.py. It carries the
  whole task list and goal maps and is meant to REPLACE the current
  collections, not merge into them.

Malformed input never raises out of parse(): bad rows are skipped and
counted, and the reasons are collected in ImportResult.errors.

Known limitation: fields are read with the csv module, but only a single
enclosing pair of double quotes is guaranteed to be handled; exports that
rely on other quoting conventions may split fields differently.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import Any

from .task_models import Task, new_comment, new_task

logger = logging.getLogger(__name__)

TITLE_COLUMN = "task name"
BODY_COLUMN = "task content"
DUE_COLUMN = "due date text"

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NUMERIC = re.compile(r"^\d+$")


class ImportFormat(StrEnum):
    TABULAR = "csv"
    STRUCTURED = "json"


@dataclass(slots=True)
class ImportResult:
    format: ImportFormat
    tasks: list[Task] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    weekly_goals: dict[str, str] = field(default_factory=dict)
    daily_goals: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """False when the input as a whole could not be read (no header, bad JSON)."""
        return not (self.total_rows == 0 and self.errors)

    @property
    def success_ratio(self) -> str:
        return f"{self.valid_rows}/{self.total_rows}"

    def as_tuple(self) -> tuple[list[Task], int, int]:
        return self.tasks, self.total_rows, self.valid_rows


def detect_format(raw_text: str) -> ImportFormat:
    head = (raw_text or "").lstrip()
    return ImportFormat.STRUCTURED if head.startswith(("{", "[")) else ImportFormat.TABULAR


def parse(
    raw_text: str,
    fmt: ImportFormat | str | None = None,
    *,
    tz: tzinfo | None = None,
    source_tz: tzinfo | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    now: datetime | None = None,
) -> ImportResult:
    """
    Parse an import payload.

    tz: display zone the resulting tasks are expressed in.
    source_tz: zone the textual due dates are written in (default UTC).
    now: moment of import; tabular tasks dated before today are marked completed.
    """
    fmt = detect_format(raw_text) if fmt is None else ImportFormat(fmt)
    if fmt is ImportFormat.STRUCTURED:
        return parse_structured(raw_text, tz=tz)
    return parse_tabular(
        raw_text,
        tz=tz,
        source_tz=source_tz,
        date_format=date_format,
        now=now,
    )


# ---- tabular ----


def _strip_quotes(value: str) -> str:
    v = value.strip()
    if len(v) >= 2 and v[0] == '"' and v[-1] == '"':
        return v[1:-1]
    return v


def parse_due_date(
    text: str,
    *,
    tz: tzinfo | None,
    source_tz: tzinfo | None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> datetime | None:
    """
    Purely numeric text is epoch milliseconds; anything else must match
    `date_format` and is read in `source_tz`. Returns None when unparseable.
    """
    s = (text or "").strip()
    if not s:
        return None
    try:
        if _NUMERIC.match(s):
            dt = datetime.fromtimestamp(int(s) / 1000.0, tz=UTC)
        else:
            dt = datetime.strptime(s, date_format).replace(tzinfo=source_tz or UTC)
    except (ValueError, OverflowError, OSError):
        return None
    return dt.astimezone(tz) if tz is not None else dt.astimezone()


def _header_index(header: list[str]) -> dict[str, int]:
    names = [_strip_quotes(h).strip().lower() for h in header]
    out: dict[str, int] = {}
    for col in (TITLE_COLUMN, BODY_COLUMN, DUE_COLUMN):
        if col in names:
            out[col] = names.index(col)
    return out


def parse_tabular(
    raw_text: str,
    *,
    tz: tzinfo | None = None,
    source_tz: tzinfo | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    now: datetime | None = None,
) -> ImportResult:
    result = ImportResult(format=ImportFormat.TABULAR)

    rows = [r for r in csv.reader(io.StringIO(raw_text or "")) if any(c.strip() for c in r)]
    if not rows:
        result.errors.append("empty input")
        return result

    index = _header_index(rows[0])
    missing = [c for c in (TITLE_COLUMN, BODY_COLUMN, DUE_COLUMN) if c not in index]
    if missing:
        result.errors.append("missing required column(s): " + ", ".join(missing))
        logger.warning("Import rejected: missing columns %s", missing)
        return result

    title_i, body_i, due_i = index[TITLE_COLUMN], index[BODY_COLUMN], index[DUE_COLUMN]
    now = now or datetime.now(tz=UTC)
    today = now.astimezone(tz).date() if tz is not None else now.astimezone().date()

    for line_no, row in enumerate(rows[1:], start=2):
        result.total_rows += 1

        if len(row) <= due_i:
            result.errors.append(f"row {line_no}: expected at least {due_i + 1} fields, got {len(row)}")
            continue

        title = _strip_quotes(row[title_i]) if title_i < len(row) else ""
        body = _strip_quotes(row[body_i]) if body_i < len(row) else ""
        due_text = _strip_quotes(row[due_i])

        if not title.strip():
            result.errors.append(f"row {line_no}: empty task name")
            continue

        start = parse_due_date(due_text, tz=tz, source_tz=source_tz, date_format=date_format)
        if start is None:
            result.errors.append(f"row {line_no}: unparseable due date {due_text!r}")
            continue

        comments = (new_comment(body),) if body.strip() else ()
        # Same-day imports stay open; only earlier days count as already done.
        completed = start.date() < today
        result.tasks.append(new_task(title, start, comments=comments, completed=completed))
        result.valid_rows += 1

    logger.info("Tabular import parsed %s rows valid", result.success_ratio)
    return result


# ---- structured ----


def _goal_map(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): v for k, v in raw.items() if isinstance(v, str)}


def parse_structured(raw_text: str, *, tz: tzinfo | None = None) -> ImportResult:
    result = ImportResult(format=ImportFormat.STRUCTURED)
    try:
        doc = json.loads(raw_text or "")
    except json.JSONDecodeError as exc:
        result.errors.append(f"invalid JSON: {exc}")
        logger.warning("Structured import rejected: %s", exc)
        return result

    if not isinstance(doc, dict):
        result.errors.append("export document must be a JSON object")
        return result

    events = doc.get("events") or []
    if not isinstance(events, list):
        result.errors.append("'events' must be a list")
        return result

    for i, item in enumerate(events):
        result.total_rows += 1
        try:
            result.tasks.append(Task.from_dict(item, tz))
            result.valid_rows += 1
        except (KeyError, ValueError, TypeError, AttributeError, OverflowError, OSError) as exc:
            result.errors.append(f"event {i}: {exc!r}")

    result.weekly_goals = _goal_map(doc.get("weeklyGoals"))
    result.daily_goals = _goal_map(doc.get("dailyGoals"))

    logger.info(
        "Structured import parsed %s tasks, %d weekly goals, %d daily goals",
        result.success_ratio,
        len(result.weekly_goals),
        len(result.daily_goals),
    )
    return result
