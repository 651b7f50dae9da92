# tests/test_importer.py

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from task_calendar.tasks.exporter import dumps_export, write_export
from task_calendar.tasks.importer import (
    ImportFormat,
    detect_format,
    parse,
    parse_due_date,
    parse_tabular,
)
from task_calendar.tasks.task_models import Task

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)

HEADER = "Task Name,Task Content,Due Date Text\n"


def _parse(text: str, **kw):
    kw.setdefault("tz", UTC)
    kw.setdefault("source_tz", UTC)
    kw.setdefault("now", NOW)
    return parse_tabular(text, **kw)


def test_tabular_rows_become_tasks() -> None:
    text = HEADER + (
        '"Write report","Outline, then draft","2025-03-12 09:30:00"\n'
        "Buy milk,,2025-03-11 08:00:00\n"
    )

    result = _parse(text)

    assert result.ok
    assert result.success_ratio == "2/2"
    report, milk = result.tasks
    assert report.title == "Write report"
    assert report.start == datetime(2025, 3, 12, 9, 30, tzinfo=UTC)
    assert report.end - report.start == timedelta(hours=1)
    assert [c.text for c in report.comments] == ["Outline, then draft"]
    assert milk.comments == ()


def test_epoch_millisecond_due_date() -> None:
    result = _parse(HEADER + "Ship it,body,1700000000000\n")

    (task,) = result.tasks
    assert task.start == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert task.completed is True


def test_invalid_rows_are_counted_not_fatal() -> None:
    text = HEADER + (
        "Good,body,2025-03-12 09:30:00\n"
        "Bad date,body,next tuesday\n"
        "Too short,body\n"
        ",body,2025-03-12 09:30:00\n"
    )

    result = _parse(text)

    assert result.ok
    assert result.total_rows == 4
    assert result.valid_rows == 1
    assert result.success_ratio == "1/4"
    assert len(result.errors) == 3
    assert result.as_tuple() == (result.tasks, 4, 1)


def test_header_is_case_insensitive_and_columns_can_move() -> None:
    text = "due date text,EXTRA,task content,TASK NAME\n2025-03-12 09:30:00,x,body,Title\n"
    (task,) = _parse(text).tasks
    assert task.title == "Title"
    assert task.comments[0].text == "body"


def test_missing_required_column_rejects_whole_input() -> None:
    result = _parse("Task Name,Due Date Text\nA,2025-03-12 09:30:00\n")

    assert not result.ok
    assert result.tasks == []
    assert result.total_rows == 0
    assert "task content" in result.errors[0]


def test_past_dates_complete_but_same_day_does_not() -> None:
    text = HEADER + (
        "Yesterday,,2025-03-09 23:00:00\n"
        "Earlier today,,2025-03-10 01:00:00\n"
        "Tomorrow,,2025-03-11 09:00:00\n"
    )
    by_title = {t.title: t.completed for t in _parse(text).tasks}
    assert by_title == {"Yesterday": True, "Earlier today": False, "Tomorrow": False}


def test_due_dates_are_read_in_source_zone() -> None:
    dt = parse_due_date(
        "2025-03-12 09:30:00",
        tz=UTC,
        source_tz=ZoneInfo("America/New_York"),
    )
    assert dt == datetime(2025, 3, 12, 13, 30, tzinfo=UTC)
    assert parse_due_date("12/03/2025", tz=UTC, source_tz=UTC) is None
    assert parse_due_date("", tz=UTC, source_tz=UTC) is None


def test_structured_import_reads_export_document(tmp_path) -> None:
    start = datetime(2025, 3, 12, 9, 30, tzinfo=UTC)
    task = Task(id=1, title="Write report", start=start, end=start + timedelta(hours=2), urgent=True)
    text = dumps_export([task], {"2025-11": "Finish draft"}, {"2025-03-12": "Focus"})
    path = write_export(tmp_path / "backup" / "calendar.json", text)

    raw = path.read_text("utf-8")
    assert detect_format(raw) is ImportFormat.STRUCTURED
    result = parse(raw, tz=UTC)

    assert result.format is ImportFormat.STRUCTURED
    assert result.tasks == [task]
    assert result.weekly_goals == {"2025-11": "Finish draft"}
    assert result.daily_goals == {"2025-03-12": "Focus"}


def test_structured_import_skips_bad_events_and_rejects_bad_json() -> None:
    doc = {
        "events": [
            {"id": 1, "title": "ok", "start": "2025-03-12T09:00:00Z"},
            {"id": 2, "title": "no start"},
        ],
        "weeklyGoals": {"2025-11": "x"},
    }
    result = parse(json.dumps(doc), ImportFormat.STRUCTURED, tz=UTC)
    assert result.success_ratio == "1/2"
    assert result.tasks[0].end - result.tasks[0].start == timedelta(hours=1)

    broken = parse("{not json", ImportFormat.STRUCTURED, tz=UTC)
    assert not broken.ok
    assert broken.tasks == []


def test_format_detection() -> None:
    assert detect_format(HEADER) is ImportFormat.TABULAR
    assert detect_format('  {"events": []}') is ImportFormat.STRUCTURED


def test_structured_import_skips_out_of_range_timestamps() -> None:
    doc = {
        "events": [
            {"id": 1, "title": "far future", "start": 1e20},
            {"id": 2, "title": "ok", "start": 1700000000000},
        ],
    }

    result = parse(json.dumps(doc), ImportFormat.STRUCTURED, tz=UTC)

    assert result.ok
    assert result.success_ratio == "1/2"
    assert [t.title for t in result.tasks] == ["ok"]
    assert result.errors[0].startswith("event 0:")
