# tests/test_commands.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from task_calendar.tasks.commands import CommentCommand, apply_comment
from task_calendar.tasks.task_models import Task


def _task(**kw) -> Task:
    start = datetime(2025, 1, 6, 9, tzinfo=UTC)
    return Task(id=1, title="Write report", start=start, end=start + timedelta(hours=1), **kw)


@pytest.mark.parametrize(
    ("text", "command"),
    [
        ("done", CommentCommand.DONE),
        (" DoNe ", CommentCommand.DONE),
        ("undo", CommentCommand.UNDO),
        ("URGENT", CommentCommand.URGENT),
        ("not urgent", CommentCommand.NOT_URGENT),
        ("delete", CommentCommand.DELETE),
        ("done!", CommentCommand.NOTE),
        ("not  urgent", CommentCommand.NOTE),
        ("mark as done", CommentCommand.NOTE),
    ],
)
def test_parse_is_trimmed_case_insensitive_exact(text: str, command: CommentCommand) -> None:
    assert CommentCommand.parse(text) is command


def test_done_logs_literal_and_completes() -> None:
    out = apply_comment(_task(), "  DoNe ")

    assert out.command is CommentCommand.DONE
    assert out.task is not None
    assert out.task.completed is True
    assert [c.text for c in out.task.comments] == ["DoNe"]
    assert out.comment is not None and out.comment.text == "DoNe"
    assert out.close_detail is False


def test_undo_reopens_and_urgent_flags_toggle() -> None:
    out = apply_comment(_task(completed=True), "undo")
    assert out.task is not None and out.task.completed is False

    urgent = apply_comment(_task(), "urgent").task
    assert urgent is not None and urgent.urgent is True

    calm = apply_comment(urgent, "Not Urgent").task
    assert calm is not None and calm.urgent is False
    assert [c.text for c in calm.comments] == ["urgent", "Not Urgent"]


def test_plain_note_has_no_side_effect() -> None:
    t = _task()
    out = apply_comment(t, "called the client")

    assert out.command is CommentCommand.NOTE
    assert out.task is not None
    assert (out.task.completed, out.task.urgent) == (t.completed, t.urgent)
    assert len(out.task.comments) == 1


def test_delete_removes_instead_of_logging() -> None:
    out = apply_comment(_task(), " delete ")

    assert out.deleted is True
    assert out.close_detail is True
    assert out.task is None
    assert out.comment is None


def test_blank_comment_rejected() -> None:
    with pytest.raises(ValueError):
        apply_comment(_task(), "   ")
