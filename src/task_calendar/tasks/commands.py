# src/task_calendar/tasks/commands.py

from __future__ import annotations

"""
Comment commands.

A comment is both an audit-log entry and a command line. The literal text is
resolved once, at append time, into one of a closed set of commands; the
result carries the log entry and the effect as two linked outputs.

Only appends are interpreted. Comments that arrive with a task (import,
restore from storage) are never re-read as commands.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum

from .mutations import append_comment, set_completed, set_urgent
from .task_models import Comment, Task, new_comment

logger = logging.getLogger(__name__)


class CommentCommand(StrEnum):
    NOTE = "note"  # plain comment, no side effect
    DONE = "done"
    UNDO = "undo"
    URGENT = "urgent"
    NOT_URGENT = "not urgent"
    DELETE = "delete"

    @classmethod
    def parse(cls, text: str) -> CommentCommand:
        """Trimmed, case-insensitive exact match; anything else is a NOTE."""
        normalized = (text or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.NOTE


@dataclass(frozen=True, slots=True)
class CommentOutcome:
    """
    Result of appending a comment.

    task: the updated task, or None when the command deleted it.
    comment: the log entry that was appended (None for DELETE).
    close_detail: the caller should close any open detail view of this task.
    """

    command: CommentCommand
    task: Task | None
    comment: Comment | None

    @property
    def deleted(self) -> bool:
        return self.command is CommentCommand.DELETE

    @property
    def close_detail(self) -> bool:
        return self.deleted


def apply_comment(task: Task, text: str) -> CommentOutcome:
    """
    Append `text` to the task's comment log and apply the command it names.

    The stored comment keeps the trimmed literal text the user typed.
    Raises ValueError on blank input.
    """
    literal = (text or "").strip()
    if not literal:
        raise ValueError("comment text is required")

    command = CommentCommand.parse(literal)

    if command is CommentCommand.DELETE:
        logger.info("Comment command delete task_id=%s", task.id)
        return CommentOutcome(command=command, task=None, comment=None)

    comment = new_comment(literal)
    updated = append_comment(task, comment)

    if command is CommentCommand.DONE:
        updated = set_completed(updated, True)
    elif command is CommentCommand.UNDO:
        updated = set_completed(updated, False)
    elif command is CommentCommand.URGENT:
        updated = set_urgent(updated, True)
    elif command is CommentCommand.NOT_URGENT:
        updated = set_urgent(updated, False)

    if command is not CommentCommand.NOTE:
        logger.info("Comment command %s task_id=%s", command.value, task.id)

    return CommentOutcome(command=command, task=updated, comment=comment)
