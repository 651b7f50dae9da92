# src/task_calendar/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "task_calendar.log"

# Per-write chatter; shown on the console only at WARNING+.
_QUIET_LOGGERS = ("task_calendar.tasks.backend", "task_calendar.tasks.task_store")


class _ConsoleNoiseFilter(logging.Filter):
    """Console shows task_calendar logs (minus store chatter) and ERROR+ from everything else."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("task_calendar."):
            return record.levelno >= logging.ERROR
        if record.name.startswith(_QUIET_LOGGERS):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_calendar",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all logs to a filtered stderr console and a full log file.

    Call once, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)

    root.addHandler(console)
    root.addHandler(file_handler)
    return log_file
