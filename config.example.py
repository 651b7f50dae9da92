# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/task_calendar/config.py for parsing and defaults.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKCAL_APP_NAME": "App display name (default: task-calendar).",
    "TASKCAL_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKCAL_DATA_DIR": "Local data directory (default: .local/task_calendar).",
    "TASKCAL_DB_PATH": "Document store SQLite path (default: <data_dir>/calendar.sqlite3).",
    "TASKCAL_LOG_DIR": "Directory for task_calendar.log (default: <data_dir>).",
    # Calendar
    "TASKCAL_TIMEZONE": "IANA zone tasks are displayed in (empty => system local).",
    "TASKCAL_GOAL_DEBOUNCE_SECONDS": "Quiet period before a goal edit is written (default: 0.5).",
    "TASKCAL_UNDO_LIMIT": "Undo history depth (default: 50).",
    # Import
    "TASKCAL_IMPORT_DATE_FORMAT": "strptime pattern of textual due dates (default: %Y-%m-%d %H:%M:%S).",
    "TASKCAL_IMPORT_TIMEZONE": "Zone textual due dates are written in (default: UTC).",
}
