# src/task_calendar/tasks/backend.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class DocumentNotFound(LookupError):
    """No document is stored under the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"document not found: {key}")
        self.key = key


class DocumentConflict(RuntimeError):
    """The revision presented on write is not the current one."""

    def __init__(self, key: str, expected: str | None, actual: str | None) -> None:
        super().__init__(f"revision conflict on {key}: have {expected!r}, current {actual!r}")
        self.key = key
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True, slots=True)
class Document:
    key: str
    rev: str
    data: Any


def make_rev(previous: str | None) -> str:
    """Revision tokens look like '<generation>-<hex>'; generation grows by one per write."""
    gen = 0
    if previous:
        head = previous.split("-", 1)[0]
        with contextlib.suppress(ValueError):
            gen = int(head)
    return f"{gen + 1}-{uuid.uuid4().hex}"


class SQLiteDocumentBackend:
    """
    SQLite keyed-document store with optimistic concurrency.

    Each key holds one JSON document plus a revision token. Writes must present
    the current token; a stale token raises DocumentConflict. Creating a key that
    already exists (token None) is also a conflict.

    Thread-safety:
    - each method opens its own SQLite connection
    - the compare-and-swap is a single UPDATE ... WHERE rev = ?
    """

    def __init__(self, db_path: str | Path = "calendar.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_documents()
        except Exception:
            total = -1
        logger.info("DocumentBackend ready db=%s documents=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    key TEXT PRIMARY KEY,
                    rev TEXT NOT NULL,
                    data TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def count_documents(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
            return int(n)
        finally:
            conn.close()

    def get(self, key: str) -> Document:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT key, rev, data FROM documents WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise DocumentNotFound(key)
        return Document(key=row["key"], rev=row["rev"], data=json.loads(row["data"]))

    def put(self, key: str, data: Any, rev: str | None = None) -> str:
        """
        Write `data` under `key`.

        rev=None creates the document; otherwise rev must match the stored token.
        Returns the new revision token.
        """
        payload = json.dumps(data, ensure_ascii=False)
        new_rev = make_rev(rev)
        now = time.time()

        conn = self._get_conn()
        try:
            if rev is None:
                try:
                    conn.execute(
                        "INSERT INTO documents(key, rev, data, updated_at) VALUES (?, ?, ?, ?)",
                        (key, new_rev, payload, now),
                    )
                except sqlite3.IntegrityError:
                    current = self._current_rev(conn, key)
                    raise DocumentConflict(key, None, current) from None
            else:
                cur = conn.execute(
                    "UPDATE documents SET rev = ?, data = ?, updated_at = ? WHERE key = ? AND rev = ?",
                    (new_rev, payload, now, key, rev),
                )
                if cur.rowcount != 1:
                    current = self._current_rev(conn, key)
                    raise DocumentConflict(key, rev, current)
            conn.commit()
        finally:
            conn.close()

        logger.debug("Document written key=%s rev=%s bytes=%s", key, new_rev, len(payload))
        return new_rev

    @staticmethod
    def _current_rev(conn: sqlite3.Connection, key: str) -> str | None:
        row = conn.execute("SELECT rev FROM documents WHERE key = ?", (key,)).fetchone()
        return row["rev"] if row else None
