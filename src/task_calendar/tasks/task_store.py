# src/task_calendar/tasks/task_store.py

from __future__ import annotations

"""
Task store: whole-collection documents with optimistic concurrency.

Every root key ("events", "weeklyGoals", "dailyGoals") is one document holding
the entire collection, so each save round-trips the whole collection. That is
a deliberate ceiling for personal-scale data, not a per-task store.

Backend calls are blocking (SQLite); they run in a worker thread so callers on
the event loop are never blocked.
"""

import asyncio
import logging
from typing import Any

from ..core.ports import DocumentBackend
from .backend import Document, DocumentConflict, DocumentNotFound

logger = logging.getLogger(__name__)

EVENTS_KEY = "events"
WEEKLY_GOALS_KEY = "weeklyGoals"
DAILY_GOALS_KEY = "dailyGoals"


class TaskStore:
    def __init__(self, backend: DocumentBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> DocumentBackend:
        return self._backend

    async def load(self, key: str) -> Document:
        """Return the current document. Raises DocumentNotFound if it was never saved."""
        return await asyncio.to_thread(self._backend.get, key)

    async def _current_rev(self, key: str) -> str | None:
        try:
            doc = await self.load(key)
        except DocumentNotFound:
            return None
        return doc.rev

    async def save(self, key: str, data: Any) -> str:
        """
        Write `data` as the new content of `key` and return the new revision.

        - absent document: create it
        - present: write with its revision token
        - conflict: re-read the latest revision and retry exactly once with the
          fresh token, overwriting whatever the concurrent writer stored
          (last-writer-wins, no merge)

        A second conflict propagates as DocumentConflict.
        """
        rev = await self._current_rev(key)
        try:
            new_rev = await asyncio.to_thread(self._backend.put, key, data, rev)
        except DocumentConflict as exc:
            logger.info("Conflict saving %s (had rev=%s, current=%s); retrying once", key, rev, exc.actual)
            fresh = await self._current_rev(key)
            new_rev = await asyncio.to_thread(self._backend.put, key, data, fresh)
        logger.debug("Saved %s rev=%s", key, new_rev)
        return new_rev
