# tests/test_task_store.py

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from task_calendar.tasks.backend import DocumentConflict, DocumentNotFound, SQLiteDocumentBackend, make_rev
from task_calendar.tasks.task_store import EVENTS_KEY, WEEKLY_GOALS_KEY, TaskStore

from .fakes import InMemoryDocumentBackend


def test_sqlite_backend_create_update_and_conflicts(tmp_path: Path) -> None:
    backend = SQLiteDocumentBackend(tmp_path / "calendar.sqlite3")

    with pytest.raises(DocumentNotFound):
        backend.get("events")

    rev1 = backend.put("events", [{"id": 1}])
    assert rev1.startswith("1-")
    doc = backend.get("events")
    assert doc.rev == rev1
    assert doc.data == [{"id": 1}]

    rev2 = backend.put("events", [{"id": 1}, {"id": 2}], rev1)
    assert rev2.startswith("2-")
    assert backend.get("events").data == [{"id": 1}, {"id": 2}]

    # Stale token.
    with pytest.raises(DocumentConflict) as exc:
        backend.put("events", [], rev1)
    assert exc.value.actual == rev2

    # Creating an existing key is a conflict too.
    with pytest.raises(DocumentConflict):
        backend.put("events", [])

    assert backend.count_documents() == 1
    assert backend.get("events").data == [{"id": 1}, {"id": 2}]


def test_sqlite_backend_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "calendar.sqlite3"
    SQLiteDocumentBackend(db).put("weeklyGoals", {"2025-02": "Ship it"})
    assert SQLiteDocumentBackend(db).get("weeklyGoals").data == {"2025-02": "Ship it"}


def test_make_rev_increments_generation() -> None:
    assert make_rev(None).startswith("1-")
    assert make_rev("7-abc").startswith("8-")
    assert make_rev("garbage").startswith("1-")


@pytest.mark.asyncio
async def test_save_creates_absent_document() -> None:
    backend = InMemoryDocumentBackend()
    store = TaskStore(backend)

    rev = await store.save(EVENTS_KEY, [])
    assert backend.data(EVENTS_KEY) == []
    assert (await store.load(EVENTS_KEY)).rev == rev


@pytest.mark.asyncio
async def test_save_retries_once_on_conflict_last_writer_wins() -> None:
    backend = InMemoryDocumentBackend()
    backend.seed(WEEKLY_GOALS_KEY, {"2025-01": "theirs"})
    backend.conflicts[WEEKLY_GOALS_KEY] = 1
    store = TaskStore(backend)

    await store.save(WEEKLY_GOALS_KEY, {"2025-01": "mine"})

    # No merge: our payload overwrites the concurrent writer's.
    assert backend.data(WEEKLY_GOALS_KEY) == {"2025-01": "mine"}
    assert backend.puts_for(WEEKLY_GOALS_KEY) == [{"2025-01": "mine"}]


@pytest.mark.asyncio
async def test_second_conflict_propagates() -> None:
    backend = InMemoryDocumentBackend()
    backend.seed(EVENTS_KEY, [])
    backend.conflicts[EVENTS_KEY] = 2
    store = TaskStore(backend)

    with pytest.raises(DocumentConflict):
        await store.save(EVENTS_KEY, [{"id": 1}])
    assert backend.puts == []


@pytest.mark.asyncio
async def test_store_over_sqlite_backend(tmp_path: Path) -> None:
    store = TaskStore(SQLiteDocumentBackend(tmp_path / "calendar.sqlite3"))

    with pytest.raises(DocumentNotFound):
        await store.load(EVENTS_KEY)

    await store.save(EVENTS_KEY, [{"id": 1}])
    await store.save(EVENTS_KEY, [{"id": 1}, {"id": 2}])
    doc = await store.load(EVENTS_KEY)
    assert doc.data == [{"id": 1}, {"id": 2}]
    assert doc.rev.startswith("2-")


@pytest.mark.asyncio
async def test_two_concurrent_saves_both_succeed() -> None:
    backend = InMemoryDocumentBackend()
    backend.seed(EVENTS_KEY, [])
    first, second = TaskStore(backend), TaskStore(backend)

    revs = await asyncio.gather(
        first.save(EVENTS_KEY, [{"id": 1}]),
        second.save(EVENTS_KEY, [{"id": 2}]),
    )

    assert len(set(revs)) == 2
    assert len(backend.puts_for(EVENTS_KEY)) == 2
    assert backend.data(EVENTS_KEY) in ([{"id": 1}], [{"id": 2}])
    assert (await first.load(EVENTS_KEY)).rev in revs
