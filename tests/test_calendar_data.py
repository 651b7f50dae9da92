# tests/test_calendar_data.py

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

import pytest

from task_calendar.tasks.calendar_data import CalendarData
from task_calendar.tasks.task_models import Task, TaskNotFoundError
from task_calendar.tasks.task_store import DAILY_GOALS_KEY, EVENTS_KEY, WEEKLY_GOALS_KEY, TaskStore

from .fakes import InMemoryDocumentBackend


def _task(task_id: int, day: int = 6, title: str = "Write report") -> Task:
    start = datetime(2025, 1, day, 9, 0, tzinfo=UTC)
    return Task(id=task_id, title=title, start=start, end=start.replace(hour=10))


@pytest.mark.asyncio
async def test_load_first_run_creates_empty_documents(
    data: CalendarData, backend: InMemoryDocumentBackend
) -> None:
    await data.load()

    assert data.tasks == ()
    assert data.weekly_goals == {}
    assert backend.data(EVENTS_KEY) == []
    assert backend.data(WEEKLY_GOALS_KEY) == {}
    assert backend.data(DAILY_GOALS_KEY) == {}


@pytest.mark.asyncio
async def test_load_reads_existing_and_skips_malformed(
    data: CalendarData, backend: InMemoryDocumentBackend
) -> None:
    backend.seed(EVENTS_KEY, [_task(1).to_dict(), {"id": 2, "title": "no start"}])
    backend.seed(WEEKLY_GOALS_KEY, {"2025-02": "Finish draft", "bad": 3})
    backend.seed(DAILY_GOALS_KEY, {"2025-01-06": "Inbox zero"})

    await data.load()

    assert [t.id for t in data.tasks] == [1]
    assert data.tasks[0] == _task(1)
    assert data.weekly_goals == {"2025-02": "Finish draft"}
    assert data.daily_goals == {"2025-01-06": "Inbox zero"}


@pytest.mark.asyncio
async def test_load_failure_starts_empty(
    data: CalendarData, backend: InMemoryDocumentBackend, caplog: pytest.LogCaptureFixture
) -> None:
    backend.seed(EVENTS_KEY, [_task(1).to_dict()])
    backend.fail_gets.add(EVENTS_KEY)

    with caplog.at_level(logging.ERROR, logger="task_calendar.tasks.calendar_data"):
        await data.load()

    assert data.tasks == ()
    assert "Failed to load events" in caplog.text


@pytest.mark.asyncio
async def test_task_changes_are_persisted_in_background(
    data: CalendarData, backend: InMemoryDocumentBackend
) -> None:
    await data.load()

    data.upsert_task(_task(1))
    data.upsert_task(_task(2, day=7))
    data.upsert_task(_task(1, title="Write final report"))
    await data.flush()

    stored = backend.data(EVENTS_KEY)
    assert [d["id"] for d in stored] == [1, 2]
    assert stored[0]["title"] == "Write final report"

    removed = data.remove_task(2)
    assert removed.id == 2
    await data.flush()
    assert [d["id"] for d in backend.data(EVENTS_KEY)] == [1]

    with pytest.raises(TaskNotFoundError):
        data.remove_task(99)


@pytest.mark.asyncio
async def test_goal_writes_are_debounced(data: CalendarData, backend: InMemoryDocumentBackend) -> None:
    await data.load()
    before = len(backend.puts_for(WEEKLY_GOALS_KEY))

    for text in ("F", "Fi", "Fin", "Finish draft"):
        data.set_weekly_goal("2025-02", text)

    # In-memory state is updated immediately.
    assert data.weekly_goals == {"2025-02": "Finish draft"}

    await asyncio.sleep(0.05)
    await data.flush()
    writes = backend.puts_for(WEEKLY_GOALS_KEY)[before:]
    assert writes == [{"2025-02": "Finish draft"}]


@pytest.mark.asyncio
async def test_empty_goal_text_removes_key(data: CalendarData, backend: InMemoryDocumentBackend) -> None:
    await data.load()
    data.set_daily_goal("2025-01-06", "Inbox zero")
    data.set_daily_goal("2025-01-06", "")
    await data.flush()

    assert data.daily_goals == {}
    assert backend.data(DAILY_GOALS_KEY) == {}


@pytest.mark.asyncio
async def test_flush_fires_pending_goal_timer() -> None:
    backend = InMemoryDocumentBackend()
    data = CalendarData(TaskStore(backend), tz=UTC, goal_debounce_seconds=60)
    await data.load()

    data.set_weekly_goal("2025-02", "Finish draft")
    await data.flush()

    assert backend.data(WEEKLY_GOALS_KEY) == {"2025-02": "Finish draft"}


@pytest.mark.asyncio
async def test_save_failure_is_logged_and_memory_kept(
    data: CalendarData, backend: InMemoryDocumentBackend, caplog: pytest.LogCaptureFixture
) -> None:
    await data.load()
    backend.fail_puts = True

    with caplog.at_level(logging.ERROR, logger="task_calendar.tasks.calendar_data"):
        data.upsert_task(_task(1))
        await data.flush()

    assert [t.id for t in data.tasks] == [1]
    assert "Background save of events failed" in caplog.text


@pytest.mark.asyncio
async def test_replace_all_overwrites_every_collection(
    data: CalendarData, backend: InMemoryDocumentBackend
) -> None:
    await data.load()
    data.upsert_task(_task(1))
    data.set_weekly_goal("2025-02", "old")

    data.replace_all([_task(5)], {"2025-03": "new"}, {"2025-01-13": "day"})
    await data.flush()

    assert [t.id for t in data.tasks] == [5]
    assert backend.data(WEEKLY_GOALS_KEY) == {"2025-03": "new"}
    assert backend.data(DAILY_GOALS_KEY) == {"2025-01-13": "day"}
    assert [d["id"] for d in backend.data(EVENTS_KEY)] == [5]


@pytest.mark.asyncio
async def test_failed_load_never_overwrites_stored_document(
    data: CalendarData, backend: InMemoryDocumentBackend, caplog: pytest.LogCaptureFixture
) -> None:
    backend.seed(EVENTS_KEY, [_task(1, title="precious").to_dict()])
    backend.fail_gets.add(EVENTS_KEY)
    await data.load()
    backend.fail_gets.clear()

    assert data.unreadable_keys == {EVENTS_KEY}
    with caplog.at_level(logging.WARNING, logger="task_calendar.tasks.calendar_data"):
        data.upsert_task(_task(2, title="new"))
        await data.flush()

    assert [d["title"] for d in backend.data(EVENTS_KEY)] == ["precious"]
    assert [t.title for t in data.tasks] == ["new"]
    assert "Not saving events" in caplog.text

    # Goals loaded fine and still persist.
    data.set_weekly_goal("2025-02", "Finish draft")
    await data.flush()
    assert backend.data(WEEKLY_GOALS_KEY) == {"2025-02": "Finish draft"}

    # A successful reload lifts the hold.
    await data.load()
    assert data.unreadable_keys == frozenset()
    data.upsert_task(_task(3, title="later"))
    await data.flush()
    assert [d["title"] for d in backend.data(EVENTS_KEY)] == ["precious", "later"]
