import asyncio
from datetime import timedelta

import pytest

from app.core.exceptions import BackendError, SnippetNotFoundError
from app.db.repositories.snippet_repository import SnippetRepository
from app.domains.snippets.reaper import ReaperState, SnippetReaper
from app.domains.snippets.services import SnippetService


async def _wait_for(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition was not met in time")
        await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_tick_removes_expired_snippets(session_factory, settings, clock):
    async with session_factory() as session:
        service = SnippetService(session, settings, clock=clock)
        short = await service.create("{}", "pw", expires_at=clock() + timedelta(seconds=2))
        kept = await service.create("{}", "pw")

    reaper = SnippetReaper(session_factory, interval=timedelta(hours=1), clock=clock)
    clock.advance(seconds=3)

    assert await reaper.tick() == 1
    assert await reaper.tick() == 0
    assert reaper.state is ReaperState.IDLE

    async with session_factory() as session:
        repo = SnippetRepository(session)
        with pytest.raises(SnippetNotFoundError):
            await repo.get(short.id, clock())
        assert (await repo.get(kept.id, clock())).id == kept.id


@pytest.mark.asyncio
async def test_loop_keeps_running_after_store_errors(session_factory, monkeypatch):
    calls = []

    async def failing_reap(self, now):
        calls.append(now)
        raise BackendError(detail="database is locked")

    monkeypatch.setattr(SnippetRepository, "reap_expired", failing_reap)

    reaper = SnippetReaper(session_factory, interval=timedelta(milliseconds=10))
    reaper.start()
    try:
        await _wait_for(lambda: len(calls) >= 3)
        assert reaper.state is not ReaperState.STOPPED
    finally:
        await reaper.stop()

    assert reaper.state is ReaperState.STOPPED


@pytest.mark.asyncio
async def test_stop_waits_for_running_tick(session_factory, monkeypatch):
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def slow_reap(self, now):
        started.set()
        await release.wait()
        finished.append(now)
        return 0

    monkeypatch.setattr(SnippetRepository, "reap_expired", slow_reap)

    reaper = SnippetReaper(session_factory, interval=timedelta(milliseconds=10))
    reaper.start()
    await asyncio.wait_for(started.wait(), 2)
    assert reaper.state is ReaperState.TICKING

    stopping = asyncio.create_task(reaper.stop())
    await asyncio.sleep(0.02)
    assert not stopping.done()

    release.set()
    await stopping

    assert len(finished) == 1
    assert reaper.state is ReaperState.STOPPED


@pytest.mark.asyncio
async def test_stop_before_first_tick(session_factory):
    reaper = SnippetReaper(session_factory, interval=timedelta(hours=1))
    reaper.start()

    await asyncio.wait_for(reaper.stop(), 1)

    assert reaper.state is ReaperState.STOPPED


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        SnippetReaper(None, interval=timedelta(0))
