from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import BackendError, SnippetConflictError, SnippetNotFoundError
from app.db.models.snippet import Snippet as SnippetModel
from app.db.repositories.snippet_repository import SnippetRepository
from app.domains.snippets.entities import Snippet


def _snippet(clock, snippet_id="snippet-0000000000000001", content='{"a":1}', **kwargs) -> Snippet:
    return Snippet.create_snippet(
        id=snippet_id,
        content=content,
        password_hash="$2b$04$" + "x" * 53,
        now=clock(),
        **kwargs,
    )


async def _count(session) -> int:
    result = await session.execute(select(func.count(SnippetModel.id)))
    return result.scalar()


@pytest.mark.asyncio
async def test_create_and_get_hides_password_hash(session, clock):
    repo = SnippetRepository(session)
    created = await repo.create(_snippet(clock))

    fetched = await repo.get(created.id, clock())

    assert fetched.content == '{"a":1}'
    assert fetched.password_hash == ""
    assert fetched.created_at == clock()
    assert fetched.expires_at == clock() + timedelta(days=60)


@pytest.mark.asyncio
async def test_get_with_secret_returns_hash(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock))

    fetched = await repo.get_with_secret("snippet-0000000000000001", clock())

    assert fetched.password_hash.startswith("$2b$04$")


@pytest.mark.asyncio
async def test_timestamps_come_back_as_utc(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock))

    fetched = await repo.get("snippet-0000000000000001", clock())

    assert fetched.created_at.tzinfo is not None
    assert fetched.created_at.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_expired_snippet_is_not_found_before_reaping(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock, expires_at=clock() + timedelta(seconds=2)))

    clock.advance(seconds=2)

    with pytest.raises(SnippetNotFoundError):
        await repo.get("snippet-0000000000000001", clock())
    with pytest.raises(SnippetNotFoundError):
        await repo.get_with_secret("snippet-0000000000000001", clock())
    # Запись физически еще на месте
    assert await _count(session) == 1


@pytest.mark.asyncio
async def test_missing_snippet_is_not_found(session, clock):
    with pytest.raises(SnippetNotFoundError):
        await SnippetRepository(session).get("nope", clock())


@pytest.mark.asyncio
async def test_duplicate_id_is_a_conflict(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock, content="first"))

    with pytest.raises(SnippetConflictError) as exc_info:
        await repo.create(_snippet(clock, content="second"))

    assert isinstance(exc_info.value, BackendError)
    fetched = await repo.get("snippet-0000000000000001", clock())
    assert fetched.content == "first"


@pytest.mark.asyncio
async def test_update_writes_mutable_fields_only(session, clock):
    repo = SnippetRepository(session)
    original = await repo.create(_snippet(clock))

    snippet = await repo.get_with_secret(original.id, clock())
    clock.advance(minutes=5)
    snippet.apply_update(clock(), content='{"b":2}', expires_at=clock() + timedelta(days=1))
    await repo.update(snippet)

    fetched = await repo.get(original.id, clock())
    assert fetched.content == '{"b":2}'
    assert fetched.modified_at == clock()
    assert fetched.expires_at == clock() + timedelta(days=1)
    assert fetched.created_at == original.created_at


@pytest.mark.asyncio
async def test_update_missing_snippet_is_not_found(session, clock):
    with pytest.raises(SnippetNotFoundError):
        await SnippetRepository(session).update(_snippet(clock, snippet_id="missing"))


@pytest.mark.asyncio
async def test_delete_is_not_repeatable(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock))

    await repo.delete("snippet-0000000000000001")

    with pytest.raises(SnippetNotFoundError):
        await repo.get("snippet-0000000000000001", clock())
    with pytest.raises(SnippetNotFoundError):
        await repo.delete("snippet-0000000000000001")


@pytest.mark.asyncio
async def test_reap_expired_removes_only_expired_and_is_idempotent(session, clock):
    repo = SnippetRepository(session)
    await repo.create(_snippet(clock, snippet_id="short-1", expires_at=clock() + timedelta(seconds=1)))
    await repo.create(_snippet(clock, snippet_id="short-2", expires_at=clock() + timedelta(seconds=2)))
    await repo.create(_snippet(clock, snippet_id="long-1"))

    clock.advance(seconds=2)

    assert await repo.reap_expired(clock()) == 2
    assert await repo.reap_expired(clock()) == 0
    assert await _count(session) == 1
    assert (await repo.get("long-1", clock())).id == "long-1"


@pytest.mark.asyncio
async def test_engine_failures_become_backend_errors(session, clock, monkeypatch):
    repo = SnippetRepository(session)

    async def failing_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "execute", failing_execute)

    with pytest.raises(BackendError):
        await repo.get("snippet-0000000000000001", clock())
    with pytest.raises(BackendError):
        await repo.reap_expired(clock())
