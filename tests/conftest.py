from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from app.core.config import Settings
from app.core.db import create_engine, create_session_factory, init_db


class FakeClock:
    """Управляемые часы для проверок срока жизни"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_path=str(tmp_path / "mockj.db"),
        password_hash_rounds=4,
        rate_limit_enabled=False,
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def session_factory(settings):
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
