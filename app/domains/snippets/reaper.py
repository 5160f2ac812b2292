import asyncio
import enum
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import SnippetError
from app.db.repositories.snippet_repository import SnippetRepository
from app.domains.snippets.entities import utcnow

logger = logging.getLogger(__name__)


class ReaperState(enum.Enum):
    IDLE = "idle"
    TICKING = "ticking"
    STOPPED = "stopped"


class SnippetReaper:
    """Фоновая задача, удаляющая сниппеты с истекшим сроком.

    Работает с собственной сессией на каждый проход и конкурирует за
    хранилище как обычный писатель. Ошибки хранилища пишутся в лог,
    следующий проход выполняется по расписанию.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = utcnow,
    ):
        if interval.total_seconds() <= 0:
            raise ValueError("Reaper interval must be positive")
        self.session_factory = session_factory
        self.interval = interval
        self.clock = clock
        self.state = ReaperState.IDLE
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        """Запуск цикла в текущем event loop"""
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        self.state = ReaperState.IDLE
        self._task = asyncio.create_task(self._run(), name="snippet-reaper")
        logger.info(f"Snippet reaper started, interval {self.interval}")

    async def stop(self) -> None:
        """Остановка: текущий проход, если он идет, завершается до STOPPED"""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        self.state = ReaperState.STOPPED
        logger.info("Snippet reaper stopped")

    async def tick(self) -> int:
        """Один проход очистки. Возвращает число удаленных записей"""
        self.state = ReaperState.TICKING
        try:
            async with self.session_factory() as session:
                removed = await SnippetRepository(session).reap_expired(self.clock())
        finally:
            self.state = ReaperState.IDLE

        if removed > 0:
            logger.info(f"Cleaned up {removed} expired snippets")
        return removed

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), self.interval.total_seconds())
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.tick()
            except SnippetError as exc:
                logger.error(f"Failed to cleanup expired snippets: {exc}")
            except Exception:
                logger.exception("Unexpected error in snippet reaper")
