import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import (
    InvalidContentError,
    InvalidExpiresError,
    InvalidIdError,
    InvalidPasswordError,
    SnippetTimeoutError,
    UnauthorizedError,
)
from app.core.security import generate_snippet_id, get_password_hash, verify_password
from app.db.repositories.snippet_repository import SnippetRepository
from app.domains.snippets.entities import Snippet, as_utc, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnippetService:
    """Сервис для работы со сниппетами.

    Проверяет входные данные, хеширует и сверяет пароли, применяет правила
    срока жизни. Все операции принимают необязательный дедлайн в секундах.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.settings = settings
        self.clock = clock
        self.repository = SnippetRepository(session)

    async def create(
        self,
        content: str,
        password: str,
        expires_at: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> Snippet:
        """Создание нового сниппета"""
        return await self._with_deadline(self._create(content, password, expires_at), timeout)

    async def read(self, snippet_id: str, timeout: Optional[float] = None) -> Snippet:
        """Получение сниппета без хеша пароля"""
        self._check_id(snippet_id)
        return await self._with_deadline(self.repository.get(snippet_id, self.clock()), timeout)

    async def read_raw(self, snippet_id: str, timeout: Optional[float] = None) -> str:
        """Получение содержимого сниппета как есть, без проверки что это JSON"""
        snippet = await self.read(snippet_id, timeout=timeout)
        return snippet.content

    async def update(
        self,
        snippet_id: str,
        password: str,
        content: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        timeout: Optional[float] = None,
    ) -> Snippet:
        """Обновление содержимого и/или срока жизни после проверки пароля"""
        return await self._with_deadline(
            self._update(snippet_id, password, content, expires_at), timeout
        )

    async def delete(self, snippet_id: str, password: str, timeout: Optional[float] = None) -> None:
        """Удаление сниппета после проверки пароля"""
        await self._with_deadline(self._delete(snippet_id, password), timeout)

    async def _create(self, content: str, password: str, expires_at: Optional[datetime]) -> Snippet:
        if not content:
            raise InvalidContentError()
        self._check_password(password)

        now = self.clock()
        self._check_expires(expires_at, now)

        password_hash = await run_in_threadpool(
            get_password_hash, password, self.settings.password_hash_rounds
        )
        snippet = Snippet.create_snippet(
            id=generate_snippet_id(),
            content=content,
            password_hash=password_hash,
            now=now,
            expires_at=expires_at,
            ttl=self.settings.snippet_ttl,
        )

        created = await self.repository.create(snippet)
        logger.info(f"Snippet {created.id} created, expires at {created.expires_at.isoformat()}")
        return created

    async def _update(
        self,
        snippet_id: str,
        password: str,
        content: Optional[str],
        expires_at: Optional[datetime],
    ) -> Snippet:
        self._check_id(snippet_id)
        self._check_password(password)

        now = self.clock()
        self._check_expires(expires_at, now)

        snippet = await self._authorize(snippet_id, password, now)
        snippet.apply_update(now, content=content, expires_at=expires_at)

        updated = await self.repository.update(snippet)
        logger.info(f"Snippet {snippet_id} updated")
        return updated

    async def _delete(self, snippet_id: str, password: str) -> None:
        self._check_id(snippet_id)
        self._check_password(password)

        await self._authorize(snippet_id, password, self.clock())
        await self.repository.delete(snippet_id)
        logger.info(f"Snippet {snippet_id} deleted")

    async def _authorize(self, snippet_id: str, password: str, now: datetime) -> Snippet:
        """Загрузка сниппета с хешем и проверка пароля"""
        snippet = await self.repository.get_with_secret(snippet_id, now)
        verified = await run_in_threadpool(verify_password, password, snippet.password_hash)
        if not verified:
            logger.info(f"Password verification failed for snippet {snippet_id}")
            raise UnauthorizedError()
        return snippet

    @staticmethod
    def _check_id(snippet_id: str) -> None:
        if not snippet_id:
            raise InvalidIdError()

    @staticmethod
    def _check_password(password: str) -> None:
        if not password:
            raise InvalidPasswordError()
        if "\x00" in password:
            raise InvalidPasswordError(InvalidPasswordError.NUL_MESSAGE)

    @staticmethod
    def _check_expires(expires_at: Optional[datetime], now: datetime) -> None:
        if expires_at is not None and as_utc(expires_at) <= as_utc(now):
            raise InvalidExpiresError()

    @staticmethod
    async def _with_deadline(operation: Awaitable[T], timeout: Optional[float]) -> T:
        if timeout is None:
            return await operation
        try:
            return await asyncio.wait_for(operation, timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(f"Snippet operation exceeded its {timedelta(seconds=timeout)} deadline")
            raise SnippetTimeoutError(detail=f"deadline of {timeout}s exceeded") from exc
