import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BackendError, SnippetConflictError, SnippetNotFoundError
from app.db.models.snippet import Snippet as SnippetModel

if TYPE_CHECKING:
    from app.domains.snippets.entities import Snippet

logger = logging.getLogger(__name__)


class SnippetRepository:
    """Репозиторий для работы со сниппетами.

    Каждая операция выполняется в своей транзакции и фиксируется до возврата.
    Записи с истекшим сроком считаются отсутствующими.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, snippet: "Snippet") -> "Snippet":
        """Создание нового сниппета"""
        stmt = insert(SnippetModel).values(
            id=snippet.id,
            content=snippet.content,
            password_hash=snippet.password_hash,
            created_at=snippet.created_at,
            modified_at=snippet.modified_at,
            expires_at=snippet.expires_at,
        )

        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.error(f"Snippet id collision: {snippet.id}")
            raise SnippetConflictError(detail=f"snippet {snippet.id} already exists") from exc
        except SQLAlchemyError as exc:
            await self._fail("create", snippet.id, exc)

        return snippet.public()

    async def get(self, snippet_id: str, now: datetime) -> "Snippet":
        """Получение сниппета без хеша пароля"""
        snippet = await self.get_with_secret(snippet_id, now)
        return snippet.public()

    async def get_with_secret(self, snippet_id: str, now: datetime) -> "Snippet":
        """Получение сниппета вместе с хешем пароля (только для изменяющих операций)"""
        try:
            result = await self.session.execute(
                select(SnippetModel)
                .where(
                    SnippetModel.id == snippet_id,
                    SnippetModel.expires_at > now,
                )
                # Данные из identity map могут быть устаревшими после update()
                .execution_options(populate_existing=True)
            )
            db_snippet = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            await self._fail("get", snippet_id, exc)

        if db_snippet is None:
            raise SnippetNotFoundError()
        return self._to_domain(db_snippet)

    async def update(self, snippet: "Snippet") -> "Snippet":
        """Обновление содержимого, хеша, времени изменения и срока жизни"""
        stmt = (
            update(SnippetModel)
            .where(SnippetModel.id == snippet.id)
            .values(
                content=snippet.content,
                password_hash=snippet.password_hash,
                modified_at=snippet.modified_at,
                expires_at=snippet.expires_at,
            )
        )

        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self._fail("update", snippet.id, exc)

        if result.rowcount == 0:
            raise SnippetNotFoundError()
        return snippet.public()

    async def delete(self, snippet_id: str) -> None:
        """Удаление сниппета"""
        stmt = delete(SnippetModel).where(SnippetModel.id == snippet_id)
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self._fail("delete", snippet_id, exc)

        if result.rowcount == 0:
            raise SnippetNotFoundError()

    async def reap_expired(self, now: datetime) -> int:
        """Физическое удаление всех сниппетов с expires_at <= now"""
        stmt = delete(SnippetModel).where(SnippetModel.expires_at <= now)
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self._fail("reap_expired", None, exc)
        return result.rowcount or 0

    async def _fail(self, operation: str, snippet_id, exc: Exception):
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            logger.exception(f"Rollback after failed {operation} also failed")
        logger.error(f"Storage failure during {operation} (id={snippet_id}): {exc}")
        raise BackendError(detail=f"{operation} failed: {exc}") from exc

    def _to_domain(self, db_snippet: SnippetModel) -> "Snippet":
        """Преобразование модели БД в доменную сущность"""
        from app.domains.snippets.entities import Snippet

        return Snippet(
            id=db_snippet.id,
            content=db_snippet.content,
            password_hash=db_snippet.password_hash,
            created_at=db_snippet.created_at,
            modified_at=db_snippet.modified_at,
            expires_at=db_snippet.expires_at,
        )
