from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import InvalidIdError
from app.domains.snippets.schemas import (
    SnippetCreate, SnippetUpdate, SnippetDelete, SnippetResponse, SnippetEnvelope,
    ErrorResponse
)
from app.domains.snippets.services import SnippetService

router = APIRouter(prefix="/api/json", tags=["snippets"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_snippet_service(request: Request, db: AsyncSession = Depends(get_db)) -> SnippetService:
    return SnippetService(db, request.app.state.settings, clock=request.app.state.clock)


def _timeout(request: Request) -> float:
    return request.app.state.settings.server_request_timeout.total_seconds()


@router.post(
    "",
    response_model=SnippetEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_snippet(
    payload: SnippetCreate,
    request: Request,
    service: SnippetService = Depends(get_snippet_service)
):
    """Создание нового сниппета"""
    snippet = await service.create(
        payload.content,
        payload.password,
        expires_at=payload.expires,
        timeout=_timeout(request)
    )
    return SnippetEnvelope(
        data=SnippetResponse.from_entity(snippet),
        message="JSON created successfully"
    )


@router.api_route("/", methods=["GET", "PUT", "DELETE"], include_in_schema=False)
async def missing_snippet_id():
    """Запрос без идентификатора: /api/json/"""
    raise InvalidIdError()


@router.get("/{snippet_id}", response_model=SnippetEnvelope, responses=_ERRORS)
async def get_snippet(
    snippet_id: str,
    request: Request,
    service: SnippetService = Depends(get_snippet_service)
):
    """Получение сниппета по идентификатору"""
    snippet = await service.read(snippet_id, timeout=_timeout(request))
    return SnippetEnvelope(data=SnippetResponse.from_entity(snippet))


@router.get(
    "/{snippet_id}/content",
    response_class=Response,
    responses={200: {"content": {"application/json": {}}}, **_ERRORS},
)
async def get_snippet_content(
    snippet_id: str,
    request: Request,
    service: SnippetService = Depends(get_snippet_service)
):
    """Содержимое сниппета как есть, с Content-Type: application/json"""
    content = await service.read_raw(snippet_id, timeout=_timeout(request))
    return Response(content=content, media_type="application/json")


@router.put(
    "/{snippet_id}",
    response_model=SnippetEnvelope,
    responses={401: {"model": ErrorResponse}, **_ERRORS},
)
async def update_snippet(
    snippet_id: str,
    payload: SnippetUpdate,
    request: Request,
    service: SnippetService = Depends(get_snippet_service)
):
    """Обновление содержимого и/или срока жизни сниппета"""
    snippet = await service.update(
        snippet_id,
        payload.password,
        content=payload.content,
        expires_at=payload.expires,
        timeout=_timeout(request)
    )
    return SnippetEnvelope(
        data=SnippetResponse.from_entity(snippet),
        message="JSON updated successfully"
    )


@router.delete(
    "/{snippet_id}",
    response_model=SnippetEnvelope,
    responses={401: {"model": ErrorResponse}, **_ERRORS},
)
async def delete_snippet(
    snippet_id: str,
    payload: SnippetDelete,
    request: Request,
    service: SnippetService = Depends(get_snippet_service)
):
    """Удаление сниппета"""
    await service.delete(snippet_id, payload.password, timeout=_timeout(request))
    return SnippetEnvelope(message="JSON deleted successfully")
