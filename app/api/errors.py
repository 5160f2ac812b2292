import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import SnippetError

logger = logging.getLogger(__name__)

# Коды для ошибок самого FastAPI/Starlette (роутинг, методы)
_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "invalid_request",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
}


def error_response(status_code: int, code: str, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": code, "message": message},
        headers=headers,
    )


async def snippet_error_handler(request: Request, exc: SnippetError) -> JSONResponse:
    if exc.internal:
        logger.error(
            f"{request.method} {request.url.path} failed with {exc.code}: {exc}",
            exc_info=exc.__cause__,
        )
    return error_response(exc.status_code, exc.code, exc.public_message())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Invalid request body for {request.method} {request.url.path}: {exc.errors()}")
    return error_response(status.HTTP_400_BAD_REQUEST, "invalid_request", "Invalid JSON body")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return error_response(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Подключение обработчиков, переводящих ошибки в конверт {error, message}"""
    app.add_exception_handler(SnippetError, snippet_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
