import logging
import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.errors import error_response
from app.core.exceptions import RateLimitedError, UnsupportedMediaTypeError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Ограничитель частоты запросов по ключу (IP клиента) с фиксированным окном.

    Таблица счетчиков защищена мьютексом; записи с истекшим окном
    вычищаются при каждой проверке, поэтому таблица не растет бесконечно.
    """

    def __init__(self, requests: int, window: float, clock: Callable[[], float] = time.monotonic):
        if requests < 1:
            raise ValueError("requests must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.requests = requests
        self.window = window
        self.clock = clock
        # key -> (начало окна, число запросов)
        self._clients: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """True если запрос можно пропустить"""
        now = self.clock()
        with self._lock:
            self._evict(now)

            started, count = self._clients.get(key, (now, 0))
            if count >= self.requests:
                return False
            self._clients[key] = (started, count + 1)
            return True

    def _evict(self, now: float) -> None:
        expired = [key for key, (started, _) in self._clients.items() if now - started > self.window]
        for key in expired:
            del self._clients[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client_ip):
            logger.warning(f"Rate limit exceeded for {client_ip}")
            exc = RateLimitedError()
            return error_response(exc.status_code, exc.code, exc.message)
        return await call_next(request)


class ContentTypeMiddleware(BaseHTTPMiddleware):
    """POST и PUT принимаются только с Content-Type: application/json"""

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT"):
            content_type = request.headers.get("content-type", "")
            media_type = content_type.split(";", 1)[0].strip().lower()
            if media_type != "application/json":
                exc = UnsupportedMediaTypeError()
                return error_response(exc.status_code, exc.code, exc.message)
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(f"{request.method} {request.url.path} {status_code} {duration_ms:.1f}ms")
