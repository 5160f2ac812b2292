import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_exception_handlers
from app.api.http.health import router as health_router
from app.api.http.snippets import router as snippets_router
from app.api.middleware import (
    ContentTypeMiddleware, RateLimiter, RateLimitMiddleware, RequestLoggingMiddleware
)
from app.core.config import Settings, get_settings
from app.core.db import create_engine, create_session_factory, init_db
from app.core.logging import setup_logging
from app.domains.snippets.entities import utcnow
from app.domains.snippets.reaper import SnippetReaper

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    settings.ensure_database_dir()
    await init_db(app.state.engine)

    reaper = SnippetReaper(
        app.state.session_factory,
        interval=settings.database_cleanup_interval,
        clock=app.state.clock,
    )
    app.state.reaper = reaper
    reaper.start()
    logger.info(f"mockj started, database at {settings.database_path}")

    try:
        yield
    finally:
        logger.info("Shutting down...")
        await reaper.stop()
        await app.state.engine.dispose()
        logger.info("Server exited")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Создание и настройка приложения"""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="mockj",
        description="Хранилище JSON-сниппетов с доступом по паролю",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.clock = utcnow
    app.state.engine = create_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    register_exception_handlers(app)

    # Последний добавленный middleware выполняется первым
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(ContentTypeMiddleware)
    if settings.rate_limit_enabled:
        limiter = RateLimiter(
            settings.rate_limit_requests,
            settings.rate_limit_window.total_seconds(),
        )
        app.state.rate_limiter = limiter
        app.add_middleware(RateLimitMiddleware, limiter=limiter)

    # Подключаем роутеры
    app.include_router(health_router)
    app.include_router(snippets_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "mockj API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()
