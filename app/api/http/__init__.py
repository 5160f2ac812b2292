from app.api.http.health import router as health_router
from app.api.http.snippets import router as snippets_router

__all__ = [
    "health_router",
    "snippets_router"
]
