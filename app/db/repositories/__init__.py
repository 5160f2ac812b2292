from app.db.repositories.snippet_repository import SnippetRepository

__all__ = [
    "SnippetRepository"
]
