from app.domains.snippets.entities import Snippet
from app.domains.snippets.schemas import (
    SnippetCreate, SnippetUpdate, SnippetDelete, SnippetResponse,
    SnippetEnvelope, ErrorResponse
)
from app.domains.snippets.services import SnippetService
from app.domains.snippets.reaper import SnippetReaper, ReaperState

__all__ = [
    "Snippet",
    "SnippetCreate", "SnippetUpdate", "SnippetDelete", "SnippetResponse",
    "SnippetEnvelope", "ErrorResponse",
    "SnippetService",
    "SnippetReaper", "ReaperState"
]
