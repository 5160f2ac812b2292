from app.db.models.snippet import Snippet

__all__ = [
    "Snippet"
]
