from pydantic import BaseModel, Field, ConfigDict, model_serializer
from typing import Optional
from datetime import datetime

from app.domains.snippets.entities import Snippet


class SnippetCreate(BaseModel):
    """Схема для создания сниппета"""
    content: str = Field(default="", alias="json")
    password: str = ""
    expires: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class SnippetUpdate(BaseModel):
    """Схема для обновления сниппета. Новый пароль не принимается"""
    content: Optional[str] = Field(default=None, alias="json")
    password: str = ""
    expires: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class SnippetDelete(BaseModel):
    """Схема для удаления сниппета"""
    password: str = ""


class SnippetResponse(BaseModel):
    """Представление сниппета в ответе (без пароля)"""
    id: str
    content: str = Field(..., alias="json")
    created_at: datetime = Field(..., alias="createdAt")
    modified_at: datetime = Field(..., alias="modifiedAt")
    expires_at: datetime = Field(..., alias="expires")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entity(cls, snippet: Snippet) -> "SnippetResponse":
        return cls(
            id=snippet.id,
            json=snippet.content,
            createdAt=snippet.created_at,
            modifiedAt=snippet.modified_at,
            expires=snippet.expires_at,
        )


class SnippetEnvelope(BaseModel):
    """Успешный ответ: {"data": ..., "message"?: ...}"""
    data: Optional[SnippetResponse] = None
    message: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_empty_message(self, handler):
        payload = handler(self)
        if payload.get("message") is None:
            payload.pop("message", None)
        return payload


class ErrorResponse(BaseModel):
    """Ответ с ошибкой: стабильный код и сообщение"""
    error: str
    message: str
