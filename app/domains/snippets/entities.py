from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_TTL = timedelta(days=60)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Приведение времени к UTC; время без зоны считается UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Snippet:
    """Сущность сниппета: содержимое, хеш пароля и время жизни"""

    def __init__(
        self,
        id: str,
        content: str,
        password_hash: str,
        created_at: datetime,
        modified_at: datetime,
        expires_at: datetime,
    ):
        self.id = id
        self.content = content
        self.password_hash = password_hash
        self.created_at = as_utc(created_at)
        self.modified_at = as_utc(modified_at)
        self.expires_at = as_utc(expires_at)

    @classmethod
    def create_snippet(
        cls,
        id: str,
        content: str,
        password_hash: str,
        now: datetime,
        expires_at: Optional[datetime] = None,
        ttl: timedelta = DEFAULT_TTL,
    ) -> "Snippet":
        """Создание нового сниппета"""
        now = as_utc(now)
        return cls(
            id=id,
            content=content,
            password_hash=password_hash,
            created_at=now,
            modified_at=now,
            expires_at=as_utc(expires_at) or now + ttl,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= as_utc(now)

    def apply_update(
        self,
        now: datetime,
        content: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> None:
        """Частичное обновление; пароль не меняется"""
        if content is not None:
            self.content = content
        if expires_at is not None:
            self.expires_at = as_utc(expires_at)
        # modified_at не уходит назад даже при сдвиге часов
        self.modified_at = max(as_utc(now), self.modified_at)

    def public(self) -> "Snippet":
        """Копия без хеша пароля"""
        return Snippet(
            id=self.id,
            content=self.content,
            password_hash="",
            created_at=self.created_at,
            modified_at=self.modified_at,
            expires_at=self.expires_at,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Snippet):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"Snippet(id={self.id}, modified_at={self.modified_at}, expires_at={self.expires_at})"
