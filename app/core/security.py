import logging
import secrets
from functools import lru_cache

from passlib.context import CryptContext

from app.core.exceptions import HashError

logger = logging.getLogger(__name__)

DEFAULT_HASH_ROUNDS = 12
SNIPPET_ID_BYTES = 16
# bcrypt учитывает только первые 72 байта пароля
BCRYPT_MAX_BYTES = 72


@lru_cache
def get_pwd_context(rounds: int = DEFAULT_HASH_ROUNDS) -> CryptContext:
    """Контекст для хеширования паролей"""
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def _truncate(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str, rounds: int = DEFAULT_HASH_ROUNDS) -> str:
    """Хеширование пароля (алгоритм, стоимость и соль входят в результат)"""
    try:
        return get_pwd_context(rounds).hash(_truncate(password))
    except Exception as exc:
        logger.exception("Password hashing failed")
        raise HashError() from exc


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверка пароля. Для поврежденного хеша возвращает False"""
    if not plain_password or not hashed_password:
        return False
    try:
        return get_pwd_context().verify(_truncate(plain_password), hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be identified")
        return False


def generate_snippet_id() -> str:
    """Непредсказуемый URL-safe идентификатор (128 бит энтропии)"""
    return secrets.token_urlsafe(SNIPPET_ID_BYTES)
