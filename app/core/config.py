import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")
_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def parse_duration(value):
    """Разбор длительности в формате Go ("1h30m", "15s", "500ms", "60d")"""
    if isinstance(value, (timedelta, int, float)) or value is None:
        return value

    raw = str(value).strip().lower()
    if not raw:
        return value

    # Число без единиц - секунды
    try:
        return timedelta(seconds=float(raw))
    except ValueError:
        pass

    parts = _DURATION_PART.findall(raw)
    if not parts or "".join(num + unit for num, unit in parts) != raw:
        # ISO-8601 ("PT1H") и прочее оставляем pydantic
        return value

    seconds = sum(float(num) * _DURATION_UNITS[unit] for num, unit in parts)
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    # Сервер
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    # SERVER_READ_TIMEOUT/SERVER_WRITE_TIMEOUT - прежние имена переменных
    server_request_timeout: timedelta = Field(
        default=timedelta(seconds=15),
        validation_alias=AliasChoices(
            "server_request_timeout", "server_write_timeout", "server_read_timeout"
        ),
    )
    server_idle_timeout: timedelta = timedelta(seconds=60)

    # База данных
    database_path: str = "./data/mockj.db"
    database_cleanup_interval: timedelta = timedelta(hours=1)
    database_pool_size: int = Field(
        default=5,
        validation_alias=AliasChoices("database_pool_size", "database_max_open_conns"),
    )
    database_echo: bool = False

    # Ограничение частоты запросов
    rate_limit_requests: int = 100
    rate_limit_window: timedelta = timedelta(minutes=1)
    rate_limit_enabled: bool = True

    # Сниппеты
    snippet_ttl: timedelta = timedelta(days=60)
    password_hash_rounds: int = 12

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}

    @field_validator(
        "server_request_timeout",
        "server_idle_timeout",
        "database_cleanup_interval",
        "rate_limit_window",
        "snippet_ttl",
        mode="before",
    )
    @classmethod
    def validate_duration(cls, v):
        return parse_duration(v)

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_rounds(cls, v):
        if not 4 <= v <= 31:
            raise ValueError("PASSWORD_HASH_ROUNDS must be between 4 and 31")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.database_path}"

    @property
    def server_addr(self) -> str:
        return f"{self.server_host}:{self.server_port}"

    def ensure_database_dir(self) -> None:
        """Создание каталога для файла базы данных"""
        Path(self.database_path).expanduser().parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
