import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Настройка корневого логгера приложения"""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_mockj", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mockj = True
        root.addHandler(handler)

    # uvicorn пишет свой access-лог, запросы логирует middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
