import uvicorn

from app.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        timeout_keep_alive=int(settings.server_idle_timeout.total_seconds()),
        log_config=None,
    )


if __name__ == "__main__":
    main()
