import uvicorn

from app.core.app_factory import create_app
from app.core.config import settings

app = create_app()


def run() -> None:
    """Serve ``app.main:app`` with uvicorn on the configured address."""
    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log.level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    run()
