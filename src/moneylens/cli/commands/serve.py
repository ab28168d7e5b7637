"""Run the MoneyLens API server."""

import logging

import typer
import uvicorn

from moneylens.config import get_settings
from moneylens.logging import LoggingConfig, setup_logging

logger = logging.getLogger(__name__)


def serve(
    host: str | None = typer.Option(
        None, "--host", help="Interface to bind (default: from config)"
    ),
    port: int | None = typer.Option(
        None, "--port", "-p", help="Port to listen on (default: from config)"
    ),
    reload: bool = typer.Option(
        False, "--reload", help="Restart the server when source files change"
    ),
) -> None:
    """Start the HTTP API.

    Examples:
        moneylens serve
        moneylens serve --port 8080 --reload
    """
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    # Server runs log with the configured level and optional file handler
    setup_logging(LoggingConfig.from_settings(settings.logging, force_reconfigure=True))

    host = host or settings.server.host
    port = port or settings.server.port

    logger.info(f"🚀 Starting MoneyLens API on http://{host}:{port}")
    logger.info(f"   Database: {settings.database.path}")

    uvicorn.run(
        "moneylens.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.logging.level.lower(),
    )
