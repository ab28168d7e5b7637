"""FastAPI application factory for the MoneyLens service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import MoneyLensSettings, get_settings
from ..database import DatabaseManager
from ..seed import seed_demo_records
from .dependencies import Services
from .errors import register_exception_handlers
from .routes import ROUTERS

logger = logging.getLogger(__name__)


def create_app(
    settings: MoneyLensSettings | None = None,
    db: DatabaseManager | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Configuration; loaded from the environment when omitted
        db: Database to serve; opened from `settings.database.path` when omitted

    Returns:
        FastAPI: Application whose lifespan seeds the database on startup
            (if configured) and closes it on shutdown
    """
    settings = settings or get_settings()
    db = db or DatabaseManager(settings.database.path)
    services = Services.build(settings, db)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.seed.on_startup:
            db.seed_data(
                random_seed=settings.seed.random_seed,
                transaction_count=settings.seed.transaction_count,
                history_days=settings.seed.history_days,
            )
            seed_demo_records(db)
        logger.info(f"🚀 MoneyLens API ready on {settings.server.host}:{settings.server.port}")
        try:
            yield
        finally:
            db.close()

    app = FastAPI(
        title="MoneyLens API",
        description="Merchant spend aggregates, spending caps and simulated card locks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok", "timestamp": db.now().isoformat()}

    for router in ROUTERS:
        app.include_router(router)

    return app
