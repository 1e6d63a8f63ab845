"""
FastAPI application exposing the stats engine's read models and admin tools.

Run with:
    uvicorn matchstats.main:app
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request

from matchstats.api.routes import admin, stats
from matchstats.core.config import settings
from matchstats.core.logging import configure_logging, get_logger
from matchstats.core.middleware import CorrelationIdMiddleware
from matchstats.core.scheduler import start_scheduler, stop_scheduler
from matchstats.services.stats_engine import StatsEngine

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def create_app(engine: Optional[StatsEngine] = None, enable_scheduler: bool = True) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Stats engine to serve (built from settings when omitted)
        enable_scheduler: Run the periodic backup job
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

        stats_engine = engine or StatsEngine.from_settings(settings)
        if not stats_engine.store.is_open:
            # Migrations must finish before anything is served
            stats_engine.open()
        app.state.stats_engine = stats_engine

        if enable_scheduler:
            await start_scheduler(stats_engine, interval_hours=settings.BACKUP_INTERVAL_HOURS)

        logger.info("Application started")
        yield

        if enable_scheduler:
            await stop_scheduler()
        stats_engine.close()
        logger.info("Shutting down application")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Match statistics engine: career stats, match history and backup-guarded maintenance",
        lifespan=lifespan,
    )
    app.add_middleware(CorrelationIdMiddleware)

    # API v1
    app.include_router(stats.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        stats_engine = getattr(request.app.state, "stats_engine", None)
        store_open = stats_engine is not None and stats_engine.store.is_open
        return {
            "status": "healthy" if store_open else "degraded",
            "version": settings.APP_VERSION,
            "match_running": bool(stats_engine and stats_engine.match_running),
        }

    return app


app = create_app()
