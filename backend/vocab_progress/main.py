"""
Vocab Progress API

FastAPI application serving review scheduling and weekly leagues.

Startup:
    - Configures logging
    - Starts the weekly league close-out scheduler (LEAGUE_CLOSE_OUT_ENABLED)

Run:
    uvicorn vocab_progress.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vocab_progress import __version__
from vocab_progress.config import settings
from vocab_progress.middleware.error_handling import setup_error_handling
from vocab_progress.routers import health, league, progress
from vocab_progress.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Keep SQL echo out of INFO logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop background services with the application."""
    if settings.LEAGUE_CLOSE_OUT_ENABLED:
        start_scheduler()
    logger.info(f"{settings.APP_NAME} {__version__} started")
    yield
    if settings.LEAGUE_CLOSE_OUT_ENABLED:
        stop_scheduler()
    logger.info(f"{settings.APP_NAME} stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    setup_logging(settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        lifespan=lifespan,
    )
    setup_error_handling(app, debug=settings.DEBUG)

    app.include_router(health.router)
    app.include_router(progress.router)
    app.include_router(league.router)
    return app


app = create_app()
