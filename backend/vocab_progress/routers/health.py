"""
Health Check Endpoints

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Health with database and scheduler status
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from vocab_progress import __version__
from vocab_progress.config import settings
from vocab_progress.db.base import get_db
from vocab_progress.services.scheduler import get_scheduled_jobs, scheduler

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns a simple status response indicating the API is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": __version__,
    }


@router.get("/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """
    Detailed health check with dependency status.

    Checks connectivity to PostgreSQL and reports the close-out scheduler.
    """
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    try:
        await db.execute(text("SELECT 1"))
        health["dependencies"]["postgres"] = {"status": "healthy"}
    except Exception as e:
        health["dependencies"]["postgres"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    health["dependencies"]["scheduler"] = {
        "status": "running" if scheduler.running else "stopped",
        "jobs": get_scheduled_jobs(),
    }
    return health
