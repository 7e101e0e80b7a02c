"""API routers."""

from vocab_progress.routers import health, league, progress

__all__ = ["health", "league", "progress"]
