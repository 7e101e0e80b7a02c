"""
Engine and Session Wiring

One async engine per process, pooled from config/default.yaml, and the
session factory shared by request handlers and the close-out job. Every
progress and league table hangs off the declarative Base defined here.

Usage:
    from vocab_progress.db.base import async_session_maker
    from vocab_progress.db.repository import SQLAlchemyLeagueRepository

    async with async_session_maker() as db:
        leagues = SQLAlchemyLeagueRepository(db)
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from vocab_progress.config import settings, yaml_config


POOL_DEFAULTS: dict[str, Any] = {"pool_size": 5, "max_overflow": 10, "pool_timeout": 30}
pool_options: dict[str, Any] = {
    key: yaml_config.get("database", {}).get(key, default)
    for key, default in POOL_DEFAULTS.items()
}

engine = create_async_engine(
    settings.POSTGRES_URL,
    **pool_options,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for the progress and league tables."""


# Table modules import Base, so they are loaded only once it exists
from vocab_progress.db import models_progress, models_league  # noqa: F401, E402


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a request-scoped session.

    Repositories open and commit their own transactions; anything left
    uncommitted when the route returns is committed here, and an error
    rolls it back.
    """
    async with async_session_maker() as db:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise
