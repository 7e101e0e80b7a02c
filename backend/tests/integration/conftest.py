"""
Integration Test Fixtures

Runs the SQLAlchemy repositories against a real database. By default a
throwaway SQLite file (via aiosqlite) is created per test, so no running
server is needed. Row locks are no-ops on SQLite; everything else (unique
constraints, foreign keys, version checks, ON CONFLICT inserts,
RETURNING) behaves as on PostgreSQL.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vocab_progress.db.base import Base
from vocab_progress.db.models_progress import User, Word


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory bound to a fresh schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'progress.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as db:
        db.add_all(
            [
                User(id="user-1", name="Alice"),
                User(id="user-2", name="Bob"),
                User(id="user-3"),
                Word(id="word-1", word="apple", definition="사과"),
                Word(id="word-2", word="river", definition="강"),
            ]
        )
        await db.commit()

    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A single session for tests that need only one."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def now() -> datetime:
    """A fixed Wednesday afternoon (UTC)."""
    return datetime(2024, 3, 13, 15, 30, tzinfo=timezone.utc)
