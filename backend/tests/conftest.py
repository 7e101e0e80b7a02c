"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE settings are first imported
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# The close-out scheduler must not start inside TestClient lifespans
os.environ["LEAGUE_CLOSE_OUT_ENABLED"] = "false"

from tests.fakes import InMemoryRepository, InMemoryStore  # noqa: E402


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    Overrides values from .env files to ensure test isolation.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "LEAGUE_CLOSE_OUT_ENABLED": "false",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Clock Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """A fixed Wednesday afternoon (UTC)."""
    return datetime(2024, 3, 13, 15, 30, tzinfo=timezone.utc)


# ============================================================================
# In-Memory Repository Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    """Shared in-memory tables with one learner and a few words."""
    store = InMemoryStore()
    store.add_user("user-1", name="Alice")
    store.add_user("user-2", name="Bob")
    store.add_user("user-3")
    for item_id in ("word-1", "word-2", "word-3"):
        store.add_item(item_id)
    return store


@pytest.fixture
def repo(store: InMemoryStore) -> InMemoryRepository:
    """A repository "session" over the shared store."""
    return InMemoryRepository(store)
