"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from vocab_progress.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    promotion_zone = settings.LEAGUE_PROMOTION_ZONE
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    APP_NAME: str = "Vocab Progress"
    DEBUG: bool = False

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "vocab"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "vocab"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for Alembic migrations."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Authentication is handled upstream; the gateway forwards the user id
    USER_ID_HEADER: str = "X-User-Id"
    # Users allowed to trigger league close-out by hand (JSON list in env)
    OPERATOR_USER_IDS: list[str] = []

    # Review scheduling
    DUE_REVIEWS_MAX_LIMIT: int = 500
    REVIEW_HISTORY_LIMIT: int = 200

    # Leagues
    LEAGUE_PROMOTION_ZONE: int = 10
    LEAGUE_DEMOTION_ZONE: int = 5
    LEAGUE_COHORT_SIZE: int = 50
    LEADERBOARD_DEFAULT_LIMIT: int = 50
    LEAGUE_HISTORY_PAGE_SIZE: int = 10

    # Weekly close-out job (UTC)
    LEAGUE_CLOSE_OUT_ENABLED: bool = True
    LEAGUE_CLOSE_OUT_CRON_DAY: str = "mon"
    LEAGUE_CLOSE_OUT_CRON_HOUR: int = 0
    LEAGUE_CLOSE_OUT_CRON_MINUTE: int = 5


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
