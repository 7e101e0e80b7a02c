"""
FastAPI Dependencies

Common dependencies for caller identity and repository wiring.

Authentication happens upstream: the gateway verifies the caller and
forwards their id in the USER_ID_HEADER header.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vocab_progress.config import settings
from vocab_progress.db.base import get_db
from vocab_progress.db.repository import (
    SQLAlchemyLeagueRepository,
    SQLAlchemyProgressRepository,
)
from vocab_progress.middleware.error_handling import AuthenticationError, AuthorizationError
from vocab_progress.services.repository import LeagueRepository, ProgressRepository


async def get_current_user_id(request: Request) -> str:
    """
    Resolve the authenticated caller from the forwarded user id header.

    Raises:
        AuthenticationError: 401 if the header is missing or blank
    """
    user_id: Optional[str] = request.headers.get(settings.USER_ID_HEADER)
    if not user_id or not user_id.strip():
        raise AuthenticationError("Authentication required")
    return user_id.strip()


async def get_operator_id(user_id: str = Depends(get_current_user_id)) -> str:
    """
    Resolve the caller and require them to be a configured operator.

    Raises:
        AuthorizationError: 403 if the caller is not in OPERATOR_USER_IDS
    """
    if user_id not in settings.OPERATOR_USER_IDS:
        raise AuthorizationError("Operator access required")
    return user_id


async def get_progress_repository(
    db: AsyncSession = Depends(get_db),
) -> ProgressRepository:
    """Get the review progress repository for this request."""
    return SQLAlchemyProgressRepository(db)


async def get_league_repository(
    db: AsyncSession = Depends(get_db),
) -> LeagueRepository:
    """Get the league repository for this request."""
    return SQLAlchemyLeagueRepository(db)


# Dependency that can be used in routers
CurrentUserId = Depends(get_current_user_id)
OperatorId = Depends(get_operator_id)
