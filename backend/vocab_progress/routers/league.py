"""
League API Router

Endpoints for weekly league participation.

Endpoints:
- GET /api/league/my - The caller's league for the current week
- GET /api/league/leaderboard - Ranked members of the caller's league
- GET /api/league/history - The caller's past leagues
- GET /api/league/info/{tier} - Tier display metadata
- POST /api/league/xp - Award XP to the caller
- POST /api/league/close-out - Close every finished league (operator trigger)
"""

import logging

from fastapi import APIRouter, Depends, Query

from vocab_progress.dependencies import CurrentUserId, OperatorId, get_league_repository
from vocab_progress.models.league import (
    CloseOutResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LeagueHistoryItem,
    LeagueHistoryResponse,
    LeagueStatusResponse,
    TierInfoResponse,
    XPRequest,
    XPResponse,
)
from vocab_progress.services.league import LeagueService
from vocab_progress.services.repository import LeagueRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/league", tags=["league"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_league_service(
    repository: LeagueRepository = Depends(get_league_repository),
) -> LeagueService:
    """Get league service."""
    return LeagueService(repository)


# ===========================================
# Endpoints
# ===========================================


@router.get("/my", response_model=LeagueStatusResponse)
async def get_my_league(
    user_id: str = CurrentUserId,
    service: LeagueService = Depends(get_league_service),
) -> LeagueStatusResponse:
    """
    Get the caller's league for the current week.

    Joins a league on the first request of the week, placing the caller
    one tier up or down according to last week's result.
    """
    status = await service.get_my_league(user_id)
    return LeagueStatusResponse.model_validate(status)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=100, description="Maximum rows"),
    user_id: str = CurrentUserId,
    service: LeagueService = Depends(get_league_service),
) -> LeaderboardResponse:
    """Get the leaderboard of the caller's current league."""
    rows = await service.get_leaderboard(user_id, limit=limit)
    return LeaderboardResponse(
        leaderboard=[LeaderboardEntry.model_validate(row) for row in rows]
    )


@router.get("/history", response_model=LeagueHistoryResponse)
async def get_league_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = CurrentUserId,
    service: LeagueService = Depends(get_league_service),
) -> LeagueHistoryResponse:
    """Get the caller's league history, most recent week first."""
    entries = await service.get_history(user_id, page=page, limit=limit)
    return LeagueHistoryResponse(
        history=[LeagueHistoryItem.model_validate(e) for e in entries],
        page=page,
        limit=limit,
    )


@router.get("/info/{tier}", response_model=TierInfoResponse)
async def get_tier_info(tier: str) -> TierInfoResponse:
    """Get display metadata for a tier (case-insensitive)."""
    return TierInfoResponse.model_validate(LeagueService.get_tier_info(tier))


@router.post("/xp", response_model=XPResponse)
async def add_xp(
    request: XPRequest,
    user_id: str = CurrentUserId,
    service: LeagueService = Depends(get_league_service),
) -> XPResponse:
    """Award XP to the caller for a completed learning activity."""
    award = await service.add_xp(user_id, request.xp, reason=request.reason)
    return XPResponse.model_validate(award)


@router.post("/close-out", response_model=CloseOutResponse)
async def close_out_leagues(
    operator_id: str = OperatorId,
    service: LeagueService = Depends(get_league_service),
) -> CloseOutResponse:
    """
    Close every league whose week has ended.

    Restricted to OPERATOR_USER_IDS. Normally run by the weekly scheduler;
    safe to call repeatedly.
    """
    closed = await service.close_out_due_leagues()
    logger.info(f"Manual close-out by {operator_id} closed {len(closed)} leagues")
    return CloseOutResponse(closed=len(closed), league_ids=[league.id for league in closed])
