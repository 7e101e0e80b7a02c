"""
Pydantic Models for Weekly Leagues

Request and response schemas for league status, XP awards, leaderboards,
league history and tier metadata.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from vocab_progress.enums import LeagueResult, LeagueTier
from vocab_progress.models.base import StrictRequest, StrictResponse


class LeagueStatusResponse(StrictResponse):
    """
    The caller's current league.

    Attributes:
        tier: Tier of this week's league
        weekly_xp: XP earned this week
        week_start: Monday 00:00 UTC
        week_end: Sunday 23:59:59.999 UTC
        promotion_zone_size: Top ranks promoted at week end
        demotion_zone_size: Bottom ranks demoted at week end
        stay_zone_size: Nominal number of ranks that keep their tier
    """

    tier: LeagueTier
    weekly_xp: int
    week_start: datetime
    week_end: datetime
    promotion_zone_size: int
    demotion_zone_size: int
    stay_zone_size: int


class XPRequest(StrictRequest):
    """Request to award XP for a completed activity."""

    xp: int = Field(..., gt=0, description="Positive XP amount")
    reason: Optional[str] = Field(None, max_length=200)


class XPResponse(StrictResponse):
    success: bool
    current_xp: int
    added_xp: int
    reason: Optional[str] = None


class LeaderboardEntry(StrictResponse):
    rank: int
    user_id: str
    user_name: str
    xp: int
    is_current_user: bool


class LeaderboardResponse(StrictResponse):
    leaderboard: list[LeaderboardEntry]


class LeagueHistoryItem(StrictResponse):
    week_start: datetime
    week_end: datetime
    tier: LeagueTier
    xp: int
    final_rank: Optional[int] = None
    result: LeagueResult


class LeagueHistoryResponse(StrictResponse):
    history: list[LeagueHistoryItem]
    page: int
    limit: int


class TierInfoResponse(StrictResponse):
    tier: LeagueTier
    name: str
    icon: str
    next_league: Optional[LeagueTier] = None


class CloseOutResponse(StrictResponse):
    """Result of an operator-triggered close-out run."""

    closed: int
    league_ids: list[int]
