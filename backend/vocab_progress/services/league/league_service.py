"""
League Service

Caller-facing league operations: the user's current league, awarding XP,
the leaderboard of the user's cohort, league history, tier metadata and
the weekly close-out run.

Usage:
    from vocab_progress.services.league import LeagueService

    service = LeagueService(repository)
    status = await service.get_my_league(user_id)
    award = await service.add_xp(user_id, 15, reason="quiz")
    rows = await service.get_leaderboard(user_id)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from vocab_progress.config import settings
from vocab_progress.enums import LeagueResult, LeagueTier
from vocab_progress.middleware.error_handling import NotFoundError, ValidationError
from vocab_progress.services.league.tier_manager import LeagueTierManager
from vocab_progress.services.league.xp_ledger import XPLedger
from vocab_progress.services.records import League, utc_now
from vocab_progress.services.repository import LeagueRepository

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"

# Display metadata per tier: (name, icon)
TIER_INFO: dict[LeagueTier, tuple[str, str]] = {
    LeagueTier.BRONZE: ("브론즈", "🥉"),
    LeagueTier.SILVER: ("실버", "🥈"),
    LeagueTier.GOLD: ("골드", "🥇"),
    LeagueTier.SAPPHIRE: ("사파이어", "💎"),
    LeagueTier.RUBY: ("루비", "💍"),
    LeagueTier.EMERALD: ("에메랄드", "💚"),
    LeagueTier.AMETHYST: ("자수정", "🔮"),
    LeagueTier.PEARL: ("진주", "⚪"),
    LeagueTier.OBSIDIAN: ("흑요석", "⚫"),
    LeagueTier.DIAMOND: ("다이아몬드", "💎"),
}


# ===========================================
# Read Models
# ===========================================


@dataclass
class LeagueStatus:
    """The caller's standing in their current weekly league."""

    tier: LeagueTier
    weekly_xp: int
    week_start: datetime
    week_end: datetime
    promotion_zone_size: int
    demotion_zone_size: int
    stay_zone_size: int


@dataclass
class XPAward:
    """Result of crediting XP to the caller's current membership."""

    success: bool
    current_xp: int
    added_xp: int
    reason: Optional[str] = None


@dataclass
class LeaderboardRow:
    rank: int
    user_id: str
    user_name: str
    xp: int
    is_current_user: bool


@dataclass
class LeagueHistoryEntry:
    week_start: datetime
    week_end: datetime
    tier: LeagueTier
    xp: int
    final_rank: Optional[int]
    result: LeagueResult


@dataclass
class TierInfo:
    tier: LeagueTier
    name: str
    icon: str
    next_league: Optional[LeagueTier]


# ===========================================
# Service
# ===========================================


class LeagueService:
    """
    Service for weekly league participation.

    Provides:
    - Current league status (membership resolved lazily)
    - XP awards
    - Leaderboard and history views
    - Tier metadata
    - Weekly close-out of finished leagues
    """

    def __init__(self, repository: LeagueRepository):
        """
        Initialize the league service.

        Args:
            repository: Persistence port for league data.
        """
        self.repo = repository
        self.tiers = LeagueTierManager(repository)
        self.ledger = XPLedger(repository)

    async def get_my_league(
        self, user_id: str, now: Optional[datetime] = None
    ) -> LeagueStatus:
        """Get the caller's league for the current week, joining one if needed."""
        membership = await self.tiers.resolve_membership(user_id, now)
        league = membership.league
        return LeagueStatus(
            tier=league.tier,
            weekly_xp=membership.weekly_xp,
            week_start=league.week_start,
            week_end=league.week_end,
            promotion_zone_size=league.promotion_zone_size,
            demotion_zone_size=league.demotion_zone_size,
            stay_zone_size=max(
                0,
                settings.LEAGUE_COHORT_SIZE
                - league.promotion_zone_size
                - league.demotion_zone_size,
            ),
        )

    async def add_xp(
        self,
        user_id: str,
        amount: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> XPAward:
        """
        Credit XP to the caller's membership for the current week.

        Raises:
            ValidationError: If amount is not positive or the user is unknown.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                "XP amount must be a positive integer", details={"amount": amount}
            )

        membership = await self.tiers.resolve_membership(user_id, now)
        total = await self.ledger.add_xp(membership.id, amount)

        logger.info(
            f"Awarded {amount} XP to {user_id}"
            + (f" for {reason}" if reason else "")
            + f" (week total {total})"
        )
        return XPAward(success=True, current_xp=total, added_xp=amount, reason=reason)

    async def get_leaderboard(
        self,
        user_id: str,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[LeaderboardRow]:
        """Rank the members of the caller's current league, best first."""
        if limit is None:
            limit = settings.LEADERBOARD_DEFAULT_LIMIT
        if limit < 1:
            raise ValidationError("Leaderboard limit must be positive")

        membership = await self.tiers.resolve_membership(user_id, now)
        ranked = await self.ledger.leaderboard(membership.league_id, limit)
        names = await self.repo.load_user_names([r.membership.user_id for r in ranked])

        return [
            LeaderboardRow(
                rank=r.rank,
                user_id=r.membership.user_id,
                user_name=names.get(r.membership.user_id) or ANONYMOUS_NAME,
                xp=r.membership.weekly_xp,
                is_current_user=r.membership.user_id == user_id,
            )
            for r in ranked
        ]

    async def get_history(
        self, user_id: str, page: int = 1, limit: Optional[int] = None
    ) -> list[LeagueHistoryEntry]:
        """Page through the caller's memberships, most recent week first."""
        if limit is None:
            limit = settings.LEAGUE_HISTORY_PAGE_SIZE
        if page < 1 or limit < 1:
            raise ValidationError(
                "Page and limit must be positive", details={"page": page, "limit": limit}
            )

        memberships = await self.repo.list_memberships_by_user(
            user_id, limit=limit, offset=(page - 1) * limit
        )
        return [
            LeagueHistoryEntry(
                week_start=m.league.week_start,
                week_end=m.league.week_end,
                tier=m.league.tier,
                xp=m.weekly_xp,
                final_rank=m.final_rank,
                result=m.result,
            )
            for m in memberships
        ]

    @staticmethod
    def get_tier_info(tier: str) -> TierInfo:
        """
        Look up display metadata for a tier (case-insensitive).

        Raises:
            NotFoundError: If the tier is not on the ladder.
        """
        try:
            key = LeagueTier(tier.strip().upper())
        except ValueError:
            raise NotFoundError(f"League tier {tier} not found")

        name, icon = TIER_INFO[key]
        next_league = key.next() if key != LeagueTier.highest() else None
        return TierInfo(tier=key, name=name, icon=icon, next_league=next_league)

    async def close_out_due_leagues(self, now: Optional[datetime] = None) -> list[League]:
        """
        Close every open league whose week ended before `now`.

        Each league is closed in its own transaction, so a run interrupted
        part way leaves the remaining leagues open for the next run.

        Returns:
            The leagues closed by this run.
        """
        now = now or utc_now()
        due = await self.repo.list_open_leagues(ending_before=now)
        if not due:
            logger.debug("No leagues due for close-out")
            return []

        closed = []
        for league in due:
            closed.append(await self.ledger.close_out_league(league.id, now))

        logger.info(f"League close-out finished: {len(closed)} leagues closed")
        return closed
