"""
League Tier Manager

Resolves a user's membership for the current league week, creating the
league and membership lazily on first need.

Tier decision (from the user's most recent prior membership):
- no prior membership  → lowest tier
- prior PROMOTED       → one rung up (saturating at the top)
- prior DEMOTED        → one rung down (saturating at the bottom)
- otherwise            → same tier

Concurrency:
    League creation is an atomic get-or-create keyed by (tier, week_start),
    and memberships are unique per (user, week_start). When two first-time
    calls race, the loser's insert raises ConflictError; the transaction
    rolls back and conflict_retry re-runs it, which then finds the
    winner's membership.

Usage:
    from vocab_progress.services.league import LeagueTierManager

    manager = LeagueTierManager(repository)
    membership = await manager.resolve_membership(user_id)
"""

import logging
from datetime import datetime
from typing import Optional

from vocab_progress.config import settings
from vocab_progress.enums import LeagueResult, LeagueTier
from vocab_progress.middleware.error_handling import ValidationError
from vocab_progress.services.league.week_window import resolve_week_window
from vocab_progress.services.records import LeagueMembership, utc_now
from vocab_progress.services.repository import LeagueRepository
from vocab_progress.services.retry import conflict_retry

logger = logging.getLogger(__name__)


class LeagueTierManager:
    """Assigns users to weekly league cohorts."""

    def __init__(self, repository: LeagueRepository):
        """
        Initialize the tier manager.

        Args:
            repository: Persistence port for league data.
        """
        self.repo = repository

    @staticmethod
    def tier_for(prior: Optional[LeagueMembership]) -> LeagueTier:
        """Tier for a new week given the user's previous membership."""
        if prior is None or prior.league is None:
            return LeagueTier.lowest()
        if prior.result == LeagueResult.PROMOTED:
            return prior.league.tier.next()
        if prior.result == LeagueResult.DEMOTED:
            return prior.league.tier.previous()
        return prior.league.tier

    @conflict_retry
    async def resolve_membership(
        self, user_id: str, now: Optional[datetime] = None
    ) -> LeagueMembership:
        """
        Get or create the user's membership for the week containing `now`.

        Exactly one membership exists per (user, week) no matter how many
        callers race on the first request of the week.

        Args:
            user_id: League participant.
            now: Reference instant (defaults to current UTC time).

        Returns:
            LeagueMembership with its league attached.

        Raises:
            ValidationError: If the user is unknown.
        """
        week = resolve_week_window(now or utc_now())

        async with self.repo.transaction():
            membership = await self.repo.load_membership(user_id, week.start)
            if membership is not None:
                return membership

            if not await self.repo.user_exists(user_id):
                raise ValidationError(f"Unknown user {user_id}")

            prior = await self.repo.load_latest_membership(user_id, before=week.start)
            tier = self.tier_for(prior)

            league = await self.repo.create_league_if_absent(
                tier=tier,
                week_start=week.start,
                week_end=week.end,
                promotion_zone_size=settings.LEAGUE_PROMOTION_ZONE,
                demotion_zone_size=settings.LEAGUE_DEMOTION_ZONE,
            )
            membership = await self.repo.create_membership(user_id, league)

        if prior is None:
            logger.info(f"Placed {user_id} in {tier.value} for week {week.start:%Y-%m-%d}")
        else:
            logger.info(
                f"Placed {user_id} in {tier.value} for week {week.start:%Y-%m-%d} "
                f"(previous {prior.league.tier.value}, {prior.result.value})"
            )
        return membership
