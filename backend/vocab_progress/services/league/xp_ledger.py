"""
XP Ledger

Accumulates weekly experience points on league memberships, ranks league
members, and closes a league out at the end of its week.

Ranking:
    Weekly XP descending; ties go to the member who joined the league
    first (membership creation time, then id), so the order is total and
    stable across calls.

Close-out:
    The top promotion_zone_size members are PROMOTED, the bottom
    demotion_zone_size DEMOTED, the rest STAYED. Zones never overlap: in a
    league smaller than both zones combined, promotion is filled first.
    Closing a league twice is a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from vocab_progress.enums import LeagueResult
from vocab_progress.middleware.error_handling import NotFoundError, ValidationError
from vocab_progress.services.records import (
    League,
    LeagueMembership,
    MembershipOutcome,
    utc_now,
)
from vocab_progress.services.repository import LeagueRepository

logger = logging.getLogger(__name__)


@dataclass
class RankedMembership:
    """A league member with their 1-based leaderboard position."""

    rank: int
    membership: LeagueMembership


def assign_results(
    ranked: list[LeagueMembership],
    promotion_zone_size: int,
    demotion_zone_size: int,
) -> list[MembershipOutcome]:
    """
    Assign final ranks and results to members already in leaderboard order.

    Args:
        ranked: Memberships ordered best first.
        promotion_zone_size: Number of members promoted from the top.
        demotion_zone_size: Number of members demoted from the bottom.

    Returns:
        One MembershipOutcome per membership, in the same order.
    """
    total = len(ranked)
    promoted = min(max(promotion_zone_size, 0), total)
    demoted = min(max(demotion_zone_size, 0), total - promoted)

    outcomes = []
    for index, membership in enumerate(ranked):
        if index < promoted:
            result = LeagueResult.PROMOTED
        elif index >= total - demoted:
            result = LeagueResult.DEMOTED
        else:
            result = LeagueResult.STAYED
        outcomes.append(
            MembershipOutcome(
                membership_id=membership.id,
                final_rank=index + 1,
                result=result,
            )
        )
    return outcomes


class XPLedger:
    """Weekly XP accounting and league close-out."""

    def __init__(self, repository: LeagueRepository):
        self.repo = repository

    async def add_xp(self, membership_id: int, amount: int) -> int:
        """
        Atomically add XP to a membership.

        Args:
            membership_id: Membership to credit.
            amount: Positive number of points.

        Returns:
            The membership's new weekly XP total.

        Raises:
            ValidationError: If amount is not a positive integer.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                "XP amount must be a positive integer", details={"amount": amount}
            )

        async with self.repo.transaction():
            total = await self.repo.increment_xp(membership_id, amount)

        logger.debug(f"Membership {membership_id}: +{amount} XP -> {total}")
        return total

    async def leaderboard(
        self, league_id: int, limit: Optional[int] = None
    ) -> list[RankedMembership]:
        """Rank a league's members, best first."""
        members = await self.repo.list_memberships_by_league_desc(league_id, limit)
        return [
            RankedMembership(rank=position, membership=membership)
            for position, membership in enumerate(members, start=1)
        ]

    async def close_out_league(
        self, league_id: int, now: Optional[datetime] = None
    ) -> League:
        """
        Record final ranks and results for a finished league.

        Runs in a single transaction holding the league row lock, so a
        concurrent or repeated close-out sees closed_at and does nothing.

        Raises:
            NotFoundError: If the league does not exist.
            ValidationError: If the league's week has not ended yet.
        """
        now = now or utc_now()

        async with self.repo.transaction():
            league = await self.repo.load_league(league_id, for_update=True)
            if league is None:
                raise NotFoundError(f"League {league_id} not found")
            if league.is_closed:
                return league
            if now <= league.week_end:
                raise ValidationError(
                    f"League {league_id} cannot be closed before its week ends",
                    details={"week_end": league.week_end.isoformat()},
                )

            ranked = await self.repo.list_memberships_by_league_desc(league_id)
            outcomes = assign_results(
                ranked, league.promotion_zone_size, league.demotion_zone_size
            )
            await self.repo.save_close_out(league_id, outcomes, closed_at=now)

        promoted = sum(1 for o in outcomes if o.result == LeagueResult.PROMOTED)
        demoted = sum(1 for o in outcomes if o.result == LeagueResult.DEMOTED)
        logger.info(
            f"Closed {league.tier.value} league {league_id} "
            f"(week {league.week_start:%Y-%m-%d}): {len(outcomes)} members, "
            f"{promoted} promoted, {demoted} demoted"
        )

        league.closed_at = now
        return league
