"""Unit tests for the league tier ladder and tier decisions."""

from datetime import datetime, timezone

import pytest

from vocab_progress.enums import LeagueResult, LeagueTier
from vocab_progress.services.league import LeagueTierManager
from vocab_progress.services.records import League, LeagueMembership

WEEK = datetime(2024, 3, 4, tzinfo=timezone.utc)


def _prior(tier: LeagueTier, result: LeagueResult) -> LeagueMembership:
    league = League(
        id=1,
        tier=tier,
        week_start=WEEK,
        week_end=WEEK,
        promotion_zone_size=10,
        demotion_zone_size=5,
    )
    return LeagueMembership(user_id="u", league_id=1, week_start=WEEK, result=result, league=league)


class TestLadder:
    def test_ladder_has_ten_rungs_in_order(self):
        assert [t.value for t in LeagueTier] == [
            "BRONZE",
            "SILVER",
            "GOLD",
            "SAPPHIRE",
            "RUBY",
            "EMERALD",
            "AMETHYST",
            "PEARL",
            "OBSIDIAN",
            "DIAMOND",
        ]

    def test_next_and_previous_saturate(self):
        assert LeagueTier.DIAMOND.next() == LeagueTier.DIAMOND
        assert LeagueTier.BRONZE.previous() == LeagueTier.BRONZE
        assert LeagueTier.GOLD.next() == LeagueTier.SAPPHIRE
        assert LeagueTier.GOLD.previous() == LeagueTier.SILVER

    def test_rank(self):
        assert LeagueTier.lowest().rank == 0
        assert LeagueTier.highest().rank == len(LeagueTier) - 1


class TestTierFor:
    def test_no_prior_membership_is_lowest(self):
        assert LeagueTierManager.tier_for(None) == LeagueTier.BRONZE

    @pytest.mark.parametrize(
        "tier,result,expected",
        [
            (LeagueTier.GOLD, LeagueResult.PROMOTED, LeagueTier.SAPPHIRE),
            (LeagueTier.GOLD, LeagueResult.DEMOTED, LeagueTier.SILVER),
            (LeagueTier.GOLD, LeagueResult.STAYED, LeagueTier.GOLD),
            (LeagueTier.GOLD, LeagueResult.PENDING, LeagueTier.GOLD),
            (LeagueTier.DIAMOND, LeagueResult.PROMOTED, LeagueTier.DIAMOND),
            (LeagueTier.BRONZE, LeagueResult.DEMOTED, LeagueTier.BRONZE),
        ],
    )
    def test_prior_result_moves_one_rung(self, tier, result, expected):
        assert LeagueTierManager.tier_for(_prior(tier, result)) == expected
