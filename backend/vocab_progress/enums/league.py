"""
League Enums

Defines the weekly league tier ladder and membership outcomes.
"""

from enum import Enum


class LeagueTier(str, Enum):
    """
    Ordered tier ladder, lowest rung first.

    Membership moves at most one rung per week. next() and previous()
    saturate at the ends of the ladder instead of wrapping or raising.
    """

    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    SAPPHIRE = "SAPPHIRE"
    RUBY = "RUBY"
    EMERALD = "EMERALD"
    AMETHYST = "AMETHYST"
    PEARL = "PEARL"
    OBSIDIAN = "OBSIDIAN"
    DIAMOND = "DIAMOND"

    @classmethod
    def lowest(cls) -> "LeagueTier":
        return cls.BRONZE

    @classmethod
    def highest(cls) -> "LeagueTier":
        return cls.DIAMOND

    @property
    def rank(self) -> int:
        """Zero-based position on the ladder."""
        return list(LeagueTier).index(self)

    def next(self) -> "LeagueTier":
        ladder = list(LeagueTier)
        return ladder[min(self.rank + 1, len(ladder) - 1)]

    def previous(self) -> "LeagueTier":
        ladder = list(LeagueTier)
        return ladder[max(self.rank - 1, 0)]


class LeagueResult(str, Enum):
    """
    Outcome of a weekly membership.

    PENDING until the league is closed out at week end.
    """

    PENDING = "PENDING"
    PROMOTED = "PROMOTED"
    STAYED = "STAYED"
    DEMOTED = "DEMOTED"
