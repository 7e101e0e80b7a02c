"""
League Services

Weekly league cohorts with promotion and demotion between tiers.

Modules:
- week_window: Monday-first UTC week boundaries
- tier_manager: Weekly membership resolution and tier decisions
- xp_ledger: XP accounting, ranking and close-out
- league_service: Caller-facing league operations

Usage:
    from vocab_progress.services.league import LeagueService, resolve_week_window
"""

from vocab_progress.services.league.week_window import WeekWindow, resolve_week_window
from vocab_progress.services.league.tier_manager import LeagueTierManager
from vocab_progress.services.league.xp_ledger import (
    RankedMembership,
    XPLedger,
    assign_results,
)
from vocab_progress.services.league.league_service import (
    TIER_INFO,
    LeaderboardRow,
    LeagueHistoryEntry,
    LeagueService,
    LeagueStatus,
    TierInfo,
    XPAward,
)

__all__ = [
    "WeekWindow",
    "resolve_week_window",
    "LeagueTierManager",
    "RankedMembership",
    "XPLedger",
    "assign_results",
    "TIER_INFO",
    "LeaderboardRow",
    "LeagueHistoryEntry",
    "LeagueService",
    "LeagueStatus",
    "TierInfo",
    "XPAward",
]
