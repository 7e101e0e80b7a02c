"""
Centralized enum definitions for the application.

All enums are organized by domain:
- progress.py: Mastery levels and learning methods
- league.py: League tier ladder and weekly results

Usage:
    from vocab_progress.enums import LeagueTier, MasteryLevel
"""

from vocab_progress.enums.progress import (
    LearningMethod,
    MasteryLevel,
)
from vocab_progress.enums.league import (
    LeagueResult,
    LeagueTier,
)

__all__ = [
    # Progress enums
    "LearningMethod",
    "MasteryLevel",
    # League enums
    "LeagueResult",
    "LeagueTier",
]
