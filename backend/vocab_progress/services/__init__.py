"""Services package for review progress, weekly leagues, and scheduling."""

from vocab_progress.services.league import LeagueService
from vocab_progress.services.progress import ReviewService, StudySessionService

__all__ = [
    "LeagueService",
    "ReviewService",
    "StudySessionService",
]
