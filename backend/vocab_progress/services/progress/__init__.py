"""
Review Progress Services

Services for SM-2 review scheduling and learner activity tracking.

Modules:
- sm2: SM-2 interval and ease factor scheduling
- mastery: Mastery label classification
- streak: Daily activity streak tracking
- review_service: Review submission and progress read models
- session_service: Study session start/end

Usage:
    from vocab_progress.services.progress import (
        ReviewService,
        StudySessionService,
        schedule,
    )
"""

from vocab_progress.services.progress.sm2 import (
    SchedulingState,
    ScheduleResult,
    schedule,
    validate_rating,
)
from vocab_progress.services.progress.mastery import classify
from vocab_progress.services.progress.streak import StreakUpdate, touch
from vocab_progress.services.progress.review_service import (
    ReviewHistoryEntry,
    ReviewService,
    ReviewSubmission,
    UserProgressOverview,
)
from vocab_progress.services.progress.session_service import StudySessionService

__all__ = [
    # Pure functions
    "SchedulingState",
    "ScheduleResult",
    "schedule",
    "validate_rating",
    "classify",
    "StreakUpdate",
    "touch",
    # Services
    "ReviewHistoryEntry",
    "ReviewService",
    "ReviewSubmission",
    "UserProgressOverview",
    "StudySessionService",
]
