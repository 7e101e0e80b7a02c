"""
Domain Records

Plain dataclasses exchanged between the services and the persistence port.
They carry no database session state, so the scheduling, classification
and league logic can run against any repository implementation.

All datetimes are timezone-aware UTC.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from vocab_progress.enums import LeagueResult, LeagueTier, LearningMethod, MasteryLevel

DEFAULT_EASE_FACTOR = 2.5


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ===========================================
# Review Progress
# ===========================================


@dataclass
class ReviewState:
    """
    Scheduling state of one item for one user.

    Created on the first rating of the pair and updated on every later one.
    `version` is the optimistic concurrency token checked on save.
    """

    user_id: str
    item_id: str
    next_review_date: datetime
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    last_review_date: Optional[datetime] = None
    mastery_level: MasteryLevel = MasteryLevel.NEW
    correct_count: int = 0
    incorrect_count: int = 0
    total_reviews: int = 0
    id: Optional[int] = None
    version: int = 0

    @classmethod
    def new(cls, user_id: str, item_id: str, now: datetime) -> "ReviewState":
        """Initial state for a pair that has never been rated."""
        return cls(user_id=user_id, item_id=item_id, next_review_date=now)


@dataclass
class ReviewEvent:
    """Immutable record of a single rating submission."""

    user_id: str
    item_id: str
    rating: int
    created_at: datetime
    learning_method: LearningMethod = LearningMethod.FLASHCARD
    session_id: Optional[str] = None
    response_time: Optional[int] = None  # milliseconds
    id: Optional[int] = None


@dataclass
class ActivityState:
    """Engagement counters kept on the user record."""

    user_id: str
    name: Optional[str] = None
    last_active_date: Optional[datetime] = None
    current_streak: int = 0
    longest_streak: int = 0
    total_words_learned: int = 0


@dataclass
class StudySession:
    """A bounded period of study started and ended by the learner."""

    id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # seconds
    words_studied: Optional[int] = None
    words_correct: Optional[int] = None


# ===========================================
# Leagues
# ===========================================


@dataclass
class League:
    """One weekly cohort at a single tier."""

    tier: LeagueTier
    week_start: datetime
    week_end: datetime
    promotion_zone_size: int
    demotion_zone_size: int
    id: Optional[int] = None
    closed_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None


@dataclass
class LeagueMembership:
    """A user's participation in one weekly league."""

    user_id: str
    league_id: int
    week_start: datetime
    weekly_xp: int = 0
    final_rank: Optional[int] = None
    result: LeagueResult = LeagueResult.PENDING
    created_at: datetime = field(default_factory=utc_now)
    id: Optional[int] = None
    league: Optional[League] = None


@dataclass
class MembershipOutcome:
    """Final standing assigned to a membership when its league closes."""

    membership_id: int
    final_rank: int
    result: LeagueResult
