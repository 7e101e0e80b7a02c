"""
Persistence Port

Abstract repositories the progress and league services depend on. The
services never touch a database session directly; the SQLAlchemy
implementation lives in vocab_progress.db.repository and tests use an
in-memory fake.

Transactions:
    Every mutating service operation runs inside `transaction()`. The
    implementation commits when the block exits normally, rolls back when
    it raises, and translates storage failures into ConflictError or
    TransientStorageError.

Usage:
    async with repo.transaction():
        activity = await repo.load_activity_state(user_id, for_update=True)
        ...
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Optional

from vocab_progress.enums import LeagueTier
from vocab_progress.services.records import (
    ActivityState,
    League,
    LeagueMembership,
    MembershipOutcome,
    ReviewEvent,
    ReviewState,
    StudySession,
)


class UnitOfWork(ABC):
    """Anything that can scope a group of writes to one transaction."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work; commit on success, roll back on error."""


class ProgressRepository(UnitOfWork):
    """Storage for review states, review events, activity and study sessions."""

    # --- users and items ---

    @abstractmethod
    async def load_activity_state(
        self, user_id: str, for_update: bool = False
    ) -> Optional[ActivityState]:
        """
        Load the user's activity counters.

        With for_update=True the user row stays locked until the enclosing
        transaction ends, which serializes that user's submissions.
        Returns None for an unknown user.
        """

    @abstractmethod
    async def save_activity_state(self, state: ActivityState) -> None:
        """Persist streak counters and words-learned total."""

    @abstractmethod
    async def item_exists(self, item_id: str) -> bool:
        """Whether the vocabulary item is known."""

    # --- review state ---

    @abstractmethod
    async def load_review_state(
        self, user_id: str, item_id: str, for_update: bool = False
    ) -> Optional[ReviewState]:
        """Load the (user, item) review state, or None if never rated."""

    @abstractmethod
    async def save_review_state(self, state: ReviewState) -> ReviewState:
        """
        Insert or update a review state.

        Raises ConflictError when the stored version no longer matches
        state.version, or when a concurrent writer created the pair first.
        Returns the stored state with its new id and version.
        """

    @abstractmethod
    async def list_review_states(self, user_id: str) -> list[ReviewState]:
        """All review states of the user, ascending by next review date."""

    @abstractmethod
    async def list_due_review_states(
        self, user_id: str, now: datetime, limit: Optional[int] = None
    ) -> list[ReviewState]:
        """States with next_review_date <= now, ascending by next review date."""

    @abstractmethod
    async def count_mastered(self, user_id: str) -> int:
        """Number of the user's review states labelled MASTERED."""

    # --- review events ---

    @abstractmethod
    async def append_review_event(self, event: ReviewEvent) -> ReviewEvent:
        """Append an immutable review event."""

    @abstractmethod
    async def list_review_events(self, user_id: str, limit: int) -> list[ReviewEvent]:
        """Most recent review events first."""

    # --- study sessions ---

    @abstractmethod
    async def create_study_session(self, session: StudySession) -> StudySession:
        """Persist a newly started study session."""

    @abstractmethod
    async def load_study_session(self, session_id: str) -> Optional[StudySession]:
        """Load a study session by id."""

    @abstractmethod
    async def save_study_session(self, session: StudySession) -> StudySession:
        """Persist end-of-session fields."""


class LeagueRepository(UnitOfWork):
    """Storage for weekly leagues and memberships."""

    @abstractmethod
    async def user_exists(self, user_id: str) -> bool:
        """Whether the user is known."""

    @abstractmethod
    async def load_user_names(self, user_ids: list[str]) -> dict[str, Optional[str]]:
        """Display names keyed by user id."""

    @abstractmethod
    async def load_membership(
        self, user_id: str, week_start: datetime
    ) -> Optional[LeagueMembership]:
        """The user's membership for the given week, with its league attached."""

    @abstractmethod
    async def load_latest_membership(
        self, user_id: str, before: datetime
    ) -> Optional[LeagueMembership]:
        """
        The user's most recent membership in a week starting before `before`.

        Ordered by week start, then creation time, most recent first.
        """

    @abstractmethod
    async def create_league_if_absent(
        self,
        tier: LeagueTier,
        week_start: datetime,
        week_end: datetime,
        promotion_zone_size: int,
        demotion_zone_size: int,
    ) -> League:
        """
        Get-or-create the league for (tier, week_start).

        Must be atomic: concurrent callers all receive the same row.
        """

    @abstractmethod
    async def load_league(
        self, league_id: int, for_update: bool = False
    ) -> Optional[League]:
        """
        Load a league by id.

        With for_update=True the league row stays locked until the enclosing
        transaction ends, which serializes concurrent close-outs.
        """

    @abstractmethod
    async def create_membership(
        self, user_id: str, league: League
    ) -> LeagueMembership:
        """
        Create a PENDING membership with zero XP.

        Raises ConflictError if the user already holds a membership for
        league.week_start.
        """

    @abstractmethod
    async def increment_xp(self, membership_id: int, amount: int) -> int:
        """Atomically add XP and return the new weekly total."""

    @abstractmethod
    async def list_memberships_by_league_desc(
        self, league_id: int, limit: Optional[int] = None
    ) -> list[LeagueMembership]:
        """
        League members ordered by weekly XP descending.

        Ties go to the earlier membership (creation time, then id).
        """

    @abstractmethod
    async def list_memberships_by_user(
        self, user_id: str, limit: int, offset: int = 0
    ) -> list[LeagueMembership]:
        """The user's memberships, most recent week first, leagues attached."""

    @abstractmethod
    async def list_open_leagues(self, ending_before: datetime) -> list[League]:
        """Leagues not yet closed whose week ended before the given instant."""

    @abstractmethod
    async def save_close_out(
        self,
        league_id: int,
        outcomes: list[MembershipOutcome],
        closed_at: datetime,
    ) -> None:
        """Record final ranks and results, and mark the league closed."""
