"""
Review Service

Runs a review submission end to end against the persistence port:
SM-2 scheduling → mastery classification → streak tracking, plus the read
models for due reviews, progress overview and review history.

Concurrency:
    A submission locks the user's activity row first (for_update=True) and
    the (user, item) review state second, always in that order, so two
    submissions for the same pair cannot both read-modify-write the same
    prior state. Review states also carry an optimistic version; a stale
    save or a duplicate first insert raises ConflictError, and the whole
    submission is retried once via conflict_retry.

Usage:
    from vocab_progress.services.progress import ReviewService

    service = ReviewService(repository)
    result = await service.submit_review(user_id, item_id, rating=4)
    due = await service.get_due_reviews(user_id)
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from vocab_progress.config import settings
from vocab_progress.enums import LearningMethod
from vocab_progress.middleware.error_handling import ValidationError
from vocab_progress.services.progress.mastery import classify
from vocab_progress.services.progress.sm2 import (
    PASSING_RATING,
    SchedulingState,
    schedule,
    validate_rating,
)
from vocab_progress.services.progress.streak import touch
from vocab_progress.services.records import (
    ActivityState,
    ReviewEvent,
    ReviewState,
    utc_now,
)
from vocab_progress.services.repository import ProgressRepository
from vocab_progress.services.retry import conflict_retry

logger = logging.getLogger(__name__)


@dataclass
class ReviewSubmission:
    """Outcome of a submitted review."""

    progress: ReviewState
    next_review_date: datetime
    activity: ActivityState


@dataclass
class UserProgressOverview:
    """Every review state of a user together with their activity counters."""

    progress: list[ReviewState]
    stats: ActivityState


@dataclass
class ReviewHistoryEntry:
    """A past review event with the item's current due date."""

    event: ReviewEvent
    next_review_date: Optional[datetime]


class ReviewService:
    """
    Service for submitting reviews and reading review progress.

    Provides:
    - Review submission (schedule, classify, append event, touch streak)
    - Due review queries
    - Progress overview and review history
    """

    def __init__(self, repository: ProgressRepository):
        """
        Initialize the review service.

        Args:
            repository: Persistence port for progress data.
        """
        self.repo = repository

    @conflict_retry
    async def submit_review(
        self,
        user_id: str,
        item_id: str,
        rating: int,
        response_time: Optional[int] = None,
        session_id: Optional[str] = None,
        learning_method: LearningMethod = LearningMethod.FLASHCARD,
        now: Optional[datetime] = None,
    ) -> ReviewSubmission:
        """
        Record a 1-5 rating for an item and reschedule it.

        Args:
            user_id: Reviewing user.
            item_id: Reviewed vocabulary item.
            rating: Recall rating in [1, 5].
            response_time: Optional response time in milliseconds.
            session_id: Optional study session the review belongs to.
            learning_method: How the item was presented.
            now: Review instant (defaults to current UTC time).

        Returns:
            ReviewSubmission with the updated progress and next review date.

        Raises:
            ValidationError: If the rating is out of range, the user or
                item is unknown, or the session is not one of the user's.
        """
        validate_rating(rating)
        now = now or utc_now()

        async with self.repo.transaction():
            activity = await self.repo.load_activity_state(user_id, for_update=True)
            if activity is None:
                raise ValidationError(f"Unknown user {user_id}")
            if not await self.repo.item_exists(item_id):
                raise ValidationError(f"Unknown item {item_id}")
            if session_id is not None:
                session = await self.repo.load_study_session(session_id)
                if session is None or session.user_id != user_id:
                    raise ValidationError(f"Unknown study session {session_id}")

            prior = await self.repo.load_review_state(user_id, item_id, for_update=True)
            if prior is None:
                prior = ReviewState.new(user_id, item_id, now)

            result = schedule(
                rating,
                SchedulingState(
                    ease_factor=prior.ease_factor,
                    interval=prior.interval,
                    repetitions=prior.repetitions,
                ),
                now,
            )
            recalled = rating >= PASSING_RATING

            updated = replace(
                prior,
                ease_factor=result.ease_factor,
                interval=result.interval,
                repetitions=result.repetitions,
                next_review_date=result.next_review_date,
                last_review_date=now,
                mastery_level=classify(
                    result.repetitions, result.ease_factor, prior.mastery_level
                ),
                correct_count=prior.correct_count + (1 if recalled else 0),
                incorrect_count=prior.incorrect_count + (0 if recalled else 1),
                total_reviews=prior.total_reviews + 1,
            )
            saved = await self.repo.save_review_state(updated)

            await self.repo.append_review_event(
                ReviewEvent(
                    user_id=user_id,
                    item_id=item_id,
                    rating=rating,
                    created_at=now,
                    learning_method=learning_method,
                    session_id=session_id,
                    response_time=response_time,
                )
            )

            activity = await self._record_activity(activity, now)

        logger.info(
            f"Review by {user_id} on {item_id}: rating={rating}, "
            f"interval={saved.interval}d, mastery={saved.mastery_level.value}"
        )

        return ReviewSubmission(
            progress=saved,
            next_review_date=saved.next_review_date,
            activity=activity,
        )

    async def _record_activity(
        self, activity: ActivityState, now: datetime
    ) -> ActivityState:
        """
        Touch the daily streak and refresh the words-learned total.

        Streak fields and last_active_date only change on the first
        activity of a calendar day.
        """
        update = touch(
            activity.last_active_date,
            activity.current_streak,
            activity.longest_streak,
            now,
        )
        mastered = await self.repo.count_mastered(activity.user_id)

        if not update.changed and mastered == activity.total_words_learned:
            return activity

        refreshed = replace(activity, total_words_learned=mastered)
        if update.changed:
            refreshed = replace(
                refreshed,
                last_active_date=now,
                current_streak=update.current_streak,
                longest_streak=update.longest_streak,
            )
            logger.info(
                f"Streak for {activity.user_id}: {activity.current_streak} -> "
                f"{update.current_streak} (longest {update.longest_streak})"
            )

        await self.repo.save_activity_state(refreshed)
        return refreshed

    async def get_due_reviews(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[ReviewState]:
        """
        Get items due for review, most overdue first.

        Args:
            user_id: User whose reviews to list.
            now: Reference instant (defaults to current UTC time).
            limit: Maximum items (capped at settings.DUE_REVIEWS_MAX_LIMIT).

        Returns:
            Review states with next_review_date <= now, ascending by due date.
        """
        now = now or utc_now()
        if limit is None:
            limit = settings.DUE_REVIEWS_MAX_LIMIT
        if limit < 1:
            raise ValidationError("Due review limit must be positive")
        limit = min(limit, settings.DUE_REVIEWS_MAX_LIMIT)
        return await self.repo.list_due_review_states(user_id, now, limit)

    async def get_user_progress(self, user_id: str) -> UserProgressOverview:
        """Get every review state of the user plus their activity counters."""
        stats = await self.repo.load_activity_state(user_id)
        if stats is None:
            raise ValidationError(f"Unknown user {user_id}")
        progress = await self.repo.list_review_states(user_id)
        return UserProgressOverview(progress=progress, stats=stats)

    async def get_review_history(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[ReviewHistoryEntry]:
        """
        Get the user's most recent review events.

        Each event is annotated with the item's current next review date.
        """
        if limit is None:
            limit = settings.REVIEW_HISTORY_LIMIT
        if limit < 1:
            raise ValidationError("History limit must be positive")
        limit = min(limit, settings.REVIEW_HISTORY_LIMIT)
        events = await self.repo.list_review_events(user_id, limit)
        due_dates = {
            state.item_id: state.next_review_date
            for state in await self.repo.list_review_states(user_id)
        }
        return [
            ReviewHistoryEntry(event=event, next_review_date=due_dates.get(event.item_id))
            for event in events
        ]
