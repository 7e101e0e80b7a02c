"""
Pydantic Models for Review Progress

Request and response schemas for review submission, due reviews,
progress overview, review history and study sessions.

ARCHITECTURE NOTE:
    Services return plain records (vocab_progress.services.records); the
    from_record factories convert them to these API models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from vocab_progress.enums import LearningMethod, MasteryLevel
from vocab_progress.models.base import StrictRequest, StrictResponse
from vocab_progress.services.progress import (
    ReviewHistoryEntry,
    ReviewSubmission,
    UserProgressOverview,
)
from vocab_progress.services.records import ActivityState, ReviewState, StudySession


# ===========================================
# Review State
# ===========================================


class ReviewStateResponse(StrictResponse):
    """SM-2 state of one item for the caller."""

    id: Optional[int] = None
    item_id: str
    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime
    last_review_date: Optional[datetime] = None
    mastery_level: MasteryLevel
    correct_count: int = 0
    incorrect_count: int = 0
    total_reviews: int = 0

    @classmethod
    def from_record(cls, record: ReviewState) -> ReviewStateResponse:
        return cls.model_validate(record)


class ActivityStatsResponse(StrictResponse):
    """Streak counters and words-learned total."""

    total_words_learned: int
    current_streak: int
    longest_streak: int
    last_active_date: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: ActivityState) -> ActivityStatsResponse:
        return cls.model_validate(record)


class UserProgressResponse(StrictResponse):
    """All review states of the caller plus activity counters."""

    progress: list[ReviewStateResponse]
    stats: ActivityStatsResponse

    @classmethod
    def from_overview(cls, overview: UserProgressOverview) -> UserProgressResponse:
        return cls(
            progress=[ReviewStateResponse.from_record(s) for s in overview.progress],
            stats=ActivityStatsResponse.from_record(overview.stats),
        )


class DueReviewsResponse(StrictResponse):
    """Items due now, most overdue first."""

    items: list[ReviewStateResponse]
    total: int


# ===========================================
# Review Submission
# ===========================================


class ReviewRequest(StrictRequest):
    """
    Request to rate a vocabulary item.

    Attributes:
        item_id: Reviewed vocabulary item
        rating: Recall quality from 1 (blackout) to 5 (perfect)
        response_time: Time to answer in milliseconds
        session_id: Study session the review belongs to
        learning_method: How the item was presented
    """

    item_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5, description="Recall rating 1-5")
    response_time: Optional[int] = Field(None, ge=0, description="Milliseconds")
    session_id: Optional[str] = None
    learning_method: LearningMethod = LearningMethod.FLASHCARD


class ReviewResponse(StrictResponse):
    """Updated state after a review."""

    progress: ReviewStateResponse
    next_review_date: datetime

    @classmethod
    def from_submission(cls, submission: ReviewSubmission) -> ReviewResponse:
        return cls(
            progress=ReviewStateResponse.from_record(submission.progress),
            next_review_date=submission.next_review_date,
        )


class ReviewHistoryItem(StrictResponse):
    """A past review with the item's current due date."""

    id: Optional[int] = None
    item_id: str
    rating: int
    learning_method: LearningMethod
    response_time: Optional[int] = None
    session_id: Optional[str] = None
    created_at: datetime
    next_review_date: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: ReviewHistoryEntry) -> ReviewHistoryItem:
        event = entry.event
        return cls(
            id=event.id,
            item_id=event.item_id,
            rating=event.rating,
            learning_method=event.learning_method,
            response_time=event.response_time,
            session_id=event.session_id,
            created_at=event.created_at,
            next_review_date=entry.next_review_date,
        )


class ReviewHistoryResponse(StrictResponse):
    reviews: list[ReviewHistoryItem]


# ===========================================
# Study Sessions
# ===========================================


class SessionEndRequest(StrictRequest):
    """Request to end a study session."""

    session_id: str = Field(..., min_length=1)
    words_studied: Optional[int] = Field(None, ge=0)
    words_correct: Optional[int] = Field(None, ge=0)


class StudySessionResponse(StrictResponse):
    """A study session; duration is in seconds."""

    id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    words_studied: Optional[int] = None
    words_correct: Optional[int] = None

    @classmethod
    def from_record(cls, record: StudySession) -> StudySessionResponse:
        return cls.model_validate(record)
