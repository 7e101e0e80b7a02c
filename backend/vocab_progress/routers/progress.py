"""
Progress API Router

Endpoints for SM-2 review submission, due reviews, progress and study
sessions. The caller is identified by the forwarded user id header.

Endpoints:
- GET /api/progress - All review states plus streak counters
- GET /api/progress/due - Items due for review
- POST /api/progress/review - Submit a 1-5 rating
- GET /api/progress/history - Recent review events
- POST /api/progress/session/start - Start a study session
- POST /api/progress/session/end - End a study session
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from vocab_progress.dependencies import CurrentUserId, get_progress_repository
from vocab_progress.models.progress import (
    DueReviewsResponse,
    ReviewHistoryItem,
    ReviewHistoryResponse,
    ReviewRequest,
    ReviewResponse,
    ReviewStateResponse,
    SessionEndRequest,
    StudySessionResponse,
    UserProgressResponse,
)
from vocab_progress.services.progress import ReviewService, StudySessionService
from vocab_progress.services.repository import ProgressRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/progress", tags=["progress"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_review_service(
    repository: ProgressRepository = Depends(get_progress_repository),
) -> ReviewService:
    """Get review service."""
    return ReviewService(repository)


async def get_study_session_service(
    repository: ProgressRepository = Depends(get_progress_repository),
) -> StudySessionService:
    """Get study session service."""
    return StudySessionService(repository)


# ===========================================
# Review Endpoints
# ===========================================


@router.get("", response_model=UserProgressResponse)
async def get_user_progress(
    user_id: str = CurrentUserId,
    service: ReviewService = Depends(get_review_service),
) -> UserProgressResponse:
    """Get every review state of the caller plus activity counters."""
    overview = await service.get_user_progress(user_id)
    return UserProgressResponse.from_overview(overview)


@router.get("/due", response_model=DueReviewsResponse)
async def get_due_reviews(
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum items"),
    user_id: str = CurrentUserId,
    service: ReviewService = Depends(get_review_service),
) -> DueReviewsResponse:
    """
    Get items due for review.

    Items whose next review date has passed, most overdue first.
    """
    states = await service.get_due_reviews(user_id, limit=limit)
    return DueReviewsResponse(
        items=[ReviewStateResponse.from_record(s) for s in states],
        total=len(states),
    )


@router.post("/review", response_model=ReviewResponse)
async def submit_review(
    request: ReviewRequest,
    user_id: str = CurrentUserId,
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """
    Submit a review rating for an item.

    Reschedules the item with SM-2, updates its mastery label, records the
    review event and touches the caller's daily streak.
    """
    submission = await service.submit_review(
        user_id=user_id,
        item_id=request.item_id,
        rating=request.rating,
        response_time=request.response_time,
        session_id=request.session_id,
        learning_method=request.learning_method,
    )
    return ReviewResponse.from_submission(submission)


@router.get("/history", response_model=ReviewHistoryResponse)
async def get_review_history(
    limit: int = Query(200, ge=1, le=200, description="Maximum events"),
    user_id: str = CurrentUserId,
    service: ReviewService = Depends(get_review_service),
) -> ReviewHistoryResponse:
    """Get the caller's most recent reviews, newest first."""
    entries = await service.get_review_history(user_id, limit=limit)
    return ReviewHistoryResponse(
        reviews=[ReviewHistoryItem.from_entry(e) for e in entries]
    )


# ===========================================
# Study Session Endpoints
# ===========================================


@router.post("/session/start", response_model=StudySessionResponse)
async def start_study_session(
    user_id: str = CurrentUserId,
    service: StudySessionService = Depends(get_study_session_service),
) -> StudySessionResponse:
    """Start a study session."""
    session = await service.start_session(user_id)
    return StudySessionResponse.from_record(session)


@router.post("/session/end", response_model=StudySessionResponse)
async def end_study_session(
    request: SessionEndRequest,
    user_id: str = CurrentUserId,
    service: StudySessionService = Depends(get_study_session_service),
) -> StudySessionResponse:
    """
    End a study session.

    Ending an already ended session returns it unchanged.
    """
    session = await service.end_session(
        user_id,
        request.session_id,
        words_studied=request.words_studied,
        words_correct=request.words_correct,
    )
    return StudySessionResponse.from_record(session)
