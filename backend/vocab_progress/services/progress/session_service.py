"""
Study Session Service

Tracks bounded study sessions: a learner starts one, reviews words, then
ends it with the number of words studied and answered correctly.

Usage:
    from vocab_progress.services.progress import StudySessionService

    service = StudySessionService(repository)
    session = await service.start_session(user_id)
    session = await service.end_session(user_id, session.id, words_studied=20, words_correct=17)
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional

from vocab_progress.middleware.error_handling import NotFoundError, ValidationError
from vocab_progress.services.records import StudySession, utc_now
from vocab_progress.services.repository import ProgressRepository

logger = logging.getLogger(__name__)


class StudySessionService:
    """Starts and ends study sessions for a user."""

    def __init__(self, repository: ProgressRepository):
        self.repo = repository

    async def start_session(
        self, user_id: str, now: Optional[datetime] = None
    ) -> StudySession:
        """
        Open a new study session.

        Raises:
            ValidationError: If the user is unknown.
        """
        now = now or utc_now()
        async with self.repo.transaction():
            if await self.repo.load_activity_state(user_id) is None:
                raise ValidationError(f"Unknown user {user_id}")
            session = await self.repo.create_study_session(
                StudySession(id=str(uuid.uuid4()), user_id=user_id, start_time=now)
            )

        logger.info(f"Started study session {session.id} for {user_id}")
        return session

    async def end_session(
        self,
        user_id: str,
        session_id: str,
        words_studied: Optional[int] = None,
        words_correct: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> StudySession:
        """
        Close a study session and record its duration in whole seconds.

        Ending an already ended session returns it unchanged.

        Raises:
            NotFoundError: If the session does not exist or belongs to
                another user.
        """
        now = now or utc_now()
        async with self.repo.transaction():
            session = await self.repo.load_study_session(session_id)
            if session is None or session.user_id != user_id:
                raise NotFoundError(f"Study session {session_id} not found")
            if session.end_time is not None:
                return session

            ended = replace(
                session,
                end_time=now,
                duration=max(0, int((now - session.start_time).total_seconds())),
                words_studied=words_studied,
                words_correct=words_correct,
            )
            ended = await self.repo.save_study_session(ended)

        logger.info(f"Ended study session {session_id} after {ended.duration}s")
        return ended
