"""Unit tests for StudySessionService."""

from datetime import timedelta

import pytest

from vocab_progress.middleware.error_handling import NotFoundError, ValidationError
from vocab_progress.services.progress import StudySessionService


@pytest.fixture
def service(repo):
    return StudySessionService(repo)


class TestStudySessions:
    @pytest.mark.asyncio
    async def test_start_session(self, service, store, now):
        session = await service.start_session("user-1", now=now)

        assert session.user_id == "user-1"
        assert session.start_time == now
        assert session.end_time is None
        assert session.id in store.sessions

    @pytest.mark.asyncio
    async def test_start_session_unknown_user(self, service):
        with pytest.raises(ValidationError):
            await service.start_session("ghost")

    @pytest.mark.asyncio
    async def test_end_session_records_duration(self, service, now):
        session = await service.start_session("user-1", now=now)

        ended = await service.end_session(
            "user-1",
            session.id,
            words_studied=20,
            words_correct=17,
            now=now + timedelta(minutes=12, seconds=30, milliseconds=400),
        )

        assert ended.duration == 750
        assert ended.words_studied == 20
        assert ended.words_correct == 17

    @pytest.mark.asyncio
    async def test_end_session_twice_keeps_first_end(self, service, now):
        session = await service.start_session("user-1", now=now)
        first = await service.end_session("user-1", session.id, 5, 4, now=now + timedelta(minutes=1))

        second = await service.end_session("user-1", session.id, 9, 9, now=now + timedelta(hours=1))

        assert second.end_time == first.end_time
        assert second.words_studied == 5

    @pytest.mark.asyncio
    async def test_end_other_users_session_not_found(self, service, now):
        session = await service.start_session("user-1", now=now)

        with pytest.raises(NotFoundError):
            await service.end_session("user-2", session.id)

    @pytest.mark.asyncio
    async def test_end_missing_session_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.end_session("user-1", "missing")
