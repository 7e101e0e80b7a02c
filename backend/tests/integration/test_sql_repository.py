"""
Integration Tests for the SQLAlchemy Repositories

Exercises the repositories and services against a real SQL database:
optimistic versioning, unique constraints surfacing as conflicts,
idempotent league creation, atomic XP increments and close-out.

Run with: pytest backend/tests/integration -m integration -v
"""

from datetime import timedelta

import pytest

from vocab_progress.db.models_league import LeagueMembership as MembershipRow
from vocab_progress.db.repository import (
    SQLAlchemyLeagueRepository,
    SQLAlchemyProgressRepository,
)
from vocab_progress.enums import LeagueResult, LeagueTier, MasteryLevel
from vocab_progress.middleware.error_handling import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from vocab_progress.services.league import LeagueService, resolve_week_window
from vocab_progress.services.progress import ReviewService, StudySessionService
from vocab_progress.services.records import ReviewState

pytestmark = pytest.mark.integration


async def _create_league(repo: SQLAlchemyLeagueRepository, now, tier=LeagueTier.BRONZE):
    week = resolve_week_window(now)
    async with repo.transaction():
        return await repo.create_league_if_absent(tier, week.start, week.end, 10, 5)


class TestReviewStatePersistence:
    """Review state storage and optimistic versioning."""

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self, db_session, now) -> None:
        repo = SQLAlchemyProgressRepository(db_session)
        state = ReviewState.new("user-1", "word-1", now)
        state.mastery_level = MasteryLevel.LEARNING
        state.repetitions = 1

        async with repo.transaction():
            saved = await repo.save_review_state(state)

        loaded = await repo.load_review_state("user-1", "word-1")
        assert loaded.id == saved.id
        assert loaded.version == 1
        assert loaded.mastery_level == MasteryLevel.LEARNING
        assert loaded.next_review_date == now
        assert loaded.next_review_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, session_factory, now) -> None:
        async with session_factory() as db:
            repo = SQLAlchemyProgressRepository(db)
            async with repo.transaction():
                await repo.save_review_state(ReviewState.new("user-1", "word-1", now))

        async with session_factory() as first_db, session_factory() as second_db:
            first = SQLAlchemyProgressRepository(first_db)
            second = SQLAlchemyProgressRepository(second_db)
            first_copy = await first.load_review_state("user-1", "word-1")
            second_copy = await second.load_review_state("user-1", "word-1")
            await first_db.commit()
            await second_db.commit()

            first_copy.repetitions = 1
            async with first.transaction():
                await first.save_review_state(first_copy)

            second_copy.repetitions = 2
            with pytest.raises(ConflictError):
                async with second.transaction():
                    await second.save_review_state(second_copy)

        async with session_factory() as db:
            stored = await SQLAlchemyProgressRepository(db).load_review_state("user-1", "word-1")
        assert stored.repetitions == 1
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_duplicate_first_insert_conflicts(self, session_factory, now) -> None:
        for expected in (None, ConflictError):
            async with session_factory() as db:
                repo = SQLAlchemyProgressRepository(db)
                if expected is None:
                    async with repo.transaction():
                        await repo.save_review_state(ReviewState.new("user-1", "word-2", now))
                else:
                    with pytest.raises(expected):
                        async with repo.transaction():
                            await repo.save_review_state(
                                ReviewState.new("user-1", "word-2", now)
                            )


class TestReviewServiceOnSql:
    @pytest.mark.asyncio
    async def test_submit_review_updates_streak_and_history(self, db_session, now) -> None:
        service = ReviewService(SQLAlchemyProgressRepository(db_session))

        await service.submit_review("user-1", "word-1", 4, now=now)
        result = await service.submit_review("user-1", "word-2", 2, now=now + timedelta(days=1))

        assert result.progress.repetitions == 0
        assert result.progress.interval == 1

        overview = await service.get_user_progress("user-1")
        assert overview.stats.current_streak == 2
        assert overview.stats.longest_streak == 2

        history = await service.get_review_history("user-1")
        assert [entry.event.item_id for entry in history] == ["word-2", "word-1"]

    @pytest.mark.asyncio
    async def test_unknown_session_is_validation_error(self, db_session, now) -> None:
        service = ReviewService(SQLAlchemyProgressRepository(db_session))

        with pytest.raises(ValidationError, match="Unknown study session"):
            await service.submit_review("user-1", "word-1", 4, session_id="no-such-session", now=now)

        assert await service.get_review_history("user-1") == []

    @pytest.mark.asyncio
    async def test_review_linked_to_own_session(self, db_session, now) -> None:
        repo = SQLAlchemyProgressRepository(db_session)
        session = await StudySessionService(repo).start_session("user-1", now=now)

        await ReviewService(repo).submit_review("user-1", "word-1", 4, session_id=session.id, now=now)

        [entry] = await ReviewService(repo).get_review_history("user-1")
        assert entry.event.session_id == session.id


class TestLeaguePersistence:
    """League rows, memberships and XP."""

    @pytest.mark.asyncio
    async def test_create_league_if_absent_is_idempotent(self, db_session, now) -> None:
        repo = SQLAlchemyLeagueRepository(db_session)

        first = await _create_league(repo, now)
        second = await _create_league(repo, now)

        assert first.id == second.id
        assert first.week_start.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_membership_conflicts(self, db_session, now) -> None:
        repo = SQLAlchemyLeagueRepository(db_session)
        bronze = await _create_league(repo, now)
        silver = await _create_league(repo, now, LeagueTier.SILVER)

        async with repo.transaction():
            await repo.create_membership("user-1", bronze)

        with pytest.raises(ConflictError):
            async with repo.transaction():
                await repo.create_membership("user-1", silver)

        membership = await repo.load_membership("user-1", bronze.week_start)
        assert membership.league.tier == LeagueTier.BRONZE

    @pytest.mark.asyncio
    async def test_increment_xp_returns_running_total(self, db_session, now) -> None:
        repo = SQLAlchemyLeagueRepository(db_session)
        league = await _create_league(repo, now)
        async with repo.transaction():
            membership = await repo.create_membership("user-1", league)

        async with repo.transaction():
            assert await repo.increment_xp(membership.id, 10) == 10
        async with repo.transaction():
            assert await repo.increment_xp(membership.id, 15) == 25

    @pytest.mark.asyncio
    async def test_increment_xp_unknown_membership(self, db_session) -> None:
        repo = SQLAlchemyLeagueRepository(db_session)

        with pytest.raises(NotFoundError):
            async with repo.transaction():
                await repo.increment_xp(999, 10)

    @pytest.mark.asyncio
    async def test_leaderboard_ties_ordered_by_join_time(self, db_session, now) -> None:
        repo = SQLAlchemyLeagueRepository(db_session)
        league = await _create_league(repo, now)
        joined = league.week_start + timedelta(hours=1)
        db_session.add_all(
            [
                MembershipRow(
                    user_id=user_id,
                    league_id=league.id,
                    week_start=league.week_start,
                    weekly_xp=xp,
                    created_at=joined + timedelta(minutes=offset),
                )
                for user_id, xp, offset in [("user-1", 50, 2), ("user-2", 30, 0), ("user-3", 50, 1)]
            ]
        )
        await db_session.commit()

        ranked = await repo.list_memberships_by_league_desc(league.id)

        # user-3 has the higher id but joined before user-1
        assert [(m.user_id, m.weekly_xp) for m in ranked] == [
            ("user-3", 50),
            ("user-1", 50),
            ("user-2", 30),
        ]


class TestLeagueServiceOnSql:
    @pytest.mark.asyncio
    async def test_leaderboard_order_and_close_out(self, db_session, now) -> None:
        service = LeagueService(SQLAlchemyLeagueRepository(db_session))

        await service.add_xp("user-1", 30, now=now)
        await service.add_xp("user-2", 50, now=now)
        await service.get_my_league("user-3", now=now)

        rows = await service.get_leaderboard("user-1", now=now)
        assert [(r.rank, r.user_id, r.xp) for r in rows] == [
            (1, "user-2", 50),
            (2, "user-1", 30),
            (3, "user-3", 0),
        ]

        after_week = resolve_week_window(now).end + timedelta(minutes=5)
        closed = await service.close_out_due_leagues(now=after_week)
        assert len(closed) == 1
        assert closed[0].closed_at is not None

        history = await service.get_history("user-2")
        assert history[0].result == LeagueResult.PROMOTED
        assert history[0].final_rank == 1

        assert await service.close_out_due_leagues(now=after_week) == []

        next_week = await service.get_my_league("user-2", now=after_week)
        assert next_week.tier == LeagueTier.SILVER
