"""
SQLAlchemy Repositories

Implements the persistence port (vocab_progress.services.repository) on
top of an AsyncSession. Services receive plain records; ORM rows never
leave this module.

Error translation:
    - IntegrityError / StaleDataError       → ConflictError
    - OperationalError / InterfaceError and
      invalidated connections               → TransientStorageError

Locking:
    - load_activity_state(for_update=True) locks the user row, which
      serializes one user's review submissions.
    - user_progress carries an ORM-managed version column; a stale update
      raises ConflictError.
    - League creation is INSERT ... ON CONFLICT DO NOTHING on
      (tier, week_start) followed by a re-select, so every concurrent
      caller gets the same row.

Usage:
    async with async_session_maker() as db:
        repo = SQLAlchemyProgressRepository(db)
        async with repo.transaction():
            ...
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload
from sqlalchemy.orm.exc import StaleDataError

from vocab_progress.db.models_league import League as LeagueRow
from vocab_progress.db.models_league import LeagueMembership as MembershipRow
from vocab_progress.db.models_progress import Review as ReviewRow
from vocab_progress.db.models_progress import StudySession as StudySessionRow
from vocab_progress.db.models_progress import User as UserRow
from vocab_progress.db.models_progress import UserProgress as UserProgressRow
from vocab_progress.db.models_progress import Word as WordRow
from vocab_progress.enums import LeagueTier, MasteryLevel
from vocab_progress.middleware.error_handling import (
    ConflictError,
    NotFoundError,
    TransientStorageError,
)
from vocab_progress.services.records import (
    ActivityState,
    League,
    LeagueMembership,
    MembershipOutcome,
    ReviewEvent,
    ReviewState,
    StudySession,
    utc_now,
)
from vocab_progress.services.repository import LeagueRepository, ProgressRepository

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _is_transient(error: DBAPIError) -> bool:
    return isinstance(error, (OperationalError, InterfaceError)) or error.connection_invalidated


# ===========================================
# Row → record mapping
# ===========================================


def _to_activity(row: UserRow) -> ActivityState:
    return ActivityState(
        user_id=row.id,
        name=row.name,
        last_active_date=_as_utc(row.last_active_date),
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        total_words_learned=row.total_words_learned,
    )


def _to_review_state(row: UserProgressRow) -> ReviewState:
    return ReviewState(
        id=row.id,
        user_id=row.user_id,
        item_id=row.word_id,
        ease_factor=row.ease_factor,
        interval=row.interval,
        repetitions=row.repetitions,
        next_review_date=_as_utc(row.next_review_date),
        last_review_date=_as_utc(row.last_review_date),
        mastery_level=row.mastery_level,
        correct_count=row.correct_count,
        incorrect_count=row.incorrect_count,
        total_reviews=row.total_reviews,
        version=row.version,
    )


def _to_event(row: ReviewRow) -> ReviewEvent:
    return ReviewEvent(
        id=row.id,
        user_id=row.user_id,
        item_id=row.word_id,
        rating=row.rating,
        created_at=_as_utc(row.created_at),
        learning_method=row.learning_method,
        session_id=row.session_id,
        response_time=row.response_time,
    )


def _to_session(row: StudySessionRow) -> StudySession:
    return StudySession(
        id=row.id,
        user_id=row.user_id,
        start_time=_as_utc(row.start_time),
        end_time=_as_utc(row.end_time),
        duration=row.duration,
        words_studied=row.words_studied,
        words_correct=row.words_correct,
    )


def _to_league(row: LeagueRow) -> League:
    return League(
        id=row.id,
        tier=row.tier,
        week_start=_as_utc(row.week_start),
        week_end=_as_utc(row.week_end),
        promotion_zone_size=row.promotion_zone_size,
        demotion_zone_size=row.demotion_zone_size,
        closed_at=_as_utc(row.closed_at),
    )


def _to_membership(row: MembershipRow, league: Optional[League] = None) -> LeagueMembership:
    return LeagueMembership(
        id=row.id,
        user_id=row.user_id,
        league_id=row.league_id,
        week_start=_as_utc(row.week_start),
        weekly_xp=row.weekly_xp,
        final_rank=row.final_rank,
        result=row.result,
        created_at=_as_utc(row.created_at),
        league=league,
    )


# ===========================================
# Shared unit of work
# ===========================================


class SQLAlchemyRepository:
    """Session-bound base providing transactions and error translation."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository.

        Args:
            db: Async database session
        """
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except (IntegrityError, StaleDataError) as e:
            await self.db.rollback()
            logger.warning(f"Write conflict, transaction rolled back: {e}")
            raise ConflictError("Concurrent update conflict") from e
        except DBAPIError as e:
            await self.db.rollback()
            if _is_transient(e):
                raise TransientStorageError(f"Database unavailable: {type(e).__name__}") from e
            raise
        except BaseException:
            await self.db.rollback()
            raise

    async def _execute(self, statement):
        """Execute a statement, translating connectivity failures."""
        try:
            return await self.db.execute(statement)
        except DBAPIError as e:
            if _is_transient(e):
                raise TransientStorageError(f"Database unavailable: {type(e).__name__}") from e
            raise

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except DBAPIError as e:
            if _is_transient(e):
                raise TransientStorageError(f"Database unavailable: {type(e).__name__}") from e
            raise

    async def _scalars(self, statement) -> list:
        result = await self._execute(statement.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _scalar(self, statement):
        result = await self._execute(statement.execution_options(populate_existing=True))
        return result.scalars().first()

    async def user_exists(self, user_id: str) -> bool:
        result = await self._execute(select(UserRow.id).where(UserRow.id == user_id))
        return result.scalar_one_or_none() is not None


# ===========================================
# Progress
# ===========================================


class SQLAlchemyProgressRepository(SQLAlchemyRepository, ProgressRepository):
    """Review progress storage backed by PostgreSQL (or SQLite in tests)."""

    async def load_activity_state(
        self, user_id: str, for_update: bool = False
    ) -> Optional[ActivityState]:
        query = select(UserRow).where(UserRow.id == user_id)
        if for_update:
            query = query.with_for_update()
        row = await self._scalar(query)
        return _to_activity(row) if row else None

    async def save_activity_state(self, state: ActivityState) -> None:
        await self._execute(
            update(UserRow)
            .where(UserRow.id == state.user_id)
            .values(
                last_active_date=state.last_active_date,
                current_streak=state.current_streak,
                longest_streak=state.longest_streak,
                total_words_learned=state.total_words_learned,
            )
            .execution_options(synchronize_session=False)
        )

    async def item_exists(self, item_id: str) -> bool:
        result = await self._execute(select(WordRow.id).where(WordRow.id == item_id))
        return result.scalar_one_or_none() is not None

    async def load_review_state(
        self, user_id: str, item_id: str, for_update: bool = False
    ) -> Optional[ReviewState]:
        query = select(UserProgressRow).where(
            UserProgressRow.user_id == user_id,
            UserProgressRow.word_id == item_id,
        )
        if for_update:
            query = query.with_for_update()
        row = await self._scalar(query)
        return _to_review_state(row) if row else None

    async def save_review_state(self, state: ReviewState) -> ReviewState:
        if state.id is None:
            row = UserProgressRow(user_id=state.user_id, word_id=state.item_id)
            self.db.add(row)
        else:
            row = await self.db.get(UserProgressRow, state.id)
            if row is None or row.version != state.version:
                raise ConflictError(
                    f"Review state for {state.user_id}/{state.item_id} changed concurrently"
                )

        row.ease_factor = state.ease_factor
        row.interval = state.interval
        row.repetitions = state.repetitions
        row.next_review_date = state.next_review_date
        row.last_review_date = state.last_review_date
        row.mastery_level = state.mastery_level
        row.correct_count = state.correct_count
        row.incorrect_count = state.incorrect_count
        row.total_reviews = state.total_reviews

        try:
            await self._flush()
        except (IntegrityError, StaleDataError) as e:
            raise ConflictError(
                f"Review state for {state.user_id}/{state.item_id} changed concurrently"
            ) from e
        return _to_review_state(row)

    async def list_review_states(self, user_id: str) -> list[ReviewState]:
        rows = await self._scalars(
            select(UserProgressRow)
            .where(UserProgressRow.user_id == user_id)
            .order_by(UserProgressRow.next_review_date.asc(), UserProgressRow.id.asc())
        )
        return [_to_review_state(row) for row in rows]

    async def list_due_review_states(
        self, user_id: str, now: datetime, limit: Optional[int] = None
    ) -> list[ReviewState]:
        query = (
            select(UserProgressRow)
            .where(
                UserProgressRow.user_id == user_id,
                UserProgressRow.next_review_date <= now,
            )
            .order_by(UserProgressRow.next_review_date.asc(), UserProgressRow.id.asc())
        )
        if limit:
            query = query.limit(limit)
        return [_to_review_state(row) for row in await self._scalars(query)]

    async def count_mastered(self, user_id: str) -> int:
        result = await self._execute(
            select(func.count(UserProgressRow.id)).where(
                UserProgressRow.user_id == user_id,
                UserProgressRow.mastery_level == MasteryLevel.MASTERED,
            )
        )
        return result.scalar_one()

    async def append_review_event(self, event: ReviewEvent) -> ReviewEvent:
        row = ReviewRow(
            user_id=event.user_id,
            word_id=event.item_id,
            session_id=event.session_id,
            rating=event.rating,
            response_time=event.response_time,
            learning_method=event.learning_method,
            created_at=event.created_at,
        )
        self.db.add(row)
        await self._flush()
        return _to_event(row)

    async def list_review_events(self, user_id: str, limit: int) -> list[ReviewEvent]:
        rows = await self._scalars(
            select(ReviewRow)
            .where(ReviewRow.user_id == user_id)
            .order_by(ReviewRow.created_at.desc(), ReviewRow.id.desc())
            .limit(limit)
        )
        return [_to_event(row) for row in rows]

    async def create_study_session(self, session: StudySession) -> StudySession:
        row = StudySessionRow(
            id=session.id,
            user_id=session.user_id,
            start_time=session.start_time,
        )
        self.db.add(row)
        await self._flush()
        return _to_session(row)

    async def load_study_session(self, session_id: str) -> Optional[StudySession]:
        row = await self._scalar(
            select(StudySessionRow).where(StudySessionRow.id == session_id)
        )
        return _to_session(row) if row else None

    async def save_study_session(self, session: StudySession) -> StudySession:
        row = await self.db.get(StudySessionRow, session.id)
        if row is None:
            raise NotFoundError(f"Study session {session.id} not found")
        row.end_time = session.end_time
        row.duration = session.duration
        row.words_studied = session.words_studied
        row.words_correct = session.words_correct
        await self._flush()
        return _to_session(row)


# ===========================================
# Leagues
# ===========================================


class SQLAlchemyLeagueRepository(SQLAlchemyRepository, LeagueRepository):
    """League storage backed by PostgreSQL (or SQLite in tests)."""

    async def load_user_names(self, user_ids: list[str]) -> dict[str, Optional[str]]:
        if not user_ids:
            return {}
        result = await self._execute(
            select(UserRow.id, UserRow.name).where(UserRow.id.in_(user_ids))
        )
        return {user_id: name for user_id, name in result.all()}

    async def load_membership(
        self, user_id: str, week_start: datetime
    ) -> Optional[LeagueMembership]:
        row = await self._scalar(
            select(MembershipRow)
            .options(joinedload(MembershipRow.league))
            .where(
                MembershipRow.user_id == user_id,
                MembershipRow.week_start == week_start,
            )
        )
        return _to_membership(row, _to_league(row.league)) if row else None

    async def load_latest_membership(
        self, user_id: str, before: datetime
    ) -> Optional[LeagueMembership]:
        row = await self._scalar(
            select(MembershipRow)
            .options(joinedload(MembershipRow.league))
            .where(
                MembershipRow.user_id == user_id,
                MembershipRow.week_start < before,
            )
            .order_by(MembershipRow.week_start.desc(), MembershipRow.created_at.desc())
            .limit(1)
        )
        return _to_membership(row, _to_league(row.league)) if row else None

    async def create_league_if_absent(
        self,
        tier: LeagueTier,
        week_start: datetime,
        week_end: datetime,
        promotion_zone_size: int,
        demotion_zone_size: int,
    ) -> League:
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return await self._create_league_fallback(
                tier, week_start, week_end, promotion_zone_size, demotion_zone_size
            )

        await self._execute(
            insert(LeagueRow)
            .values(
                tier=tier,
                week_start=week_start,
                week_end=week_end,
                promotion_zone_size=promotion_zone_size,
                demotion_zone_size=demotion_zone_size,
                created_at=utc_now(),
            )
            .on_conflict_do_nothing(index_elements=["tier", "week_start"])
        )
        row = await self._scalar(
            select(LeagueRow).where(
                LeagueRow.tier == tier,
                LeagueRow.week_start == week_start,
            )
        )
        return _to_league(row)

    async def _create_league_fallback(
        self,
        tier: LeagueTier,
        week_start: datetime,
        week_end: datetime,
        promotion_zone_size: int,
        demotion_zone_size: int,
    ) -> League:
        """Select-then-insert; a lost race surfaces as ConflictError."""
        row = await self._scalar(
            select(LeagueRow).where(
                LeagueRow.tier == tier,
                LeagueRow.week_start == week_start,
            )
        )
        if row is None:
            row = LeagueRow(
                tier=tier,
                week_start=week_start,
                week_end=week_end,
                promotion_zone_size=promotion_zone_size,
                demotion_zone_size=demotion_zone_size,
            )
            self.db.add(row)
            try:
                await self._flush()
            except IntegrityError as e:
                raise ConflictError(f"League {tier.value} for {week_start} already exists") from e
        return _to_league(row)

    async def load_league(
        self, league_id: int, for_update: bool = False
    ) -> Optional[League]:
        query = select(LeagueRow).where(LeagueRow.id == league_id)
        if for_update:
            query = query.with_for_update()
        row = await self._scalar(query)
        return _to_league(row) if row else None

    async def create_membership(self, user_id: str, league: League) -> LeagueMembership:
        row = MembershipRow(
            user_id=user_id,
            league_id=league.id,
            week_start=league.week_start,
            weekly_xp=0,
            created_at=utc_now(),
        )
        self.db.add(row)
        try:
            await self._flush()
        except IntegrityError as e:
            raise ConflictError(
                f"{user_id} already has a membership for week {league.week_start}"
            ) from e
        return _to_membership(row, league)

    async def increment_xp(self, membership_id: int, amount: int) -> int:
        result = await self._execute(
            update(MembershipRow)
            .where(MembershipRow.id == membership_id)
            .values(weekly_xp=MembershipRow.weekly_xp + amount)
            .returning(MembershipRow.weekly_xp)
            .execution_options(synchronize_session=False)
        )
        total = result.scalar_one_or_none()
        if total is None:
            raise NotFoundError(f"League membership {membership_id} not found")
        return total

    async def list_memberships_by_league_desc(
        self, league_id: int, limit: Optional[int] = None
    ) -> list[LeagueMembership]:
        query = (
            select(MembershipRow)
            .where(MembershipRow.league_id == league_id)
            .order_by(
                MembershipRow.weekly_xp.desc(),
                MembershipRow.created_at.asc(),
                MembershipRow.id.asc(),
            )
        )
        if limit:
            query = query.limit(limit)
        return [_to_membership(row) for row in await self._scalars(query)]

    async def list_memberships_by_user(
        self, user_id: str, limit: int, offset: int = 0
    ) -> list[LeagueMembership]:
        rows = await self._scalars(
            select(MembershipRow)
            .options(joinedload(MembershipRow.league))
            .where(MembershipRow.user_id == user_id)
            .order_by(MembershipRow.week_start.desc(), MembershipRow.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [_to_membership(row, _to_league(row.league)) for row in rows]

    async def list_open_leagues(self, ending_before: datetime) -> list[League]:
        rows = await self._scalars(
            select(LeagueRow)
            .where(LeagueRow.closed_at.is_(None), LeagueRow.week_end < ending_before)
            .order_by(LeagueRow.week_end.asc(), LeagueRow.id.asc())
        )
        return [_to_league(row) for row in rows]

    async def save_close_out(
        self,
        league_id: int,
        outcomes: list[MembershipOutcome],
        closed_at: datetime,
    ) -> None:
        for outcome in outcomes:
            await self._execute(
                update(MembershipRow)
                .where(MembershipRow.id == outcome.membership_id)
                .values(final_rank=outcome.final_rank, result=outcome.result)
                .execution_options(synchronize_session=False)
            )
        await self._execute(
            update(LeagueRow)
            .where(LeagueRow.id == league_id)
            .values(closed_at=closed_at)
            .execution_options(synchronize_session=False)
        )
