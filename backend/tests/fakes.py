"""
In-Memory Persistence Fakes

An in-memory implementation of both persistence ports for unit tests.

Behaves like the SQL repositories in the ways the services rely on:
- for_update loads take a per-row asyncio.Lock held until the
  transaction ends
- review states carry a version; saving a stale one raises ConflictError
- (user_id, item_id), (tier, week_start) and (user_id, week_start) are unique
- a transaction that raises is rolled back

Several repositories can share one InMemoryStore to simulate concurrent
requests, each with its own "session".
"""

import asyncio
import itertools
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from vocab_progress.enums import LeagueTier, MasteryLevel
from vocab_progress.middleware.error_handling import ConflictError, NotFoundError
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


class InMemoryStore:
    """Tables shared by every repository created on top of it."""

    def __init__(self):
        self.users: dict[str, ActivityState] = {}
        self.items: set[str] = set()
        self.review_states: dict[tuple[str, str], ReviewState] = {}
        self.events: list[ReviewEvent] = []
        self.sessions: dict[str, StudySession] = {}
        self.leagues: dict[int, League] = {}
        self.memberships: dict[int, LeagueMembership] = {}
        self.locks: defaultdict[tuple, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._ids = itertools.count(1)
        self.commits = 0
        self.rollbacks = 0

    def next_id(self) -> int:
        return next(self._ids)

    def add_user(self, user_id: str, name: Optional[str] = None, **activity) -> ActivityState:
        state = ActivityState(user_id=user_id, name=name, **activity)
        self.users[user_id] = state
        return state

    def add_item(self, item_id: str) -> None:
        self.items.add(item_id)


class InMemoryRepository(ProgressRepository, LeagueRepository):
    """One "session" over an InMemoryStore."""

    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()
        self._undo: Optional[list[Callable[[], None]]] = None
        self._held: list[asyncio.Lock] = []

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self):
        self._undo = []
        try:
            yield
        except BaseException:
            for undo in reversed(self._undo):
                undo()
            self.store.rollbacks += 1
            raise
        else:
            self.store.commits += 1
        finally:
            self._undo = None
            for lock in self._held:
                lock.release()
            self._held = []

    def _record_undo(self, undo: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    def _set(self, table: dict, key, value) -> None:
        missing = object()
        previous = table.get(key, missing)
        table[key] = value

        def undo():
            if previous is missing:
                table.pop(key, None)
            else:
                table[key] = previous

        self._record_undo(undo)

    async def _lock(self, key: tuple) -> None:
        lock = self.store.locks[key]
        if lock in self._held:
            return
        await lock.acquire()
        self._held.append(lock)

    async def _yield(self) -> None:
        # Let concurrent tasks interleave between reads and writes
        await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Users and items
    # ------------------------------------------------------------------

    async def load_activity_state(self, user_id, for_update=False):
        if for_update:
            await self._lock(("user", user_id))
        await self._yield()
        state = self.store.users.get(user_id)
        return replace(state) if state else None

    async def save_activity_state(self, state):
        self._set(self.store.users, state.user_id, replace(state))

    async def item_exists(self, item_id):
        await self._yield()
        return item_id in self.store.items

    async def user_exists(self, user_id):
        await self._yield()
        return user_id in self.store.users

    async def load_user_names(self, user_ids):
        return {
            user_id: self.store.users[user_id].name
            for user_id in user_ids
            if user_id in self.store.users
        }

    # ------------------------------------------------------------------
    # Review state and events
    # ------------------------------------------------------------------

    async def load_review_state(self, user_id, item_id, for_update=False):
        if for_update:
            await self._lock(("review", user_id, item_id))
        await self._yield()
        state = self.store.review_states.get((user_id, item_id))
        return replace(state) if state else None

    async def save_review_state(self, state):
        key = (state.user_id, state.item_id)
        current = self.store.review_states.get(key)
        if state.id is None:
            if current is not None:
                raise ConflictError(f"Review state {key} already exists")
            stored = replace(state, id=self.store.next_id(), version=1)
        else:
            if current is None or current.version != state.version:
                raise ConflictError(f"Review state {key} changed concurrently")
            stored = replace(state, version=state.version + 1)
        self._set(self.store.review_states, key, stored)
        return replace(stored)

    async def list_review_states(self, user_id):
        states = [s for s in self.store.review_states.values() if s.user_id == user_id]
        return [replace(s) for s in sorted(states, key=lambda s: (s.next_review_date, s.id))]

    async def list_due_review_states(self, user_id, now, limit=None):
        due = [s for s in await self.list_review_states(user_id) if s.next_review_date <= now]
        return due[:limit] if limit else due

    async def count_mastered(self, user_id):
        return sum(
            1
            for s in self.store.review_states.values()
            if s.user_id == user_id and s.mastery_level == MasteryLevel.MASTERED
        )

    async def append_review_event(self, event):
        stored = replace(event, id=self.store.next_id())
        self.store.events.append(stored)
        self._record_undo(lambda: self.store.events.remove(stored))
        return replace(stored)

    async def list_review_events(self, user_id, limit):
        events = [e for e in self.store.events if e.user_id == user_id]
        events.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return [replace(e) for e in events[:limit]]

    # ------------------------------------------------------------------
    # Study sessions
    # ------------------------------------------------------------------

    async def create_study_session(self, session):
        self._set(self.store.sessions, session.id, replace(session))
        return replace(session)

    async def load_study_session(self, session_id):
        session = self.store.sessions.get(session_id)
        return replace(session) if session else None

    async def save_study_session(self, session):
        if session.id not in self.store.sessions:
            raise NotFoundError(f"Study session {session.id} not found")
        self._set(self.store.sessions, session.id, replace(session))
        return replace(session)

    # ------------------------------------------------------------------
    # Leagues
    # ------------------------------------------------------------------

    def _with_league(self, membership: LeagueMembership) -> LeagueMembership:
        return replace(membership, league=replace(self.store.leagues[membership.league_id]))

    async def load_membership(self, user_id, week_start):
        await self._yield()
        for m in self.store.memberships.values():
            if m.user_id == user_id and m.week_start == week_start:
                return self._with_league(m)
        return None

    async def load_latest_membership(self, user_id, before):
        await self._yield()
        prior = [
            m
            for m in self.store.memberships.values()
            if m.user_id == user_id and m.week_start < before
        ]
        if not prior:
            return None
        latest = max(prior, key=lambda m: (m.week_start, m.created_at))
        return self._with_league(latest)

    async def create_league_if_absent(
        self, tier, week_start, week_end, promotion_zone_size, demotion_zone_size
    ):
        for league in self.store.leagues.values():
            if league.tier == tier and league.week_start == week_start:
                return replace(league)
        league = League(
            id=self.store.next_id(),
            tier=tier,
            week_start=week_start,
            week_end=week_end,
            promotion_zone_size=promotion_zone_size,
            demotion_zone_size=demotion_zone_size,
        )
        # Committed immediately, like INSERT ... ON CONFLICT DO NOTHING racing
        # with another writer
        self.store.leagues[league.id] = league
        return replace(league)

    async def load_league(self, league_id, for_update=False):
        if for_update:
            await self._lock(("league", league_id))
        await self._yield()
        league = self.store.leagues.get(league_id)
        return replace(league) if league else None

    async def create_membership(self, user_id, league):
        for m in self.store.memberships.values():
            if m.user_id == user_id and m.week_start == league.week_start:
                raise ConflictError(f"{user_id} already has a membership this week")
        membership = LeagueMembership(
            id=self.store.next_id(),
            user_id=user_id,
            league_id=league.id,
            week_start=league.week_start,
            created_at=utc_now(),
        )
        self._set(self.store.memberships, membership.id, membership)
        return self._with_league(membership)

    async def increment_xp(self, membership_id, amount):
        membership = self.store.memberships.get(membership_id)
        if membership is None:
            raise NotFoundError(f"League membership {membership_id} not found")
        updated = replace(membership, weekly_xp=membership.weekly_xp + amount)
        self._set(self.store.memberships, membership_id, updated)
        return updated.weekly_xp

    async def list_memberships_by_league_desc(self, league_id, limit=None):
        members = [m for m in self.store.memberships.values() if m.league_id == league_id]
        members.sort(key=lambda m: (-m.weekly_xp, m.created_at, m.id))
        members = members[:limit] if limit else members
        return [replace(m) for m in members]

    async def list_memberships_by_user(self, user_id, limit, offset=0):
        members = [m for m in self.store.memberships.values() if m.user_id == user_id]
        members.sort(key=lambda m: (m.week_start, m.created_at), reverse=True)
        return [self._with_league(m) for m in members[offset : offset + limit]]

    async def list_open_leagues(self, ending_before):
        leagues = [
            l
            for l in self.store.leagues.values()
            if l.closed_at is None and l.week_end < ending_before
        ]
        return [replace(l) for l in sorted(leagues, key=lambda l: (l.week_end, l.id))]

    async def save_close_out(self, league_id, outcomes, closed_at):
        for outcome in outcomes:
            membership = self.store.memberships[outcome.membership_id]
            self._set(
                self.store.memberships,
                outcome.membership_id,
                replace(membership, final_rank=outcome.final_rank, result=outcome.result),
            )
        league = self.store.leagues[league_id]
        self._set(self.store.leagues, league_id, replace(league, closed_at=closed_at))

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed_membership(
        self,
        user_id: str,
        tier: LeagueTier,
        week_start: datetime,
        week_end: datetime,
        result,
        weekly_xp: int = 0,
        created_at: Optional[datetime] = None,
    ) -> LeagueMembership:
        """Insert a past membership (and its league) directly."""
        league = next(
            (
                l
                for l in self.store.leagues.values()
                if l.tier == tier and l.week_start == week_start
            ),
            None,
        )
        if league is None:
            league = League(
                id=self.store.next_id(),
                tier=tier,
                week_start=week_start,
                week_end=week_end,
                promotion_zone_size=10,
                demotion_zone_size=5,
            )
            self.store.leagues[league.id] = league
        membership = LeagueMembership(
            id=self.store.next_id(),
            user_id=user_id,
            league_id=league.id,
            week_start=week_start,
            weekly_xp=weekly_xp,
            result=result,
            created_at=created_at or week_start,
        )
        self.store.memberships[membership.id] = membership
        return self._with_league(membership)
