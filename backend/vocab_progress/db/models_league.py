"""
SQLAlchemy Database Models for Weekly Leagues

Tables:
- leagues: One cohort per (tier, week_start)
- league_memberships: One row per (user, week_start)

Both uniqueness rules are enforced by the database so concurrent
first-time requests cannot create duplicates.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vocab_progress.db.base import Base
from vocab_progress.enums import LeagueResult, LeagueTier


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class League(Base):
    """
    One weekly cohort at a single tier.

    Attributes:
        tier: Rung on the tier ladder.
        week_start: Monday 00:00 UTC of the league week.
        week_end: Sunday 23:59:59.999 UTC of the league week.
        promotion_zone_size: Members promoted from the top at close-out.
        demotion_zone_size: Members demoted from the bottom at close-out.
        closed_at: When close-out recorded final ranks. Null while open.
    """

    __tablename__ = "leagues"
    __table_args__ = (
        UniqueConstraint("tier", "week_start", name="uq_leagues_tier_week_start"),
        Index("ix_leagues_open_week_end", "closed_at", "week_end"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tier: Mapped[LeagueTier] = mapped_column(SQLEnum(LeagueTier, name="league_tier"))
    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    week_end: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    promotion_zone_size: Mapped[int] = mapped_column(Integer, default=10)
    demotion_zone_size: Mapped[int] = mapped_column(Integer, default=5)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    memberships: Mapped[List["LeagueMembership"]] = relationship(
        back_populates="league"
    )


class LeagueMembership(Base):
    """
    A user's participation in one weekly league.

    week_start duplicates leagues.week_start so (user_id, week_start) can
    carry a unique constraint.
    """

    __tablename__ = "league_memberships"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "week_start", name="uq_league_memberships_user_week_start"
        ),
        Index("ix_league_memberships_league_xp", "league_id", "weekly_xp"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE")
    )
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE")
    )
    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    weekly_xp: Mapped[int] = mapped_column(Integer, default=0)
    final_rank: Mapped[Optional[int]] = mapped_column(Integer)
    result: Mapped[LeagueResult] = mapped_column(
        SQLEnum(LeagueResult, name="league_result"), default=LeagueResult.PENDING
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    league: Mapped["League"] = relationship(back_populates="memberships")
