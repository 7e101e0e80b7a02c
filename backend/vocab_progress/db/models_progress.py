"""
SQLAlchemy Database Models for Review Progress

Tables:
- users: Learners, with the activity counters kept on the user row
- words: Vocabulary items that can be reviewed
- user_progress: SM-2 scheduling state per (user, word)
- reviews: Append-only review events
- study_sessions: Bounded study periods

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    Services never see these classes; vocab_progress.db.repository maps
    them to the plain records in vocab_progress.services.records.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vocab_progress.db.base import Base
from vocab_progress.enums import LearningMethod, MasteryLevel


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ===========================================
# Users & Vocabulary
# ===========================================


class User(Base):
    """
    A learner.

    Attributes:
        id: Primary key, opaque string id issued by the identity provider.
        name: Display name shown on leaderboards. Optional.
        last_active_date: Instant of the first activity on the most recent
            active day. Null until the first review.
        current_streak: Consecutive active days ending at last_active_date.
        longest_streak: Highest current_streak ever reached.
        total_words_learned: Number of MASTERED user_progress rows.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))

    # Activity
    last_active_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    total_words_learned: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


class Word(Base):
    """A vocabulary item."""

    __tablename__ = "words"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    word: Mapped[str] = mapped_column(String(200))
    definition: Mapped[Optional[str]] = mapped_column(Text)


# ===========================================
# Review Progress
# ===========================================


class UserProgress(Base):
    """
    SM-2 scheduling state of one word for one user.

    Attributes:
        ease_factor: SM-2 ease factor, never below 1.3.
        interval: Days between the last review and the next one.
        repetitions: Consecutive successful recalls.
        next_review_date: When the word is next due.
        mastery_level: Coarse NEW/LEARNING/FAMILIAR/MASTERED label.
        version: Optimistic concurrency counter maintained by the ORM.
    """

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "word_id", name="uq_user_progress_user_word"),
        Index("ix_user_progress_user_next_review", "user_id", "next_review_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    word_id: Mapped[str] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"))

    # SM-2 state
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    next_review_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_review_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    mastery_level: Mapped[MasteryLevel] = mapped_column(
        SQLEnum(MasteryLevel, name="mastery_level"), default=MasteryLevel.NEW
    )

    # Stats
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class Review(Base):
    """An immutable review event."""

    __tablename__ = "reviews"
    __table_args__ = (Index("ix_reviews_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    word_id: Mapped[str] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"))
    session_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("study_sessions.id", ondelete="SET NULL")
    )

    rating: Mapped[int] = mapped_column(Integer)
    response_time: Mapped[Optional[int]] = mapped_column(Integer)  # milliseconds
    learning_method: Mapped[LearningMethod] = mapped_column(
        SQLEnum(LearningMethod, name="learning_method"),
        default=LearningMethod.FLASHCARD,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    session: Mapped[Optional["StudySession"]] = relationship(back_populates="reviews")


class StudySession(Base):
    """
    A bounded study period.

    Attributes:
        duration: Whole seconds between start_time and end_time. Null while
            the session is open.
    """

    __tablename__ = "study_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[Optional[int]] = mapped_column(Integer)
    words_studied: Mapped[Optional[int]] = mapped_column(Integer)
    words_correct: Mapped[Optional[int]] = mapped_column(Integer)

    reviews: Mapped[List["Review"]] = relationship(back_populates="session")
