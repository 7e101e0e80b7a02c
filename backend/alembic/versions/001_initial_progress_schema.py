"""Initial review progress and league schema

Creates users, words, user_progress (SM-2 state with an optimistic version
column), reviews, study_sessions, leagues and league_memberships.

Uniqueness guarantees relied on by concurrent first-time requests:
- user_progress (user_id, word_id)
- leagues (tier, week_start)
- league_memberships (user_id, week_start)

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

MASTERY_LEVELS = ("NEW", "LEARNING", "FAMILIAR", "MASTERED")
LEARNING_METHODS = (
    "FLASHCARD",
    "IMAGE",
    "VIDEO",
    "RHYME",
    "MNEMONIC",
    "ETYMOLOGY",
    "QUIZ",
    "WRITING",
)
LEAGUE_TIERS = (
    "BRONZE",
    "SILVER",
    "GOLD",
    "SAPPHIRE",
    "RUBY",
    "EMERALD",
    "AMETHYST",
    "PEARL",
    "OBSIDIAN",
    "DIAMOND",
)
LEAGUE_RESULTS = ("PENDING", "PROMOTED", "STAYED", "DEMOTED")


def upgrade() -> None:
    # ===========================================
    # Users & vocabulary
    # ===========================================
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("last_active_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_words_learned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "words",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("word", sa.String(200), nullable=False),
        sa.Column("definition", sa.Text(), nullable=True),
    )

    # ===========================================
    # Study sessions & review progress
    # ===========================================
    op.create_table(
        "study_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("words_studied", sa.Integer(), nullable=True),
        sa.Column("words_correct", sa.Integer(), nullable=True),
    )

    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "word_id",
            sa.String(36),
            sa.ForeignKey("words.id", ondelete="CASCADE"),
            nullable=False,
        ),
        # SM-2 state
        sa.Column("ease_factor", sa.Float(), nullable=False, server_default="2.5"),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("repetitions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_review_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "mastery_level",
            sa.Enum(*MASTERY_LEVELS, name="mastery_level"),
            nullable=False,
            server_default="NEW",
        ),
        # Stats
        sa.Column("correct_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("incorrect_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("user_id", "word_id", name="uq_user_progress_user_word"),
    )
    op.create_index(
        "ix_user_progress_user_next_review",
        "user_progress",
        ["user_id", "next_review_date"],
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "word_id",
            sa.String(36),
            sa.ForeignKey("words.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("study_sessions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("response_time", sa.Integer(), nullable=True),
        sa.Column(
            "learning_method",
            sa.Enum(*LEARNING_METHODS, name="learning_method"),
            nullable=False,
            server_default="FLASHCARD",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_reviews_user_created", "reviews", ["user_id", "created_at"])

    # ===========================================
    # Leagues
    # ===========================================
    op.create_table(
        "leagues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tier", sa.Enum(*LEAGUE_TIERS, name="league_tier"), nullable=False),
        sa.Column("week_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("week_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("promotion_zone_size", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("demotion_zone_size", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("tier", "week_start", name="uq_leagues_tier_week_start"),
    )
    op.create_index("ix_leagues_open_week_end", "leagues", ["closed_at", "week_end"])

    op.create_table(
        "league_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "league_id",
            sa.Integer(),
            sa.ForeignKey("leagues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("week_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("weekly_xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("final_rank", sa.Integer(), nullable=True),
        sa.Column(
            "result",
            sa.Enum(*LEAGUE_RESULTS, name="league_result"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "week_start", name="uq_league_memberships_user_week_start"
        ),
    )
    op.create_index(
        "ix_league_memberships_league_xp",
        "league_memberships",
        ["league_id", "weekly_xp"],
    )


def downgrade() -> None:
    op.drop_index("ix_league_memberships_league_xp", table_name="league_memberships")
    op.drop_table("league_memberships")
    op.drop_index("ix_leagues_open_week_end", table_name="leagues")
    op.drop_table("leagues")
    op.drop_index("ix_reviews_user_created", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_user_progress_user_next_review", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_table("study_sessions")
    op.drop_table("words")
    op.drop_table("users")

    for enum_name in ("league_result", "league_tier", "learning_method", "mastery_level"):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
