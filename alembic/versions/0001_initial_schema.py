"""
Initial schema: decks, flashcards, AI generation log, study sessions and
per-review performance rows.
"""

from alembic import op
import sqlalchemy as sa

# --- Alembic identifiers ---
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _enum_column(name: str, values: list, constraint: str, **kwargs) -> sa.Column:
    return sa.Column(
        name,
        sa.Enum(*values, name=constraint, native_enum=False, create_constraint=True, length=20),
        **kwargs,
    )


def upgrade():
    op.create_table(
        "decks",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())")),
        sa.UniqueConstraint("user_id", "name", name="uq_decks_user_name"),
    )
    op.create_index("ix_decks_user_id", "decks", ["user_id"])

    op.create_table(
        "flashcards",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("deck_id", sa.BigInteger(), sa.ForeignKey("decks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("front", sa.String(length=200), nullable=False),
        sa.Column("back", sa.String(length=500), nullable=False),
        _enum_column("status", ["draft", "new", "finalized"], "flashcard_status", nullable=False),
        _enum_column("source", ["manual", "ai"], "flashcard_source", nullable=False),
        sa.Column("ease_factor", sa.Numeric(4, 2), nullable=False, server_default=sa.text("2.50")),
        sa.Column("interval", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("next_review_date", sa.Date(), nullable=False, server_default=sa.text("(timezone('utc', now()))::date")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())")),
        sa.CheckConstraint("ease_factor >= 1.30 AND ease_factor <= 4.00", name="ck_flashcards_ease_factor_range"),
        sa.CheckConstraint("interval >= 0", name="ck_flashcards_interval_non_negative"),
    )
    op.create_index("ix_flashcards_deck_id", "flashcards", ["deck_id"])
    op.create_index("ix_flashcards_deck_due", "flashcards", ["deck_id", "status", "next_review_date"])

    op.create_table(
        "ai_generation_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("cards_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("cards_count >= 0", name="ck_ai_generation_logs_cards_count"),
    )
    op.create_index("ix_ai_generation_logs_user_date", "ai_generation_logs", ["user_id", "generated_at"])

    op.create_table(
        "study_sessions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("deck_id", sa.BigInteger(), sa.ForeignKey("decks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cards_reviewed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cards_correct", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_study_sessions_user_id", "study_sessions", ["user_id"])
    op.create_index("ix_study_sessions_deck_id", "study_sessions", ["deck_id"])
    op.create_index(
        "uq_study_sessions_open_per_deck",
        "study_sessions",
        ["user_id", "deck_id"],
        unique=True,
        postgresql_where=sa.text("ended_at IS NULL"),
    )

    op.create_table(
        "flashcard_performance",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("flashcard_id", sa.BigInteger(), sa.ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("study_session_id", sa.BigInteger(), sa.ForeignKey("study_sessions.id", ondelete="CASCADE"), nullable=False),
        _enum_column("grade", ["again", "hard", "good", "easy"], "review_grade", nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("timezone('utc', now())")),
        sa.Column("previous_ease_factor", sa.Numeric(4, 2), nullable=False),
        sa.Column("previous_interval", sa.Integer(), nullable=False),
        sa.Column("new_ease_factor", sa.Numeric(4, 2), nullable=False),
        sa.Column("new_interval", sa.Integer(), nullable=False),
        sa.UniqueConstraint("flashcard_id", "study_session_id", name="uq_flashcard_performance_card_session"),
    )
    op.create_index("ix_flashcard_performance_flashcard_id", "flashcard_performance", ["flashcard_id"])


def downgrade():
    op.drop_index("ix_flashcard_performance_flashcard_id", table_name="flashcard_performance")
    op.drop_table("flashcard_performance")
    op.drop_index("uq_study_sessions_open_per_deck", table_name="study_sessions")
    op.drop_index("ix_study_sessions_deck_id", table_name="study_sessions")
    op.drop_index("ix_study_sessions_user_id", table_name="study_sessions")
    op.drop_table("study_sessions")
    op.drop_index("ix_ai_generation_logs_user_date", table_name="ai_generation_logs")
    op.drop_table("ai_generation_logs")
    op.drop_index("ix_flashcards_deck_due", table_name="flashcards")
    op.drop_index("ix_flashcards_deck_id", table_name="flashcards")
    op.drop_table("flashcards")
    op.drop_index("ix_decks_user_id", table_name="decks")
    op.drop_table("decks")
