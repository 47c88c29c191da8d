from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    UniqueConstraint,
    Uuid,
    text,
)

from cardsmith.db.interfaces.postgresql import Base, BigIntPK
from cardsmith.models.enums import ReviewGrade, db_enum


class StudySession(Base):
    __tablename__ = "study_sessions"

    __table_args__ = (
        # at most one open session per (user, deck)
        Index(
            "uq_study_sessions_open_per_deck",
            "user_id",
            "deck_id",
            unique=True,
            postgresql_where=text("ended_at IS NULL"),
            sqlite_where=text("ended_at IS NULL"),
        ),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    deck_id = Column(
        BigIntPK, ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    started_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    ended_at = Column(DateTime(timezone=True), nullable=True)
    cards_reviewed = Column(Integer, nullable=False, default=0)
    cards_correct = Column(Integer, nullable=False, default=0)

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def accuracy_rate(self) -> float:
        if not self.cards_reviewed:
            return 0.0
        return self.cards_correct / self.cards_reviewed


class FlashcardPerformance(Base):
    """Audit row for a single graded review. Append-only."""

    __tablename__ = "flashcard_performance"

    __table_args__ = (
        UniqueConstraint(
            "flashcard_id",
            "study_session_id",
            name="uq_flashcard_performance_card_session",
        ),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    flashcard_id = Column(
        BigIntPK, ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    study_session_id = Column(
        BigIntPK, ForeignKey("study_sessions.id", ondelete="CASCADE"), nullable=False
    )
    grade = Column(db_enum(ReviewGrade, "review_grade"), nullable=False)
    reviewed_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    previous_ease_factor = Column(Numeric(4, 2), nullable=False)
    previous_interval = Column(Integer, nullable=False)
    new_ease_factor = Column(Numeric(4, 2), nullable=False)
    new_interval = Column(Integer, nullable=False)
