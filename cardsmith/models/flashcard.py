from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)

from cardsmith.db.interfaces.postgresql import Base, BigIntPK
from cardsmith.models.enums import FlashcardSource, FlashcardStatus, db_enum

DEFAULT_EASE_FACTOR = Decimal("2.50")
MIN_EASE_FACTOR = Decimal("1.30")
MAX_EASE_FACTOR = Decimal("4.00")
FRONT_MAX_LENGTH = 200
BACK_MAX_LENGTH = 500


class Flashcard(Base):
    __tablename__ = "flashcards"

    __table_args__ = (
        CheckConstraint(
            "ease_factor >= 1.30 AND ease_factor <= 4.00",
            name="ck_flashcards_ease_factor_range",
        ),
        CheckConstraint("interval >= 0", name="ck_flashcards_interval_non_negative"),
        # due-card selection: deck + status + date
        Index("ix_flashcards_deck_due", "deck_id", "status", "next_review_date"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    deck_id = Column(
        BigIntPK, ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    front = Column(String(FRONT_MAX_LENGTH), nullable=False)
    back = Column(String(BACK_MAX_LENGTH), nullable=False)

    status = Column(
        db_enum(FlashcardStatus, "flashcard_status"),
        nullable=False,
        default=FlashcardStatus.NEW,
    )
    source = Column(db_enum(FlashcardSource, "flashcard_source"), nullable=False)

    # Scheduling state, only written by the review path
    ease_factor = Column(Numeric(4, 2), nullable=False, default=DEFAULT_EASE_FACTOR)
    interval = Column(Integer, nullable=False, default=0)
    next_review_date = Column(
        Date, nullable=False, default=lambda: datetime.now(timezone.utc).date()
    )

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(
        timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
