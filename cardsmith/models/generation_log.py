from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Uuid

from cardsmith.db.interfaces.postgresql import Base, BigIntPK


class AIGenerationLog(Base):
    """One row per successful generation call. Rows are never updated."""

    __tablename__ = "ai_generation_logs"

    __table_args__ = (
        CheckConstraint("cards_count >= 0", name="ck_ai_generation_logs_cards_count"),
        Index("ix_ai_generation_logs_user_date", "user_id", "generated_at"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    generated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    cards_count = Column(Integer, nullable=False, default=0)
