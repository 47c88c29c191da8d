from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, UniqueConstraint, Uuid

from cardsmith.db.interfaces.postgresql import Base, BigIntPK


class Deck(Base):
    __tablename__ = "decks"

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_decks_user_name"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(
        timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
