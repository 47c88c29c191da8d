from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cardsmith.models import AIGenerationLog


class GenerationLogRepository:
    """Append-only ledger of AI generation usage."""

    def __init__(self, session: Session):
        self.session = session

    def sum_cards_between(self, user_id: UUID, start: datetime, end: datetime) -> int:
        stmt = select(func.coalesce(func.sum(AIGenerationLog.cards_count), 0)).where(
            AIGenerationLog.user_id == user_id,
            AIGenerationLog.generated_at >= start,
            AIGenerationLog.generated_at < end,
        )
        return int(self.session.scalar(stmt) or 0)

    def lock_user(self, user_id: UUID) -> None:
        """Serialize ledger writers for one user until the transaction ends.

        PostgreSQL takes a transaction-scoped advisory lock keyed on the user.
        SQLite needs nothing here: its transactions already start with
        BEGIN IMMEDIATE and hold the database write lock.
        """
        if self.session.get_bind().dialect.name == "postgresql":
            self.session.execute(
                select(func.pg_advisory_xact_lock(func.hashtext(str(user_id))))
            )

    def add(self, user_id: UUID, cards_count: int, generated_at: datetime) -> AIGenerationLog:
        log = AIGenerationLog(
            user_id=user_id,
            cards_count=cards_count,
            generated_at=generated_at,
        )
        self.session.add(log)
        self.session.flush()
        return log
