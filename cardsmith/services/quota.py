import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from cardsmith.models import AIGenerationLog
from cardsmith.repositories.generation_logs import GenerationLogRepository
from cardsmith.services.clock import as_utc, day_window

logger = logging.getLogger(__name__)

DAILY_LIMIT = 50


@dataclass(frozen=True)
class UsageSnapshot:
    daily_limit: int
    used_today: int
    remaining: int
    reset_at: datetime


class QuotaTracker:
    """Daily allowance of AI-generated cards, computed from the generation ledger.

    The window is the UTC calendar day containing ``as_of``. Callers always
    pass the instant explicitly so tests can pin the clock.
    """

    def __init__(self, repo: GenerationLogRepository, daily_limit: int = DAILY_LIMIT):
        self.repo = repo
        self.daily_limit = daily_limit

    def usage(self, user_id: UUID, as_of: datetime) -> UsageSnapshot:
        start, end = day_window(as_of)
        used = self.repo.sum_cards_between(user_id, start, end)
        return UsageSnapshot(
            daily_limit=self.daily_limit,
            used_today=used,
            remaining=max(0, self.daily_limit - used),
            reset_at=end,
        )

    def remaining(self, user_id: UUID, as_of: datetime) -> int:
        return self.usage(user_id, as_of).remaining

    def record_usage(self, user_id: UUID, count: int, at: datetime) -> Optional[AIGenerationLog]:
        """Record up to ``count`` cards against today's allowance.

        Runs inside the caller's transaction. The per-user lock is taken
        before the ledger is re-read, so two concurrent callers can never
        both see the same remaining allowance. Returns the written log row,
        whose ``cards_count`` is the number granted, or None when the day is
        used up and nothing was written.
        """
        if count <= 0:
            return None

        at = as_utc(at)
        self.repo.lock_user(user_id)
        granted = min(count, self.remaining(user_id, at))
        if granted == 0:
            logger.warning(f"Quota exhausted for user {user_id}: requested {count}")
            return None

        if granted < count:
            logger.info(f"Quota for user {user_id} granted {granted} of {count} cards")
        return self.repo.add(user_id, granted, at)
