import json
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Protocol, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cardsmith.config import Settings, get_settings
from cardsmith.exceptions import (
    AuthorizationError,
    CardsmithError,
    GenerationServiceError,
    InternalError,
    LLMException,
    QuotaExceededError,
    ValidationError,
)
from cardsmith.models import Flashcard
from cardsmith.repositories.decks import DeckRepository
from cardsmith.repositories.flashcards import FlashcardsRepository
from cardsmith.repositories.generation_logs import GenerationLogRepository
from cardsmith.schemas.flashcards import CandidateFailure, CardCandidate
from cardsmith.services.clock import as_utc, utc_now
from cardsmith.services.quota import QuotaTracker

logger = logging.getLogger(__name__)


class CardGenerator(Protocol):
    def generate_candidates(self, text: str, count: int) -> List[Any]:
        ...


@dataclass
class GenerationResult:
    generation_id: int
    deck_id: int
    flashcards: List[Flashcard]
    cards_generated: int
    failures: List[CandidateFailure] = field(default_factory=list)


class GenerationOrchestrator:
    """Turns source text into draft cards within the user's daily quota."""

    def __init__(
        self,
        session: Session,
        generator: CardGenerator,
        quota: Optional[QuotaTracker] = None,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.generator = generator
        self.settings = settings or get_settings()
        self.decks = DeckRepository(session)
        self.flashcards = FlashcardsRepository(session)
        self.quota = quota or QuotaTracker(GenerationLogRepository(session))
        self.timeout = timeout if timeout is not None else self.settings.llm_timeout

    def generate(
        self,
        user_id: UUID,
        deck_id: int,
        text: str,
        max_cards: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> GenerationResult:
        now = as_utc(now or utc_now())
        if max_cards is None:
            max_cards = self.settings.generation_default_cards

        try:
            if self.decks.get_owned(deck_id, user_id) is None:
                raise AuthorizationError(
                    "Deck not found or access denied", details={"deck_id": deck_id}
                )
            self._validate_request(text, max_cards)
            usage = self.quota.usage(user_id, now)
        finally:
            # nothing written yet; do not hold a transaction across the external call
            self.session.rollback()

        if usage.remaining == 0:
            logger.warning(f"Generation refused for user {user_id}: daily limit reached")
            raise QuotaExceededError(
                f"Daily generation limit of {usage.daily_limit} cards exceeded. "
                "Limit resets at midnight UTC.",
                details={
                    "daily_limit": usage.daily_limit,
                    "used_today": usage.used_today,
                    "remaining": 0,
                    "reset_at": usage.reset_at.isoformat(),
                },
            )

        requested = min(max_cards, usage.remaining)
        items = self._call_generator(text, requested)
        accepted, failures = self._screen(items, requested)
        if not accepted:
            raise GenerationServiceError(
                "AI failed to generate any valid flashcards from the provided text",
                details={"failures": [f.model_dump() for f in failures]},
            )

        generation_id, cards = self._persist(user_id, deck_id, accepted, failures, now)
        logger.info(
            f"Generation {generation_id}: {len(cards)} draft cards saved to deck {deck_id} "
            f"({len(failures)} rejected)"
        )
        return GenerationResult(
            generation_id=generation_id,
            deck_id=deck_id,
            flashcards=cards,
            cards_generated=len(cards),
            failures=failures,
        )

    def _validate_request(self, text: str, max_cards: int) -> None:
        min_length = self.settings.generation_text_min_length
        max_length = self.settings.generation_text_max_length
        provided = len((text or "").strip())

        if provided < min_length:
            raise ValidationError(
                f"Text must be at least {min_length} characters",
                details={"field": "text", "provided": provided, "minimum": min_length},
            )
        if provided > max_length:
            raise ValidationError(
                f"Text must not exceed {max_length} characters",
                details={"field": "text", "provided": provided, "maximum": max_length},
            )
        if not 1 <= max_cards <= self.settings.generation_max_cards:
            raise ValidationError(
                f"max_cards must be between 1 and {self.settings.generation_max_cards}",
                details={"field": "max_cards", "provided": max_cards},
            )

    def _call_generator(self, text: str, count: int) -> List[Any]:
        """Run the generator on a thread of its own and wait at most ``timeout``.

        The clock starts with the call itself, never behind other requests. A
        call that hangs past the deadline keeps only its own thread, which the
        LLM client's transport timeout eventually releases.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="card-generator")
        future = executor.submit(self.generator.generate_candidates, text, count)
        try:
            items = future.result(timeout=self.timeout)
        except FuturesTimeoutError as e:
            logger.error(f"Card generator timed out after {self.timeout}s")
            raise GenerationServiceError("AI service timed out, please try again") from e
        except LLMException as e:
            logger.error(f"Card generator failed: {e}")
            raise GenerationServiceError("AI service failed to generate flashcards") from e
        except Exception as e:
            logger.error(f"Unexpected card generator failure: {type(e).__name__}: {e}")
            raise GenerationServiceError("AI service failed to generate flashcards") from e
        finally:
            executor.shutdown(wait=False)

        if not isinstance(items, list):
            raise GenerationServiceError("AI service returned an unexpected response")
        return items

    def _screen(
        self, items: List[Any], requested: int
    ) -> Tuple[List[Tuple[int, CardCandidate]], List[CandidateFailure]]:
        """Validate items one by one; malformed ones are reported, not fatal."""
        accepted: List[Tuple[int, CardCandidate]] = []
        failures: List[CandidateFailure] = []
        for index, item in enumerate(items):
            if index >= requested:
                failures.append(CandidateFailure(index=index, reason="exceeds requested card count"))
                continue
            try:
                accepted.append((index, CardCandidate.model_validate(item)))
            except PydanticValidationError as e:
                error = e.errors()[0]
                location = ".".join(str(part) for part in error["loc"]) or "item"
                failures.append(CandidateFailure(index=index, reason=f"{location}: {error['msg']}"))
        return accepted, failures

    def _persist(
        self,
        user_id: UUID,
        deck_id: int,
        accepted: List[Tuple[int, CardCandidate]],
        failures: List[CandidateFailure],
        now: datetime,
    ) -> Tuple[int, List[Flashcard]]:
        """Log usage and insert drafts in a single transaction."""
        try:
            log = self.quota.record_usage(user_id, len(accepted), now)
            if log is None:
                self.session.rollback()
                raise QuotaExceededError(
                    "Daily generation limit was reached while cards were being generated",
                    details={"remaining": 0},
                )

            granted = accepted[: log.cards_count]
            for index, _ in accepted[log.cards_count:]:
                failures.append(CandidateFailure(index=index, reason="daily quota exhausted"))

            cards = self.flashcards.create_drafts(
                deck_id, [candidate for _, candidate in granted], now.date()
            )
            self.session.commit()
            return log.id, cards
        except CardsmithError:
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            # keep the generated text recoverable; the generator is not called again
            logger.error(
                f"Failed to persist generated flashcards for user {user_id}, deck {deck_id}: {e}. "
                f"Generated cards: {json.dumps([c.model_dump() for _, c in accepted])}"
            )
            raise InternalError("Failed to save generated flashcards") from e
