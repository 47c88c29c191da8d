import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from cardsmith.exceptions import (
    AuthorizationError,
    CardsmithError,
    InvalidCardError,
    NotFoundError,
)
from cardsmith.models import Flashcard
from cardsmith.models.enums import FlashcardStatus
from cardsmith.repositories.decks import DeckRepository
from cardsmith.repositories.flashcards import FlashcardsRepository
from cardsmith.services.clock import as_utc, utc_now

logger = logging.getLogger(__name__)


class DraftReviewService:
    """Accept or reject AI-generated draft cards."""

    def __init__(self, session: Session):
        self.session = session
        self.decks = DeckRepository(session)
        self.flashcards = FlashcardsRepository(session)

    def accept(self, user_id: UUID, flashcard_id: int, now: Optional[datetime] = None) -> Flashcard:
        """Promote a draft to ``new``; it becomes due the same day."""
        today = as_utc(now or utc_now()).date()
        try:
            card = self._get_owned_draft(user_id, flashcard_id)
            if not self.flashcards.transition_status(card, FlashcardStatus.NEW, next_review_date=today):
                raise InvalidCardError(
                    "Flashcard is no longer a draft", details={"flashcard_id": flashcard_id}
                )
            self.session.commit()
        except CardsmithError:
            self.session.rollback()
            raise
        logger.info(f"Draft flashcard {flashcard_id} accepted")
        return card

    def reject(self, user_id: UUID, flashcard_id: int) -> None:
        try:
            card = self._get_owned_draft(user_id, flashcard_id)
            if not self.flashcards.delete_draft(card):
                raise InvalidCardError(
                    "Flashcard is no longer a draft", details={"flashcard_id": flashcard_id}
                )
            self.session.commit()
        except CardsmithError:
            self.session.rollback()
            raise
        logger.info(f"Draft flashcard {flashcard_id} rejected")

    def _get_owned_draft(self, user_id: UUID, flashcard_id: int) -> Flashcard:
        card = self.flashcards.get_by_id(flashcard_id, for_update=True)
        if card is None:
            raise NotFoundError("Flashcard not found", details={"flashcard_id": flashcard_id})
        if self.decks.get_owned(card.deck_id, user_id) is None:
            raise AuthorizationError(
                "Flashcard belongs to another user", details={"flashcard_id": flashcard_id}
            )
        if not card.status.can_transition_to(FlashcardStatus.NEW):
            raise InvalidCardError(
                f"Only draft flashcards can be accepted or rejected (status: {card.status.value})",
                details={"flashcard_id": flashcard_id},
            )
        return card
