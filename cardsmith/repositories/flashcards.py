from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from cardsmith.models import Flashcard, FlashcardPerformance
from cardsmith.models.enums import FlashcardSource, FlashcardStatus
from cardsmith.models.flashcard import DEFAULT_EASE_FACTOR
from cardsmith.schemas.flashcards import CardCandidate

STUDYABLE_STATUSES = tuple(status for status in FlashcardStatus if status.is_studyable)


class FlashcardsRepository:
    """Data access layer for flashcards.

    Methods only flush; the calling service owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, flashcard_id: int, for_update: bool = False) -> Optional[Flashcard]:
        stmt = select(Flashcard).where(Flashcard.id == flashcard_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalar(stmt)

    def create(
        self,
        deck_id: int,
        front: str,
        back: str,
        source: FlashcardSource = FlashcardSource.MANUAL,
        status: FlashcardStatus = FlashcardStatus.NEW,
        next_review_date: Optional[date] = None,
    ) -> Flashcard:
        card = Flashcard(
            deck_id=deck_id,
            front=front,
            back=back,
            source=source,
            status=status,
            ease_factor=DEFAULT_EASE_FACTOR,
            interval=0,
        )
        if next_review_date is not None:
            card.next_review_date = next_review_date
        self.session.add(card)
        self.session.flush()
        return card

    def create_drafts(
        self, deck_id: int, candidates: Sequence[CardCandidate], today: date
    ) -> List[Flashcard]:
        """Insert AI candidates as draft cards with default scheduling values."""
        cards = [
            Flashcard(
                deck_id=deck_id,
                front=candidate.front,
                back=candidate.back,
                status=FlashcardStatus.DRAFT,
                source=FlashcardSource.AI,
                ease_factor=DEFAULT_EASE_FACTOR,
                interval=0,
                next_review_date=today,
            )
            for candidate in candidates
        ]
        self.session.add_all(cards)
        self.session.flush()
        return cards

    def _due_statement(self, deck_id: int, today: date, session_id: Optional[int]):
        stmt = select(Flashcard).where(
            Flashcard.deck_id == deck_id,
            Flashcard.status.in_(STUDYABLE_STATUSES),
            Flashcard.next_review_date <= today,
        )
        if session_id is not None:
            reviewed = select(FlashcardPerformance.flashcard_id).where(
                FlashcardPerformance.study_session_id == session_id
            )
            stmt = stmt.where(Flashcard.id.not_in(reviewed))
        return stmt

    def list_due(
        self,
        deck_id: int,
        today: date,
        session_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Flashcard]:
        """Due cards in serving order: oldest due date first, then id.

        With ``session_id`` set, cards already graded in that session are left out.
        """
        stmt = self._due_statement(deck_id, today, session_id).order_by(
            Flashcard.next_review_date.asc(), Flashcard.id.asc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def count_due(self, deck_id: int, today: date, session_id: Optional[int] = None) -> int:
        subquery = self._due_statement(deck_id, today, session_id).subquery()
        return self.session.scalar(select(func.count()).select_from(subquery)) or 0

    def apply_review(
        self,
        card: Flashcard,
        ease_factor,
        interval: int,
        next_review_date: date,
    ) -> bool:
        """Write new scheduling values if the row still holds what was read.

        Returns False when another writer changed the card first.
        """
        stmt = (
            update(Flashcard)
            .where(
                Flashcard.id == card.id,
                Flashcard.status == card.status,
                Flashcard.interval == card.interval,
                Flashcard.next_review_date == card.next_review_date,
            )
            .values(
                ease_factor=ease_factor,
                interval=interval,
                next_review_date=next_review_date,
                status=FlashcardStatus.FINALIZED,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        self.session.refresh(card)
        return True

    def transition_status(
        self,
        card: Flashcard,
        target: FlashcardStatus,
        next_review_date: Optional[date] = None,
    ) -> bool:
        values = {"status": target}
        if next_review_date is not None:
            values["next_review_date"] = next_review_date
        stmt = (
            update(Flashcard)
            .where(Flashcard.id == card.id, Flashcard.status == card.status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        self.session.refresh(card)
        return True

    def delete_draft(self, card: Flashcard) -> bool:
        stmt = delete(Flashcard).where(
            Flashcard.id == card.id, Flashcard.status == FlashcardStatus.DRAFT
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1
