import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cardsmith.exceptions import (
    AuthorizationError,
    CardsmithError,
    InternalError,
    InvalidCardError,
    NotFoundError,
    SessionClosedError,
    ValidationError,
)
from cardsmith.models import Flashcard, StudySession
from cardsmith.models.enums import ReviewGrade
from cardsmith.repositories.decks import DeckRepository
from cardsmith.repositories.flashcards import FlashcardsRepository
from cardsmith.repositories.study_sessions import StudySessionRepository
from cardsmith.services.clock import as_utc, utc_now
from cardsmith.services.scheduling import CardSchedule, SchedulingEngine

logger = logging.getLogger(__name__)


@dataclass
class SessionStart:
    session: StudySession
    cards_to_review: int
    first_card: Optional[Flashcard]
    nothing_due: bool = False
    resumed: bool = False


@dataclass
class NextCard:
    card: Optional[Flashcard]
    cards_remaining: int


@dataclass
class ReviewOutcome:
    flashcard: Flashcard
    next_card: Optional[Flashcard]
    cards_remaining: int
    session_closed: bool = False


@dataclass
class SessionSummary:
    session_id: int
    deck_id: int
    started_at: datetime
    ended_at: Optional[datetime]
    cards_reviewed: int
    cards_correct: int
    accuracy_rate: float

    @classmethod
    def from_session(cls, study_session: StudySession) -> "SessionSummary":
        return cls(
            session_id=study_session.id,
            deck_id=study_session.deck_id,
            started_at=as_utc(study_session.started_at),
            ended_at=as_utc(study_session.ended_at),
            cards_reviewed=study_session.cards_reviewed,
            cards_correct=study_session.cards_correct,
            accuracy_rate=study_session.accuracy_rate,
        )


class StudySessionManager:
    """Study session state machine for one (user, deck) pair: Closed -> Open -> Closed.

    Cards are served oldest due date first, then by id. Every operation runs
    in its own transaction; a rejected operation is rolled back and leaves no
    trace. ``now`` is injectable and "today" is its UTC date.
    """

    def __init__(self, session: Session, engine: Optional[SchedulingEngine] = None):
        self.session = session
        self.engine = engine or SchedulingEngine()
        self.decks = DeckRepository(session)
        self.flashcards = FlashcardsRepository(session)
        self.sessions = StudySessionRepository(session)

    def start(self, user_id: UUID, deck_id: int, now: Optional[datetime] = None) -> SessionStart:
        """Open a session, or resume the one already open for this deck."""
        now = as_utc(now or utc_now())
        today = now.date()
        try:
            if self.decks.get_owned(deck_id, user_id) is None:
                raise AuthorizationError(
                    "Deck not found or access denied", details={"deck_id": deck_id}
                )

            existing = self.sessions.get_open(user_id, deck_id)
            if existing is not None:
                result = self._progress(existing, today, resumed=True)
                self.session.commit()
                return result

            if self.flashcards.count_due(deck_id, today) == 0:
                # recorded, but closed on the spot: there is nothing to serve
                closed = self.sessions.create(user_id, deck_id, started_at=now, ended_at=now)
                self.session.commit()
                logger.info(f"Study session {closed.id}: nothing due in deck {deck_id}")
                return SessionStart(
                    session=closed, cards_to_review=0, first_card=None, nothing_due=True
                )

            study_session = self.sessions.create(user_id, deck_id, started_at=now)
            result = self._progress(study_session, today)
            self.session.commit()
            logger.info(
                f"Study session {study_session.id} opened for deck {deck_id} "
                f"with {result.cards_to_review} due cards"
            )
            return result
        except IntegrityError:
            # a concurrent start won the open-session unique index
            self.session.rollback()
            return self._resume_after_race(user_id, deck_id, today)
        except CardsmithError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to start study session for deck {deck_id}: {e}")
            raise InternalError("Failed to start study session") from e

    def _resume_after_race(self, user_id: UUID, deck_id: int, today: date) -> SessionStart:
        existing = self.sessions.get_open(user_id, deck_id)
        if existing is None:
            self.session.rollback()
            raise InternalError("Failed to start study session")
        result = self._progress(existing, today, resumed=True)
        self.session.commit()
        return result

    def _progress(self, study_session: StudySession, today: date, resumed: bool = False) -> SessionStart:
        due = self.flashcards.list_due(study_session.deck_id, today, study_session.id, limit=1)
        remaining = self.flashcards.count_due(study_session.deck_id, today, study_session.id)
        return SessionStart(
            session=study_session,
            cards_to_review=remaining,
            first_card=due[0] if due else None,
            resumed=resumed,
        )

    def next_card(self, session_id: int, user_id: UUID, now: Optional[datetime] = None) -> NextCard:
        """Next not-yet-reviewed due card, or ``card=None`` once none remain."""
        today = as_utc(now or utc_now()).date()
        try:
            study_session = self._get_owned(session_id, user_id)
            if not study_session.is_open:
                raise SessionClosedError(
                    "Study session is already closed", details={"session_id": session_id}
                )
            progress = self._progress(study_session, today)
            self.session.commit()
            return NextCard(card=progress.first_card, cards_remaining=progress.cards_to_review)
        except CardsmithError:
            self.session.rollback()
            raise

    def review(
        self,
        session_id: int,
        user_id: UUID,
        flashcard_id: int,
        grade: Union[ReviewGrade, str],
        now: Optional[datetime] = None,
    ) -> ReviewOutcome:
        """Grade one card, reschedule it and advance the session."""
        now = as_utc(now or utc_now())
        today = now.date()
        try:
            grade = ReviewGrade(grade)
        except ValueError as e:
            raise ValidationError(
                f"Unknown grade: {grade}",
                details={"field": "grade", "allowed": [g.value for g in ReviewGrade]},
            ) from e
        try:
            study_session = self._get_owned(session_id, user_id)
            if not study_session.is_open:
                raise SessionClosedError(
                    "Study session is already closed", details={"session_id": session_id}
                )

            card = self.flashcards.get_by_id(flashcard_id, for_update=True)
            self._ensure_reviewable(study_session, card, flashcard_id, today)

            before = CardSchedule(ease_factor=card.ease_factor, interval=card.interval)
            result = self.engine.apply(before, grade, today)

            if not self.flashcards.apply_review(
                card, result.ease_factor, result.interval, result.next_review_date
            ):
                raise InvalidCardError(
                    "Flashcard was updated by another review",
                    details={"flashcard_id": flashcard_id},
                )

            self.sessions.add_performance(
                session_id=study_session.id,
                flashcard_id=card.id,
                grade=grade,
                reviewed_at=now,
                previous_ease_factor=before.ease_factor,
                previous_interval=before.interval,
                new_ease_factor=result.ease_factor,
                new_interval=result.interval,
            )

            if not self.sessions.record_review(study_session, grade.is_correct):
                raise SessionClosedError(
                    "Study session is already closed", details={"session_id": session_id}
                )

            progress = self._progress(study_session, today)
            closed = False
            if progress.cards_to_review == 0:
                closed = self.sessions.close(study_session, now)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise InvalidCardError(
                "Flashcard was already reviewed in this session",
                details={"flashcard_id": flashcard_id},
            ) from e
        except CardsmithError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to record review of card {flashcard_id} in session {session_id}: {e}")
            raise InternalError("Failed to record review") from e

        if closed:
            logger.info(f"Study session {session_id} closed: no cards remaining")
        return ReviewOutcome(
            flashcard=card,
            next_card=progress.first_card,
            cards_remaining=progress.cards_to_review,
            session_closed=closed,
        )

    def _ensure_reviewable(
        self,
        study_session: StudySession,
        card: Optional[Flashcard],
        flashcard_id: int,
        today: date,
    ) -> None:
        details = {"flashcard_id": flashcard_id, "session_id": study_session.id}
        if card is None or card.deck_id != study_session.deck_id:
            raise InvalidCardError("Flashcard does not belong to this session's deck", details=details)
        if not card.status.is_studyable:
            raise InvalidCardError("Draft flashcards cannot be reviewed", details=details)
        if self.sessions.has_review(study_session.id, card.id):
            raise InvalidCardError("Flashcard was already reviewed in this session", details=details)
        if card.next_review_date > today:
            raise InvalidCardError("Flashcard is not due for review", details=details)

    def end(self, session_id: int, user_id: UUID, now: Optional[datetime] = None) -> SessionSummary:
        """Close the session. Ending a closed session returns its stored summary."""
        now = as_utc(now or utc_now())
        try:
            study_session = self._get_owned(session_id, user_id)
            if study_session.is_open and self.sessions.close(study_session, now):
                logger.info(
                    f"Study session {session_id} ended: {study_session.cards_correct}/"
                    f"{study_session.cards_reviewed} correct"
                )
            self.session.commit()
        except CardsmithError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to end study session {session_id}: {e}")
            raise InternalError("Failed to end study session") from e
        return SessionSummary.from_session(study_session)

    def get_summary(self, session_id: int, user_id: UUID) -> SessionSummary:
        try:
            study_session = self._get_owned(session_id, user_id)
            self.session.commit()
        except CardsmithError:
            self.session.rollback()
            raise
        return SessionSummary.from_session(study_session)

    def _get_owned(self, session_id: int, user_id: UUID) -> StudySession:
        study_session = self.sessions.get_by_id(session_id)
        if study_session is None:
            raise NotFoundError("Study session not found", details={"session_id": session_id})
        if study_session.user_id != user_id:
            raise AuthorizationError(
                "Study session belongs to another user", details={"session_id": session_id}
            )
        return study_session
