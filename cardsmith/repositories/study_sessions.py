from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from cardsmith.models import FlashcardPerformance, StudySession
from cardsmith.models.enums import ReviewGrade


class StudySessionRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, session_id: int) -> Optional[StudySession]:
        return self.session.scalar(select(StudySession).where(StudySession.id == session_id))

    def get_open(self, user_id: UUID, deck_id: int) -> Optional[StudySession]:
        stmt = select(StudySession).where(
            StudySession.user_id == user_id,
            StudySession.deck_id == deck_id,
            StudySession.ended_at.is_(None),
        )
        return self.session.scalar(stmt)

    def create(
        self,
        user_id: UUID,
        deck_id: int,
        started_at: datetime,
        ended_at: Optional[datetime] = None,
    ) -> StudySession:
        study_session = StudySession(
            user_id=user_id,
            deck_id=deck_id,
            started_at=started_at,
            ended_at=ended_at,
            cards_reviewed=0,
            cards_correct=0,
        )
        self.session.add(study_session)
        self.session.flush()
        return study_session

    def record_review(self, study_session: StudySession, correct: bool) -> bool:
        """Bump counters in SQL so concurrent reviews never lose an increment.

        Returns False if the session was closed in the meantime.
        """
        stmt = (
            update(StudySession)
            .where(StudySession.id == study_session.id, StudySession.ended_at.is_(None))
            .values(
                cards_reviewed=StudySession.cards_reviewed + 1,
                cards_correct=StudySession.cards_correct + (1 if correct else 0),
            )
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount != 1:
            return False
        self.session.refresh(study_session)
        return True

    def close(self, study_session: StudySession, ended_at: datetime) -> bool:
        stmt = (
            update(StudySession)
            .where(StudySession.id == study_session.id, StudySession.ended_at.is_(None))
            .values(ended_at=ended_at)
            .execution_options(synchronize_session=False)
        )
        closed = self.session.execute(stmt).rowcount == 1
        self.session.refresh(study_session)
        return closed

    def has_review(self, session_id: int, flashcard_id: int) -> bool:
        stmt = select(FlashcardPerformance.id).where(
            FlashcardPerformance.study_session_id == session_id,
            FlashcardPerformance.flashcard_id == flashcard_id,
        )
        return self.session.scalar(stmt) is not None

    def add_performance(
        self,
        session_id: int,
        flashcard_id: int,
        grade: ReviewGrade,
        reviewed_at: datetime,
        previous_ease_factor: Decimal,
        previous_interval: int,
        new_ease_factor: Decimal,
        new_interval: int,
    ) -> FlashcardPerformance:
        performance = FlashcardPerformance(
            study_session_id=session_id,
            flashcard_id=flashcard_id,
            grade=grade,
            reviewed_at=reviewed_at,
            previous_ease_factor=previous_ease_factor,
            previous_interval=previous_interval,
            new_ease_factor=new_ease_factor,
            new_interval=new_interval,
        )
        self.session.add(performance)
        self.session.flush()
        return performance
