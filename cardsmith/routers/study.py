from typing import Optional

from fastapi import APIRouter, Path, status

from cardsmith.dependencies import CurrentUserDep, StudyDep
from cardsmith.models import Flashcard
from cardsmith.schemas.api.flashcards import FlashcardScheduleDTO
from cardsmith.schemas.api.study import (
    CardPreview,
    NextCardResponse,
    ReviewRequest,
    ReviewResponse,
    SessionSummaryResponse,
    StartSessionRequest,
    StartSessionResponse,
)
from cardsmith.services.clock import as_utc
from cardsmith.services.study import SessionSummary

router = APIRouter(prefix="/study/sessions", tags=["study"])


def _preview(card: Optional[Flashcard]) -> Optional[CardPreview]:
    return CardPreview.model_validate(card) if card is not None else None


def _summary_response(summary: SessionSummary) -> SessionSummaryResponse:
    return SessionSummaryResponse(
        session_id=summary.session_id,
        deck_id=summary.deck_id,
        started_at=summary.started_at,
        ended_at=summary.ended_at,
        cards_reviewed=summary.cards_reviewed,
        cards_correct=summary.cards_correct,
        accuracy_rate=summary.accuracy_rate,
    )


@router.post("", response_model=StartSessionResponse, status_code=status.HTTP_201_CREATED)
def start_session(request: StartSessionRequest, user_id: CurrentUserDep, study: StudyDep):
    """Start studying a deck, or resume the session already open for it."""
    started = study.start(user_id, request.deck_id)
    return StartSessionResponse(
        session_id=started.session.id,
        deck_id=started.session.deck_id,
        started_at=as_utc(started.session.started_at),
        cards_to_review=started.cards_to_review,
        first_card=_preview(started.first_card),
        nothing_due=started.nothing_due,
    )


@router.get("/{session_id}", response_model=SessionSummaryResponse)
def get_session(user_id: CurrentUserDep, study: StudyDep, session_id: int = Path(..., gt=0)):
    return _summary_response(study.get_summary(session_id, user_id))


@router.get("/{session_id}/next", response_model=NextCardResponse)
def get_next_card(user_id: CurrentUserDep, study: StudyDep, session_id: int = Path(..., gt=0)):
    nxt = study.next_card(session_id, user_id)
    return NextCardResponse(
        session_id=session_id,
        next_card=_preview(nxt.card),
        cards_remaining=nxt.cards_remaining,
    )


@router.post("/{session_id}/reviews", response_model=ReviewResponse)
def review_card(
    request: ReviewRequest,
    user_id: CurrentUserDep,
    study: StudyDep,
    session_id: int = Path(..., gt=0),
):
    """Grade a card; returns its new schedule and the next card to show."""
    outcome = study.review(session_id, user_id, request.flashcard_id, request.grade)
    return ReviewResponse(
        flashcard=FlashcardScheduleDTO.model_validate(outcome.flashcard),
        next_card=_preview(outcome.next_card),
        cards_remaining=outcome.cards_remaining,
        session_closed=outcome.session_closed,
    )


@router.post("/{session_id}/end", response_model=SessionSummaryResponse)
def end_session(user_id: CurrentUserDep, study: StudyDep, session_id: int = Path(..., gt=0)):
    return _summary_response(study.end(session_id, user_id))
