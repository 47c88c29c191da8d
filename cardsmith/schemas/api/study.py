from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cardsmith.models.enums import ReviewGrade
from cardsmith.schemas.api.flashcards import FlashcardScheduleDTO


class CardPreview(BaseModel):
    """Front side only; the back stays hidden until the card is graded."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    front: str


class StartSessionRequest(BaseModel):
    deck_id: int = Field(..., gt=0)


class StartSessionResponse(BaseModel):
    session_id: int
    deck_id: int
    started_at: datetime
    cards_to_review: int
    first_card: Optional[CardPreview] = None
    nothing_due: bool = Field(
        False, description="True when the deck had no due cards at start"
    )


class ReviewRequest(BaseModel):
    flashcard_id: int = Field(..., gt=0)
    grade: ReviewGrade

    class Config:
        json_schema_extra = {"example": {"flashcard_id": 42, "grade": "good"}}


class ReviewResponse(BaseModel):
    flashcard: FlashcardScheduleDTO
    next_card: Optional[CardPreview] = None
    cards_remaining: int
    session_closed: bool = Field(
        False, description="True when this review exhausted the due cards"
    )


class NextCardResponse(BaseModel):
    session_id: int
    next_card: Optional[CardPreview] = None
    cards_remaining: int


class SessionSummaryResponse(BaseModel):
    session_id: int
    deck_id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    cards_reviewed: int
    cards_correct: int
    accuracy_rate: float
