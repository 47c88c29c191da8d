from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from cardsmith.models.enums import FlashcardSource, FlashcardStatus
from cardsmith.schemas.flashcards import CandidateFailure


class FlashcardDTO(BaseModel):
    """Flashcard as returned to the generation and draft review screens."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    front: str
    back: str
    status: FlashcardStatus
    source: FlashcardSource


class FlashcardScheduleDTO(BaseModel):
    """Scheduling state of a card after a review."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ease_factor: Decimal = Field(..., description="Two decimal places, within [1.30, 4.00]")
    interval: int = Field(..., ge=0, description="Days until the next review")
    next_review_date: date


class GenerateRequest(BaseModel):
    """Request body for AI flashcard generation."""

    deck_id: int = Field(..., gt=0, description="Target deck, must belong to the caller")
    text: str = Field(..., description="Source text (1000-10000 characters)")
    max_cards: int = Field(10, description="Upper bound on cards to generate (1-50)")

    class Config:
        json_schema_extra = {
            "example": {
                "deck_id": 1,
                "text": "Photosynthesis is the process by which green plants ...",
                "max_cards": 10,
            }
        }


class GenerateResponse(BaseModel):
    generation_id: int
    deck_id: int
    flashcards: List[FlashcardDTO]
    cards_generated: int
    failures: List[CandidateFailure] = Field(
        default_factory=list,
        description="Generated items that were not stored, with reasons",
    )


class UsageResponse(BaseModel):
    daily_limit: int
    used_today: int
    remaining: int
    reset_at: str = Field(..., description="ISO-8601 UTC timestamp of the next quota reset")
