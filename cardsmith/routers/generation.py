from fastapi import APIRouter, status

from cardsmith.dependencies import CurrentUserDep, GenerationDep, QuotaDep
from cardsmith.schemas.api.flashcards import (
    FlashcardDTO,
    GenerateRequest,
    GenerateResponse,
    UsageResponse,
)
from cardsmith.services.clock import utc_now

router = APIRouter(prefix="/generations", tags=["generation"])


@router.post("", response_model=GenerateResponse, status_code=status.HTTP_201_CREATED)
def generate_flashcards(
    request: GenerateRequest,
    user_id: CurrentUserDep,
    orchestrator: GenerationDep,
):
    """Generate draft flashcards from text, within the caller's daily quota."""
    result = orchestrator.generate(
        user_id=user_id,
        deck_id=request.deck_id,
        text=request.text,
        max_cards=request.max_cards,
    )
    return GenerateResponse(
        generation_id=result.generation_id,
        deck_id=result.deck_id,
        flashcards=[FlashcardDTO.model_validate(card) for card in result.flashcards],
        cards_generated=result.cards_generated,
        failures=result.failures,
    )


@router.get("/usage", response_model=UsageResponse)
def get_usage(user_id: CurrentUserDep, quota: QuotaDep):
    """Today's AI generation usage for the caller (UTC day)."""
    snapshot = quota.usage(user_id, utc_now())
    return UsageResponse(
        daily_limit=snapshot.daily_limit,
        used_today=snapshot.used_today,
        remaining=snapshot.remaining,
        reset_at=snapshot.reset_at.isoformat(),
    )
