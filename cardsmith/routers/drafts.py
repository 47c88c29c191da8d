from fastapi import APIRouter, Path, status

from cardsmith.dependencies import CurrentUserDep, DraftsDep
from cardsmith.schemas.api.flashcards import FlashcardDTO

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.post("/{flashcard_id}/accept", response_model=FlashcardDTO)
def accept_draft(
    user_id: CurrentUserDep,
    drafts: DraftsDep,
    flashcard_id: int = Path(..., gt=0),
):
    """Accept an AI draft so it enters study rotation."""
    card = drafts.accept(user_id, flashcard_id)
    return FlashcardDTO.model_validate(card)


@router.delete("/{flashcard_id}", status_code=status.HTTP_204_NO_CONTENT)
def reject_draft(
    user_id: CurrentUserDep,
    drafts: DraftsDep,
    flashcard_id: int = Path(..., gt=0),
):
    drafts.reject(user_id, flashcard_id)
