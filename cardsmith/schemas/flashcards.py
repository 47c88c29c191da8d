from pydantic import BaseModel, ConfigDict, Field

from cardsmith.models.flashcard import BACK_MAX_LENGTH, FRONT_MAX_LENGTH


class CardCandidate(BaseModel):
    """A front/back pair proposed by the card generator, checked before it is stored."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    front: str = Field(..., min_length=1, max_length=FRONT_MAX_LENGTH)
    back: str = Field(..., min_length=1, max_length=BACK_MAX_LENGTH)


class CandidateFailure(BaseModel):
    """A generated item that was not stored, with the reason."""

    index: int = Field(..., description="Position of the item in the generator output")
    reason: str
