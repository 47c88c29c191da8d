from cardsmith.schemas.api.common import ErrorDetail, ErrorResponse, HealthResponse
from cardsmith.schemas.api.flashcards import (
    FlashcardDTO,
    FlashcardScheduleDTO,
    GenerateRequest,
    GenerateResponse,
    UsageResponse,
)
from cardsmith.schemas.api.study import (
    CardPreview,
    NextCardResponse,
    ReviewRequest,
    ReviewResponse,
    SessionSummaryResponse,
    StartSessionRequest,
    StartSessionResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "FlashcardDTO",
    "FlashcardScheduleDTO",
    "GenerateRequest",
    "GenerateResponse",
    "UsageResponse",
    "CardPreview",
    "StartSessionRequest",
    "StartSessionResponse",
    "ReviewRequest",
    "ReviewResponse",
    "NextCardResponse",
    "SessionSummaryResponse",
]
