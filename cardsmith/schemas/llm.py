"""Pydantic models for OpenAI structured outputs."""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class GeneratedCardsResponse(BaseModel):
    """Structured response expected from the card generator.

    Items are kept as raw dicts: each one is validated on its own later so a
    single malformed card does not discard the batch.
    """

    model_config = ConfigDict(extra="ignore")

    flashcards: List[Any] = Field(
        default_factory=list,
        description="Generated front/back pairs",
    )
    diagnostics: List[str] = Field(
        default_factory=list,
        description="Notes about parsing fallbacks (for logging/observability)",
    )


FLASHCARDS_JSON_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "flashcards": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "front": {
                        "type": "string",
                        "description": "The question or prompt for the flashcard",
                    },
                    "back": {
                        "type": "string",
                        "description": "The answer or explanation for the flashcard",
                    },
                },
                "required": ["front", "back"],
            },
        },
    },
    "required": ["flashcards"],
}
