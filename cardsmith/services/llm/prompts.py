import json
import logging
import re
from typing import List, Optional

from cardsmith.exceptions import LLMResponseError
from cardsmith.schemas.llm import FLASHCARDS_JSON_SCHEMA, GeneratedCardsResponse

logger = logging.getLogger(__name__)

response_format = {
    "type": "json_schema",
    "json_schema": {
        "name": "flashcard_generation",
        "strict": True,
        "schema": FLASHCARDS_JSON_SCHEMA,
    },
}

# Markers that let pasted text pose as chat roles or instructions
_INJECTION_PATTERNS = [
    (re.compile(r"```"), ""),
    (re.compile(r"\[/?INST\]", re.IGNORECASE), ""),
    (re.compile(r"<\|im_(start|end)\|>", re.IGNORECASE), ""),
    (re.compile(r"^(system|assistant|user):", re.IGNORECASE | re.MULTILINE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
    (re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]"), ""),
]


class FlashcardPromptBuilder:
    """Builds chat messages for flashcard generation."""

    system_prompt = (
        "You are an expert at creating high-quality flashcards for learning and memorization.\n\n"
        "Analyze the provided text and generate flashcards that:\n"
        "- Focus on the most important concepts, facts, and relationships\n"
        "- Have clear, concise questions on the front (at most 200 characters)\n"
        "- Provide complete, accurate answers on the back (at most 500 characters)\n"
        "- Avoid ambiguity or trick questions\n"
        "- Use active recall principles\n\n"
        "Respond ONLY with valid JSON matching the provided schema. "
        "Do not include any text outside the JSON object."
    )

    @staticmethod
    def sanitize_text(text: str) -> str:
        cleaned = text.strip()
        for pattern, replacement in _INJECTION_PATTERNS:
            cleaned = pattern.sub(replacement, cleaned)
        return cleaned

    def build_messages(self, text: str, max_cards: int) -> List[dict]:
        user_prompt = (
            f"Generate up to {max_cards} flashcards from the following text. "
            "Focus on the most important concepts and information.\n\n"
            f"Text:\n{self.sanitize_text(text)}"
        )
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_prompt},
        ]


class FlashcardResponseParser:
    """Parser for generator responses."""

    @staticmethod
    def parse(content: Optional[str]) -> GeneratedCardsResponse:
        """Parse the model output into raw flashcard items.

        Args:
            content: Raw message content from the chat completion

        Returns:
            GeneratedCardsResponse with the unvalidated items

        Raises:
            LLMResponseError: no JSON object with a ``flashcards`` array was found
        """
        if not content:
            raise LLMResponseError("No content in LLM response")

        diagnostics: List[str] = []
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            diagnostics.append(f"json_decode_error: {e.msg}")
            logger.warning("Failed to decode LLM response as JSON: %s", e)
            data = FlashcardResponseParser._extract_json_fallback(content)

        if not isinstance(data, dict) or not isinstance(data.get("flashcards"), list):
            raise LLMResponseError("LLM response does not contain a flashcards array")

        return GeneratedCardsResponse(flashcards=data["flashcards"], diagnostics=diagnostics)

    @staticmethod
    def _extract_json_fallback(content: str) -> dict:
        match = re.search(r"\{.*\"flashcards\".*\}", content, re.DOTALL)
        if not match:
            raise LLMResponseError("No valid JSON found in LLM response")
        try:
            return json.loads(match.group())
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Failed to parse JSON from LLM response: {e.msg}") from e
