import logging
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APITimeoutError, OpenAI, OpenAIError

from cardsmith.config import Settings, get_settings
from cardsmith.exceptions import (
    LLMConnectionError,
    LLMException,
    LLMResponseError,
    LLMTimeoutError,
)
from cardsmith.services.llm.prompts import (
    FlashcardPromptBuilder,
    FlashcardResponseParser,
    response_format,
)

logger = logging.getLogger(__name__)


class CardGeneratorClient:
    """Client for an OpenAI-compatible chat API (OpenRouter by default) that turns text into cards."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        """Initialize the OpenAI SDK client from settings.

        ``max_retries`` is 0: a retried generation could be billed twice
        against the user's quota, so retrying is left to the caller.
        """
        settings = settings or get_settings()
        self.timeout = float(settings.llm_timeout)
        self.default_model = settings.llm_model
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

        if client is None:
            if not settings.llm_api_key:
                raise LLMException("LLM API key is not configured")
            client = OpenAI(
                api_key=settings.llm_api_key,
                base_url=settings.llm_base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": settings.llm_http_referer,
                    "X-Title": settings.llm_app_title,
                },
            )
        self.client = client
        self.prompt_builder = FlashcardPromptBuilder()
        self.response_parser = FlashcardResponseParser()

    def health_check(self) -> Dict[str, Any]:
        """Check if the LLM endpoint is reachable."""
        try:
            models = self.client.models.list()
            return {
                "status": "healthy",
                "message": "LLM endpoint reachable",
                "model_count": len(models.data),
            }
        except APITimeoutError as e:
            raise LLMTimeoutError(f"LLM service timeout: {e}") from e
        except APIConnectionError as e:
            raise LLMConnectionError(f"Cannot connect to LLM service: {e}") from e
        except OpenAIError as e:
            raise LLMException(f"Health check failed: {e}") from e

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Run one chat completion and return the raw message content."""
        model = model or self.default_model
        logger.info(f"Sending request to LLM: model={model}")
        try:
            completion = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=kwargs.get("temperature", self.temperature),
                max_tokens=kwargs.get("max_tokens", self.max_tokens),
                response_format=kwargs.get("response_format"),
                timeout=self.timeout,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(f"LLM request timeout after {self.timeout}s: {e}") from e
        except APIConnectionError as e:
            raise LLMConnectionError(f"Cannot connect to LLM: {e}") from e
        except OpenAIError as e:
            raise LLMException(f"LLM API error: {e}") from e

        if not completion.choices:
            raise LLMResponseError("LLM returned no choices")
        return {
            "response": completion.choices[0].message.content,
            "model": getattr(completion, "model", model),
        }

    def generate_candidates(self, text: str, count: int) -> List[Any]:
        """Ask the model for up to ``count`` front/back pairs.

        Items are returned unvalidated and the model may exceed ``count``;
        callers check each one individually.
        """
        messages = self.prompt_builder.build_messages(text, count)
        result = self.generate(messages=messages, response_format=response_format)
        parsed = self.response_parser.parse(result["response"])
        if parsed.diagnostics:
            logger.warning(f"LLM response needed fallback parsing: {parsed.diagnostics}")
        logger.info(f"LLM returned {len(parsed.flashcards)} candidate cards (requested {count})")
        return parsed.flashcards
