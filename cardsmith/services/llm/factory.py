from functools import lru_cache

from cardsmith.services.llm.client import CardGeneratorClient


@lru_cache(maxsize=1)
def make_card_generator() -> CardGeneratorClient:
    """
    Create and return a singleton card generator client.

    Returns:
        CardGeneratorClient: Configured OpenAI-compatible client
    """
    return CardGeneratorClient()
