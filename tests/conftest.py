import threading
import time
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional

import pytest

from cardsmith.config import Settings
from cardsmith.db.interfaces.postgresql import PostgreSQLDatabase
from cardsmith.models import Flashcard
from cardsmith.models.enums import FlashcardSource, FlashcardStatus
from cardsmith.repositories.decks import DeckRepository
from cardsmith.repositories.flashcards import FlashcardsRepository

NOW = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)
TODAY = NOW.date()

SOURCE_TEXT = (
    "Photosynthesis converts light energy into chemical energy stored in glucose. "
    "It takes place in the chloroplasts of plant cells, where chlorophyll absorbs "
    "mostly blue and red light. "
) * 8


class FakeCardGenerator:
    """Stand-in for the LLM client that records every call."""

    def __init__(self, items: Optional[List[Any]] = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.items = items
        self.delay = delay
        self.error = error
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def generate_candidates(self, text: str, count: int) -> List[Any]:
        with self._lock:
            self.calls.append((text, count))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.items is not None:
            return list(self.items)
        return [{"front": f"Question {i}", "back": f"Answer {i}"} for i in range(count)]


@pytest.fixture
def settings():
    return Settings(llm_api_key=None, llm_timeout=5.0)


@pytest.fixture
def database(tmp_path):
    db = PostgreSQLDatabase(f"sqlite:///{tmp_path / 'cardsmith.db'}")
    db.create_tables()
    yield db
    db.teardown()


@pytest.fixture
def session(database):
    with database.get_session() as session:
        yield session


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def other_user_id():
    return uuid.uuid4()


@pytest.fixture
def deck(session, user_id):
    deck = DeckRepository(session).create(user_id, "Biology")
    session.commit()
    return deck


@pytest.fixture
def other_deck(session, other_user_id):
    deck = DeckRepository(session).create(other_user_id, "History")
    session.commit()
    return deck


@pytest.fixture
def make_card(session, deck):
    """Insert a card directly, bypassing the services."""

    def _make(
        front: str = "What is ATP?",
        back: str = "The energy currency of the cell",
        status: FlashcardStatus = FlashcardStatus.NEW,
        due: date = TODAY,
        interval: int = 0,
        ease_factor: Decimal = Decimal("2.50"),
        deck_id: Optional[int] = None,
    ) -> Flashcard:
        card = FlashcardsRepository(session).create(
            deck_id=deck_id or deck.id,
            front=front,
            back=back,
            source=FlashcardSource.MANUAL,
            status=status,
            next_review_date=due,
        )
        card.interval = interval
        card.ease_factor = ease_factor
        session.commit()
        return card

    return _make


def days(n: int) -> timedelta:
    return timedelta(days=n)
