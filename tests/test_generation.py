import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cardsmith.exceptions import (
    AuthorizationError,
    GenerationServiceError,
    InternalError,
    LLMTimeoutError,
    QuotaExceededError,
    ValidationError,
)
from cardsmith.models import AIGenerationLog, Flashcard
from cardsmith.models.enums import FlashcardSource, FlashcardStatus
from cardsmith.repositories.generation_logs import GenerationLogRepository
from cardsmith.services.generation import GenerationOrchestrator
from tests.conftest import NOW, SOURCE_TEXT, TODAY, FakeCardGenerator


def _orchestrator(session, settings, generator, **kwargs):
    return GenerationOrchestrator(session=session, generator=generator, settings=settings, **kwargs)


def _logged_cards(session, user_id):
    stmt = select(func.coalesce(func.sum(AIGenerationLog.cards_count), 0)).where(
        AIGenerationLog.user_id == user_id
    )
    return session.scalar(stmt)


def _card_count(session, deck_id):
    return session.scalar(select(func.count(Flashcard.id)).where(Flashcard.deck_id == deck_id))


def _use_quota(session, user_id, count):
    GenerationLogRepository(session).add(user_id, count, NOW)
    session.commit()


def test_generates_draft_cards(session, settings, user_id, deck):
    generator = FakeCardGenerator()
    result = _orchestrator(session, settings, generator).generate(
        user_id, deck.id, SOURCE_TEXT, max_cards=5, now=NOW
    )

    assert generator.calls == [(SOURCE_TEXT, 5)]
    assert result.cards_generated == 5
    assert result.failures == []
    assert all(card.status is FlashcardStatus.DRAFT for card in result.flashcards)
    assert all(card.source is FlashcardSource.AI for card in result.flashcards)
    assert all(card.next_review_date == TODAY for card in result.flashcards)
    assert _logged_cards(session, user_id) == 5
    log = session.get(AIGenerationLog, result.generation_id)
    assert log.cards_count == 5


def test_request_is_capped_at_remaining_quota(session, settings, user_id, deck):
    _use_quota(session, user_id, 45)
    generator = FakeCardGenerator()

    result = _orchestrator(session, settings, generator).generate(
        user_id, deck.id, SOURCE_TEXT, max_cards=20, now=NOW
    )

    assert generator.calls[0][1] == 5
    assert result.cards_generated <= 5
    assert _logged_cards(session, user_id) == 50


def test_extra_items_from_generator_are_reported(session, settings, user_id, deck):
    items = [{"front": f"Q{i}", "back": f"A{i}"} for i in range(8)]
    generator = FakeCardGenerator(items=items)

    result = _orchestrator(session, settings, generator).generate(
        user_id, deck.id, SOURCE_TEXT, max_cards=5, now=NOW
    )

    assert result.cards_generated == 5
    assert [f.index for f in result.failures] == [5, 6, 7]
    assert _logged_cards(session, user_id) == 5


def test_malformed_items_are_skipped_not_fatal(session, settings, user_id, deck):
    items = [
        {"front": "   ", "back": "blank front"},
        {"front": "Where does photosynthesis happen?", "back": "In the chloroplasts"},
        "not an object",
        {"front": "x" * 201, "back": "too long front"},
        {"front": "Missing back"},
    ]
    generator = FakeCardGenerator(items=items)

    result = _orchestrator(session, settings, generator).generate(
        user_id, deck.id, SOURCE_TEXT, max_cards=10, now=NOW
    )

    assert result.cards_generated == 1
    assert result.flashcards[0].front == "Where does photosynthesis happen?"
    assert sorted(f.index for f in result.failures) == [0, 2, 3, 4]
    # only persisted cards count against the quota
    assert _logged_cards(session, user_id) == 1


def test_all_items_malformed(session, settings, user_id, deck):
    generator = FakeCardGenerator(items=[{"front": ""}, {"back": "no front"}])

    with pytest.raises(GenerationServiceError):
        _orchestrator(session, settings, generator).generate(user_id, deck.id, SOURCE_TEXT, now=NOW)

    assert _logged_cards(session, user_id) == 0
    assert _card_count(session, deck.id) == 0


def test_quota_exhausted_skips_generator(session, settings, user_id, deck):
    _use_quota(session, user_id, 50)
    generator = FakeCardGenerator()

    with pytest.raises(QuotaExceededError) as exc_info:
        _orchestrator(session, settings, generator).generate(user_id, deck.id, SOURCE_TEXT, now=NOW)

    assert generator.calls == []
    assert exc_info.value.details["remaining"] == 0
    assert exc_info.value.details["reset_at"].startswith("2026-03-15T00:00:00")


def test_foreign_deck_is_rejected_before_generation(session, settings, user_id, other_deck):
    generator = FakeCardGenerator()

    with pytest.raises(AuthorizationError):
        _orchestrator(session, settings, generator).generate(
            user_id, other_deck.id, SOURCE_TEXT, now=NOW
        )
    assert generator.calls == []


def test_missing_deck_is_rejected(session, settings, user_id):
    with pytest.raises(AuthorizationError):
        _orchestrator(session, settings, FakeCardGenerator()).generate(
            user_id, 9999, SOURCE_TEXT, now=NOW
        )


@pytest.mark.parametrize(
    "text, max_cards",
    [
        ("too short", 10),
        ("x" * 10001, 10),
        (SOURCE_TEXT, 0),
        (SOURCE_TEXT, 51),
    ],
)
def test_invalid_requests(session, settings, user_id, deck, text, max_cards):
    generator = FakeCardGenerator()

    with pytest.raises(ValidationError):
        _orchestrator(session, settings, generator).generate(
            user_id, deck.id, text, max_cards=max_cards, now=NOW
        )
    assert generator.calls == []


def test_generator_timeout(session, settings, user_id, deck):
    generator = FakeCardGenerator(delay=0.5)

    with pytest.raises(GenerationServiceError):
        _orchestrator(session, settings, generator, timeout=0.05).generate(
            user_id, deck.id, SOURCE_TEXT, now=NOW
        )

    assert _logged_cards(session, user_id) == 0
    assert _card_count(session, deck.id) == 0


def test_generator_error_is_wrapped(session, settings, user_id, deck):
    generator = FakeCardGenerator(error=LLMTimeoutError("upstream timed out"))

    with pytest.raises(GenerationServiceError) as exc_info:
        _orchestrator(session, settings, generator).generate(user_id, deck.id, SOURCE_TEXT, now=NOW)

    assert isinstance(exc_info.value.__cause__, LLMTimeoutError)
    assert _logged_cards(session, user_id) == 0


def test_persistence_failure_logs_generated_cards(session, settings, user_id, deck, caplog):
    orchestrator = _orchestrator(session, settings, FakeCardGenerator())
    orchestrator.flashcards.create_drafts = Mock(
        side_effect=OperationalError("INSERT INTO flashcards", {}, Exception("disk I/O error"))
    )

    with caplog.at_level(logging.ERROR, logger="cardsmith.services.generation"):
        with pytest.raises(InternalError):
            orchestrator.generate(user_id, deck.id, SOURCE_TEXT, max_cards=2, now=NOW)

    assert "Question 0" in caplog.text
    assert "Answer 1" in caplog.text
    assert _logged_cards(session, user_id) == 0


def test_concurrent_requests_never_exceed_daily_limit(database, settings, user_id, deck):
    generator = FakeCardGenerator(delay=0.05)
    barrier = threading.Barrier(10)

    def run():
        with database.get_session() as session:
            orchestrator = _orchestrator(session, settings, generator)
            barrier.wait()
            try:
                return orchestrator.generate(user_id, deck.id, SOURCE_TEXT, max_cards=10, now=NOW)
            except QuotaExceededError:
                return None

    with ThreadPoolExecutor(max_workers=10) as pool:
        results = list(pool.map(lambda _: run(), range(10)))

    persisted = sum(r.cards_generated for r in results if r is not None)
    with database.get_session() as session:
        assert _logged_cards(session, user_id) == persisted
        assert _card_count(session, deck.id) == persisted
    assert persisted <= 50
    assert persisted == 50


def test_generator_wait_is_not_charged_for_queueing(database, settings, user_id, deck):
    # more requests in flight than a small worker pool would hold
    generator = FakeCardGenerator(delay=0.3)
    barrier = threading.Barrier(12)

    def run():
        with database.get_session() as session:
            orchestrator = _orchestrator(session, settings, generator, timeout=1.0)
            barrier.wait()
            try:
                return orchestrator.generate(user_id, deck.id, SOURCE_TEXT, max_cards=2, now=NOW)
            except GenerationServiceError as e:
                return e

    with ThreadPoolExecutor(max_workers=12) as pool:
        results = list(pool.map(lambda _: run(), range(12)))

    errors = [r for r in results if isinstance(r, GenerationServiceError)]
    assert errors == []
    assert sum(r.cards_generated for r in results) == 24
    assert len(generator.calls) == 12
