import itertools
from datetime import date, timedelta
from decimal import Decimal

import pytest

from cardsmith.models.enums import ReviewGrade
from cardsmith.services.scheduling import CardSchedule, SchedulingEngine, to_ease_factor

REVIEW_DATE = date(2026, 3, 14)


@pytest.fixture
def engine():
    return SchedulingEngine()


def test_good_on_new_card_schedules_tomorrow(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 0), ReviewGrade.GOOD, REVIEW_DATE)

    assert result.interval == 1
    assert result.ease_factor == Decimal("2.50")
    assert result.next_review_date == REVIEW_DATE + timedelta(days=1)


def test_good_rounds_half_up(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 1), "good", REVIEW_DATE)

    assert result.interval == 3
    assert result.next_review_date == REVIEW_DATE + timedelta(days=3)


def test_repeated_good_grows_interval_strictly(engine):
    state = CardSchedule()
    intervals = []
    for _ in range(6):
        result = engine.apply(state, ReviewGrade.GOOD, REVIEW_DATE)
        intervals.append(result.interval)
        state = CardSchedule(result.ease_factor, result.interval)

    assert intervals[:4] == [1, 3, 8, 20]
    assert all(later > earlier for earlier, later in zip(intervals, intervals[1:]))


@pytest.mark.parametrize("interval", [0, 1, 15, 200])
def test_again_resets_to_review_date(engine, interval):
    result = engine.apply(CardSchedule(Decimal("2.50"), interval), ReviewGrade.AGAIN, REVIEW_DATE)

    assert result.interval == 0
    assert result.next_review_date == REVIEW_DATE
    assert result.ease_factor == Decimal("2.30")


def test_hard_shrinks_ease_and_grows_interval_slowly(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 10), ReviewGrade.HARD, REVIEW_DATE)

    assert result.ease_factor == Decimal("2.35")
    assert result.interval == 12


def test_hard_on_new_card_is_at_least_one_day(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 0), ReviewGrade.HARD, REVIEW_DATE)

    assert result.interval == 1
    assert result.next_review_date == REVIEW_DATE + timedelta(days=1)


def test_easy_uses_ease_from_before_the_review(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 10), ReviewGrade.EASY, REVIEW_DATE)

    # 10 * 2.50 * 1.3 = 32.5
    assert result.interval == 33
    assert result.ease_factor == Decimal("2.65")


def test_easy_on_new_card(engine):
    result = engine.apply(CardSchedule(Decimal("2.50"), 0), ReviewGrade.EASY, REVIEW_DATE)

    assert result.interval == 1
    assert result.ease_factor == Decimal("2.65")


def test_ease_floor(engine):
    result = engine.apply(CardSchedule(Decimal("1.35"), 4), ReviewGrade.AGAIN, REVIEW_DATE)
    assert result.ease_factor == Decimal("1.30")


def test_ease_ceiling(engine):
    result = engine.apply(CardSchedule(Decimal("3.95"), 4), ReviewGrade.EASY, REVIEW_DATE)
    assert result.ease_factor == Decimal("4.00")


def test_out_of_range_legacy_ease_is_clamped_before_use(engine):
    result = engine.apply(CardSchedule(Decimal("5.10"), 2), ReviewGrade.GOOD, REVIEW_DATE)

    assert result.ease_factor == Decimal("4.00")
    assert result.interval == 8


def test_ease_stays_in_bounds_for_every_grade_sequence(engine):
    grades = list(ReviewGrade)
    for sequence in itertools.product(grades, repeat=4):
        state = CardSchedule()
        for grade in sequence:
            result = engine.apply(state, grade, REVIEW_DATE)
            assert Decimal("1.30") <= result.ease_factor <= Decimal("4.00")
            assert result.interval >= 0
            state = CardSchedule(result.ease_factor, result.interval)


@pytest.mark.parametrize(
    "value, expected",
    [
        (2.345, Decimal("2.35")),
        ("2.344", Decimal("2.34")),
        (Decimal("1.2"), Decimal("1.30")),
        (7, Decimal("4.00")),
    ],
)
def test_to_ease_factor(value, expected):
    assert to_ease_factor(value) == expected


def test_unknown_grade_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.apply(CardSchedule(), "perfect", REVIEW_DATE)
