"""
Spaced-repetition scheduling.

Pure SM-2 style update of a card's ease factor, interval and due date from a
review grade. No database access and no clock reads: the review date is
always passed in, so the same inputs give the same outputs everywhere.

All arithmetic is done in ``Decimal``. The ease factor is kept at two decimal
places (ROUND_HALF_UP) and clamped to [1.30, 4.00] after every grade; day
intervals are rounded half-up to whole days.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from cardsmith.models.enums import ReviewGrade
from cardsmith.models.flashcard import (
    DEFAULT_EASE_FACTOR,
    MAX_EASE_FACTOR,
    MIN_EASE_FACTOR,
)

TWO_PLACES = Decimal("0.01")
WHOLE_DAY = Decimal("1")

AGAIN_EASE_PENALTY = Decimal("0.20")
HARD_EASE_PENALTY = Decimal("0.15")
EASY_EASE_BONUS = Decimal("0.15")
HARD_INTERVAL_MULTIPLIER = Decimal("1.2")
EASY_INTERVAL_MULTIPLIER = Decimal("1.3")


@dataclass(frozen=True)
class CardSchedule:
    """Scheduling state read from a card before a review."""

    ease_factor: Decimal = DEFAULT_EASE_FACTOR
    interval: int = 0


@dataclass(frozen=True)
class ScheduleResult:
    ease_factor: Decimal
    interval: int
    next_review_date: date


def to_ease_factor(value: Union[Decimal, float, int, str]) -> Decimal:
    """Quantize to two places, half-up, and clamp to the allowed range."""
    if isinstance(value, float):
        # go through repr so 2.35 stays 2.35 rather than its binary expansion
        value = str(value)
    quantized = Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return min(MAX_EASE_FACTOR, max(MIN_EASE_FACTOR, quantized))


def round_days(value: Decimal) -> int:
    return int(value.quantize(WHOLE_DAY, rounding=ROUND_HALF_UP))


class SchedulingEngine:
    """Stateless; one instance can be shared across threads."""

    def apply(
        self,
        current: CardSchedule,
        grade: Union[ReviewGrade, str],
        review_date: date,
    ) -> ScheduleResult:
        grade = ReviewGrade(grade)
        ease = to_ease_factor(current.ease_factor)
        interval = max(0, int(current.interval))

        if grade is ReviewGrade.AGAIN:
            # back into learning, due again today
            return ScheduleResult(
                ease_factor=to_ease_factor(ease - AGAIN_EASE_PENALTY),
                interval=0,
                next_review_date=review_date,
            )

        if grade is ReviewGrade.HARD:
            new_ease = to_ease_factor(ease - HARD_EASE_PENALTY)
            new_interval = round_days(interval * HARD_INTERVAL_MULTIPLIER)
        elif grade is ReviewGrade.GOOD:
            new_ease = ease
            new_interval = 1 if interval == 0 else round_days(interval * ease)
        else:
            new_ease = to_ease_factor(ease + EASY_EASE_BONUS)
            base = Decimal(1) if interval == 0 else interval * ease
            new_interval = round_days(base * EASY_INTERVAL_MULTIPLIER)

        new_interval = max(1, new_interval)
        return ScheduleResult(
            ease_factor=new_ease,
            interval=new_interval,
            next_review_date=review_date + timedelta(days=new_interval),
        )
