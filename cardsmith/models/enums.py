from enum import Enum


class FlashcardStatus(str, Enum):
    """Lifecycle of a flashcard: draft -> new -> finalized, never backwards."""

    DRAFT = "draft"
    NEW = "new"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def can_transition_to(self, target: "FlashcardStatus") -> bool:
        """finalized -> finalized is allowed: every review re-finalizes the card."""
        if self is FlashcardStatus.FINALIZED:
            return target is FlashcardStatus.FINALIZED
        return target.rank == self.rank + 1

    @property
    def is_studyable(self) -> bool:
        return self is not FlashcardStatus.DRAFT


_STATUS_ORDER = [FlashcardStatus.DRAFT, FlashcardStatus.NEW, FlashcardStatus.FINALIZED]


class FlashcardSource(str, Enum):
    MANUAL = "manual"
    AI = "ai"


class ReviewGrade(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def is_correct(self) -> bool:
        return self in (ReviewGrade.GOOD, ReviewGrade.EASY)


def db_enum(enum_cls, name: str):
    """Portable VARCHAR + CHECK storage for a str Enum, keyed by value."""
    from sqlalchemy import Enum as SAEnum

    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )
