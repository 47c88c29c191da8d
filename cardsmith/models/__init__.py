from cardsmith.models.deck import Deck
from cardsmith.models.enums import FlashcardSource, FlashcardStatus, ReviewGrade
from cardsmith.models.flashcard import Flashcard
from cardsmith.models.generation_log import AIGenerationLog
from cardsmith.models.study_session import FlashcardPerformance, StudySession

__all__ = [
    "Deck",
    "Flashcard",
    "AIGenerationLog",
    "StudySession",
    "FlashcardPerformance",
    "FlashcardStatus",
    "FlashcardSource",
    "ReviewGrade",
]
