"""Models for review and statistics results."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class ReviewResult:
    """Outcome of reviewing a flashcard."""
    flashcard_id: int
    quality: int
    next_review_date: datetime
    interval_days: int
    ease_factor: float
    repetitions: int
    is_mastered: bool
    became_mastered: bool = False
    set_completed: bool = False

    @property
    def passed(self) -> bool:
        return self.repetitions > 0

    @property
    def message(self) -> str:
        if self.passed:
            return f"Well done! Next review in {self.interval_days} day(s)."
        return "Try again!"


@dataclass
class SetStatistics:
    """User's progress over one flashcard set."""
    set_id: int
    total_cards: int
    reviewed_cards: int
    mastered_cards: int
    cards_due_for_review: int
    is_completed: bool = False
    last_accessed_at: Optional[datetime] = None

    @property
    def progress_percentage(self) -> float:
        if self.total_cards == 0:
            return 0.0
        return self.reviewed_cards * 100.0 / self.total_cards

    @property
    def mastery_percentage(self) -> float:
        if self.total_cards == 0:
            return 0.0
        return self.mastered_cards * 100.0 / self.total_cards
