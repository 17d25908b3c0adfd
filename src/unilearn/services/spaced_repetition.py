"""SM-2 (SuperMemo 2) spaced repetition scheduling.

Quality scale:
    5 - perfect response
    4 - correct response after a hesitation
    3 - correct response recalled with serious difficulty
    2 - incorrect response; the correct one seemed easy to recall
    1 - incorrect response; the correct one remembered
    0 - complete blackout
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from unilearn.config import MAX_QUALITY, MIN_QUALITY, SpacedRepetitionSettings, settings
from unilearn.models.base import as_utc, utcnow

logger = logging.getLogger(__name__)


class InvalidQuality(ValueError):
    """Raised when a review quality score is outside the 0-5 scale."""

    def __init__(self, quality: Any):
        self.quality = quality
        super().__init__(f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality!r}")


def validate_quality(quality: Any) -> int:
    """Return quality if it is an integer on the 0-5 scale, else raise InvalidQuality."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidQuality(quality)
    return quality


class SpacedRepetitionService:
    """Applies SM-2 reviews to progress records.

    A progress record is any object exposing ``ease_factor``, ``interval``,
    ``repetitions``, ``next_review_date`` and ``last_reviewed_at``.
    """

    def __init__(self, srs_settings: Optional[SpacedRepetitionSettings] = None):
        self.settings = srs_settings or settings.srs

    def review(self, progress, quality: int, now: Optional[datetime] = None):
        """Update progress in place after a review and return it."""
        quality = validate_quality(quality)
        now = now or utcnow()

        progress.last_reviewed_at = now

        if quality < self.settings.pass_threshold:
            # Recall failed, start over and show the card again right away
            progress.repetitions = 0
            progress.interval = 0
            progress.next_review_date = now
        else:
            progress.repetitions += 1
            if progress.repetitions == 1:
                progress.interval = self.settings.first_interval
            elif progress.repetitions == 2:
                progress.interval = self.settings.second_interval
            else:
                progress.interval = math.ceil(progress.interval * progress.ease_factor)
            progress.next_review_date = now + timedelta(days=progress.interval)

        progress.ease_factor = self.next_ease_factor(progress.ease_factor, quality)

        logger.debug(
            f"Reviewed with quality {quality}: reps={progress.repetitions} "
            f"interval={progress.interval} ef={progress.ease_factor:.2f}"
        )
        return progress

    def next_ease_factor(self, ease_factor: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored."""
        miss = MAX_QUALITY - quality
        return max(self.settings.min_ease_factor, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))

    def is_due_for_review(self, progress, now: Optional[datetime] = None) -> bool:
        """Check whether the card should be shown again."""
        if progress.next_review_date is None:
            return True
        return as_utc(progress.next_review_date) <= (now or utcnow())

    def is_mastered(self, progress) -> bool:
        """A card is mastered after enough consecutive successes with a healthy ease factor."""
        return (
            progress.repetitions >= self.settings.mastery_repetitions
            and progress.ease_factor >= self.settings.mastery_ease_factor
        )


def review(progress, quality: int, now: Optional[datetime] = None):
    """Apply one SM-2 review with the configured settings."""
    return SpacedRepetitionService().review(progress, quality, now)
