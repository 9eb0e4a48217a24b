"""Spaced-repetition scheduling helpers for flashcard reviews."""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from src.review.cards import DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR, Card, from_millis, to_millis


LOGGER = logging.getLogger(__name__)

AGAIN_INTERVAL = 60_000
HARD_INTERVAL_MULTIPLIER = 1.2
GOOD_INTERVAL_FIRST_TIME = 600_000
GRADUATING_INTERVAL = 86_400_000
EASY_INTERVAL = 345_600_000
EASY_BONUS = 1.3

_EASE_DELTAS = {
    "again": -20,
    "hard": -15,
    "good": 0,
    "easy": 15,
}


class Rating(str, enum.Enum):
    """Self-assessed recall quality for a reviewed card."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value: Union["Rating", str]) -> Optional["Rating"]:
        """Return the matching rating or ``None`` for unrecognized input."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(slots=True)
class ScheduleUpdate:
    """Calculated review data for a card after receiving a rating."""

    unique_id: str
    interval: int
    ease_factor: int
    next_review: int
    review_count: int

    @property
    def next_review_at(self) -> datetime:
        return from_millis(self.next_review)

    def to_record(self) -> Dict[str, Any]:
        """Return the serializable pending-update record for this schedule."""
        return {
            "uniqueId": self.unique_id,
            "interval": self.interval,
            "easeFactor": self.ease_factor,
            "nextReview": self.next_review,
            "reviewCount": self.review_count,
        }


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards positive infinity."""
    return math.floor(value + 0.5)


def compute_next_schedule(
    card: Card,
    rating: Union[Rating, str],
    now: Optional[datetime] = None,
) -> ScheduleUpdate:
    """Return the next schedule for ``card`` after it was rated."""
    if now is None:
        now = datetime.now(timezone.utc)

    ease_factor = max(MIN_EASE_FACTOR, card.ease_factor or DEFAULT_EASE_FACTOR)
    interval = card.interval or 0
    first_review = card.is_first_review
    parsed = Rating.parse(rating)

    if parsed is Rating.AGAIN:
        next_interval: float = AGAIN_INTERVAL
    elif parsed is Rating.HARD:
        next_interval = GOOD_INTERVAL_FIRST_TIME if first_review else round_half_up(interval * HARD_INTERVAL_MULTIPLIER)
    elif parsed is Rating.GOOD:
        next_interval = GRADUATING_INTERVAL if first_review else round_half_up(interval * (ease_factor / 100))
    elif parsed is Rating.EASY:
        next_interval = EASY_INTERVAL if first_review else round_half_up(interval * (ease_factor / 100) * EASY_BONUS)
    else:
        LOGGER.warning("Unknown rating %r for card %s; keeping its interval.", rating, card.unique_id)
        next_interval = interval

    delta = _EASE_DELTAS[parsed.value] if parsed is not None else 0
    next_ease_factor = max(MIN_EASE_FACTOR, ease_factor + delta)
    next_interval = max(AGAIN_INTERVAL, round_half_up(next_interval))
    review_count = (card.review_count or 0) + (1 if parsed is not None else 0)

    return ScheduleUpdate(
        unique_id=card.unique_id,
        interval=next_interval,
        ease_factor=next_ease_factor,
        next_review=to_millis(now) + next_interval,
        review_count=review_count,
    )
