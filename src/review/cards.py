"""Card model and normalization helpers for stored flashcard documents."""

from __future__ import annotations

import hashlib
import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union


LOGGER = logging.getLogger(__name__)

DEFAULT_EASE_FACTOR = 250
MIN_EASE_FACTOR = 130
# Stored decks written before reviews were tracked use an interval of 1 to mean "never reviewed".
LEGACY_FIRST_REVIEW_INTERVAL = 1

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_KNOWN_KEYS = frozenset(
    {"uniqueId", "question", "answer", "options", "interval", "easeFactor", "nextReview", "reviewCount"}
)


def to_millis(moment: datetime) -> int:
    """Convert a datetime into epoch milliseconds, treating naive values as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)


def from_millis(millis: int) -> datetime:
    """Convert epoch milliseconds into an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=millis)


def _is_number(value: object) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def normalize_timestamp(raw: object) -> Optional[int]:
    """Normalize any supported timestamp shape into epoch milliseconds.

    Accepted inputs are datetimes, raw epoch-millisecond numbers and
    ``{seconds, nanoseconds}`` pairs (as mappings or attribute objects).
    Anything else, including ``None``, yields ``None`` which means "unset".
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return to_millis(raw)
    if _is_number(raw):
        return int(raw)

    if isinstance(raw, Mapping):
        seconds = raw.get("seconds")
        nanoseconds = raw.get("nanoseconds")
    else:
        seconds = getattr(raw, "seconds", None)
        nanoseconds = getattr(raw, "nanoseconds", None)
    if _is_number(seconds) and _is_number(nanoseconds):
        return int(seconds * 1000 + nanoseconds / 1_000_000)

    LOGGER.debug("Unrecognized timestamp value %r treated as unset.", raw)
    return None


def _normalize_interval(raw: object) -> Optional[int]:
    if not _is_number(raw):
        return None
    return int(raw)


def _normalize_ease_factor(raw: object) -> Union[int, float]:
    if not _is_number(raw) or not raw:
        return DEFAULT_EASE_FACTOR
    # Fractional values such as 2.5 are kept as stored and clamped when scheduled.
    return int(raw) if float(raw).is_integer() else raw


def _derive_review_count(raw_count: object, raw_interval: object) -> int:
    if _is_number(raw_count) and raw_count >= 0:
        return int(raw_count)
    interval = _normalize_interval(raw_interval)
    if not interval or interval == LEGACY_FIRST_REVIEW_INTERVAL:
        return 0
    return 1


def fallback_unique_id(deck_id: str, position: int, question: str, answer: str) -> str:
    """Build a stable identifier for a stored card that lacks one."""
    digest = hashlib.sha1(f"{question}\x1f{answer}".encode("utf-8")).hexdigest()[:10]
    return f"{deck_id}-{position}-{digest}"


@dataclass(slots=True)
class Card:
    """Scheduling state of a single flashcard inside a deck."""

    unique_id: str
    question: str = ""
    answer: str = ""
    options: List[str] = field(default_factory=list)
    interval: Optional[int] = None
    ease_factor: Union[int, float] = DEFAULT_EASE_FACTOR
    next_review: Optional[int] = None
    review_count: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.review_count is None:
            self.review_count = _derive_review_count(None, self.interval)

    @property
    def is_first_review(self) -> bool:
        return self.review_count == 0

    @property
    def is_new(self) -> bool:
        """Return whether the card has never been scheduled."""
        return self.next_review is None

    @property
    def next_review_at(self) -> Optional[datetime]:
        if self.next_review is None:
            return None
        return from_millis(self.next_review)

    def is_due(self, now_millis: int) -> bool:
        return self.next_review is None or self.next_review <= now_millis

    @classmethod
    def from_document(cls, document: Mapping[str, Any], deck_id: str, position: int) -> "Card":
        """Normalize a card document loaded from the canonical deck store."""
        question = document.get("question") or "Question missing"
        answer = document.get("answer") or "Answer missing"
        unique_id = document.get("uniqueId")
        if not unique_id:
            unique_id = fallback_unique_id(deck_id, position, str(question), str(answer))
            LOGGER.debug("Generated id %s for card %s of deck %s.", unique_id, position, deck_id)

        raw_options = document.get("options")
        options = [str(option) for option in raw_options] if isinstance(raw_options, list) else []
        raw_interval = document.get("interval")

        return cls(
            unique_id=str(unique_id),
            question=str(question),
            answer=str(answer),
            options=options,
            interval=_normalize_interval(raw_interval) or None,
            ease_factor=_normalize_ease_factor(document.get("easeFactor")),
            next_review=normalize_timestamp(document.get("nextReview")),
            review_count=_derive_review_count(document.get("reviewCount"), raw_interval),
            extra={key: value for key, value in document.items() if key not in _KNOWN_KEYS},
        )

    def to_document(self) -> Dict[str, Any]:
        """Serialize the card for the canonical deck store, dropping unset values."""
        document: Dict[str, Any] = dict(self.extra)
        document.update(
            {
                "uniqueId": self.unique_id,
                "question": self.question,
                "answer": self.answer,
                "options": list(self.options),
                "interval": self.interval,
                "easeFactor": self.ease_factor,
                "nextReview": self.next_review,
                "reviewCount": self.review_count,
            }
        )
        return {key: value for key, value in document.items() if value is not None}

    def merged_with(self, record: Mapping[str, Any]) -> "Card":
        """Return a copy with a staged pending-update record applied on top."""
        changes: Dict[str, Any] = {}
        if "interval" in record:
            changes["interval"] = _normalize_interval(record["interval"])
        if "easeFactor" in record:
            changes["ease_factor"] = _normalize_ease_factor(record["easeFactor"])
        if "nextReview" in record:
            changes["next_review"] = normalize_timestamp(record["nextReview"])
        if "reviewCount" in record:
            changes["review_count"] = _derive_review_count(record["reviewCount"], record.get("interval"))
        elif "interval" in record:
            changes["review_count"] = _derive_review_count(None, record["interval"])
        return replace(self, **changes)


def new_card(question: str, answer: str, options: Optional[List[str]] = None) -> Card:
    """Create a freshly authored card that is due immediately."""
    return Card(
        unique_id=uuid.uuid4().hex,
        question=question.strip(),
        answer=answer.strip(),
        options=[option.strip() for option in options or []],
        interval=None,
        ease_factor=DEFAULT_EASE_FACTOR,
        next_review=None,
        review_count=0,
    )


def describe_due(next_review: Optional[int], now: Optional[datetime] = None) -> str:
    """Return a short label describing when a card becomes due."""
    if next_review is None:
        return "New card"
    if now is None:
        now = datetime.now(timezone.utc)

    diff = next_review - to_millis(now)
    if diff <= 0:
        return "Due now"
    seconds = diff // 1000
    if seconds < 60:
        return "Due in <1m"
    minutes = seconds // 60
    if minutes < 60:
        return f"Due in {minutes}m"
    hours = minutes // 60
    if hours < 24:
        return f"Due in {hours}h"
    days = hours // 24
    if days < 365:
        return f"Due in {days}d"
    return f"Due in {days // 365}y"
