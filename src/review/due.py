"""Selection of the cards that are due for review."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from src.review.cards import Card, to_millis


def _due_key(card: Card) -> float:
    return float("-inf") if card.next_review is None else card.next_review


def select_due(cards: Iterable[Card], now: Optional[datetime] = None) -> Tuple[Card, ...]:
    """Return due cards ordered by due time, new cards first.

    Cards sharing a due time keep their input order. The input cards are not
    modified.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    now_millis = to_millis(now)

    due = [card for card in cards if card.is_due(now_millis)]
    due.sort(key=_due_key)
    return tuple(due)


def count_due(cards: Iterable[Card], now: Optional[datetime] = None) -> int:
    """Return how many cards are currently due."""
    if now is None:
        now = datetime.now(timezone.utc)
    now_millis = to_millis(now)
    return sum(1 for card in cards if card.is_due(now_millis))
