"""Spaced-repetition review scheduling for flashcard decks."""

from .cards import Card, describe_due, new_card
from .due import select_due
from .overlay import PendingUpdateStore
from .session import OutcomeStatus, ReviewContext, ReviewSession, SaveStatus, SessionState
from .srs import Rating, compute_next_schedule

__all__ = [
    "Card",
    "OutcomeStatus",
    "PendingUpdateStore",
    "Rating",
    "ReviewContext",
    "ReviewSession",
    "SaveStatus",
    "SessionState",
    "compute_next_schedule",
    "describe_due",
    "new_card",
    "select_due",
]
