"""Error types raised by the review scheduling components."""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for review scheduling failures."""


class DeckNotFoundError(ReviewError):
    """Raised when the canonical deck cannot be located."""

    def __init__(self, deck_id: str) -> None:
        super().__init__(f"Deck with ID {deck_id} not found.")
        self.deck_id = deck_id


class SerializationError(ReviewError):
    """Raised when the pending-update overlay cannot be read or written."""


class OverlayWriteError(SerializationError):
    """Raised when staged updates could not be persisted locally."""


class SyncError(ReviewError):
    """Raised when the canonical deck could not be updated."""


class IdentityMismatchError(ReviewError):
    """Raised when a queued card is missing from the canonical card set."""

    def __init__(self, unique_id: str | None) -> None:
        super().__init__(f"Could not find card {unique_id!r} in the deck to update.")
        self.unique_id = unique_id
