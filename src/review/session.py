"""Review session orchestration: queue, ratings, staging and deck sync."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from src.review.cards import Card
from src.review.due import select_due
from src.review.errors import DeckNotFoundError, IdentityMismatchError, OverlayWriteError, SyncError
from src.review.overlay import PendingRecord, PendingUpdateStore
from src.review.srs import Rating, ScheduleUpdate, compute_next_schedule


LOGGER = logging.getLogger(__name__)

DEFAULT_PACING_DELAY = 0.3
BACKGROUND_APP_STATES = frozenset({"background", "inactive"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, enum.Enum):
    """Lifecycle of a review session."""

    LOADING = "loading"
    READY = "ready"
    REVIEWING = "reviewing"
    SAVING = "saving"
    SESSION_COMPLETE = "session_complete"
    NOTHING_TO_REVIEW = "nothing_to_review"
    NOT_FOUND = "not_found"
    LOAD_FAILED = "load_failed"
    CLOSED = "closed"


class SaveStatus(str, enum.Enum):
    """Outcome of a save attempt."""

    SAVED = "saved"
    SKIPPED = "skipped"
    NO_CHANGES = "no_changes"
    FAILED = "failed"


class OutcomeStatus(str, enum.Enum):
    """Outcome of a submitted rating."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    IGNORED = "ignored"


class StoredDeck(Protocol):
    flashcards: List[Dict[str, Any]]


class DeckRepository(Protocol):
    """Canonical deck store consumed by a review session."""

    async def get_deck(self, deck_id: str) -> Optional[StoredDeck]: ...

    async def put_deck_cards(self, deck_id: str, documents: Sequence[Dict[str, Any]]) -> None: ...


@dataclass(frozen=True)
class ReviewContext:
    """Explicit inputs identifying who reviews which deck, and when."""

    deck_id: str
    user_id: str
    clock: Callable[[], datetime] = _utc_now


@dataclass(slots=True)
class ReviewNotice:
    """Non-fatal condition the host should show to the learner."""

    kind: str
    message: str


@dataclass(slots=True)
class ReviewOutcome:
    """Result of submitting a rating for the current card."""

    status: OutcomeStatus
    rating: str
    card: Optional[Card] = None
    schedule: Optional[ScheduleUpdate] = None
    staged: bool = False


@dataclass(slots=True)
class SaveResult:
    """Outcome of an attempt to write the session's cards to the deck store."""

    status: SaveStatus
    explicit: bool
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status is not SaveStatus.FAILED


class ReviewSession:
    """Drive one pass over the due cards of a single deck."""

    def __init__(
        self,
        context: ReviewContext,
        decks: DeckRepository,
        pending_updates: PendingUpdateStore,
        pacing_delay: float = DEFAULT_PACING_DELAY,
    ) -> None:
        self._context = context
        self._decks = decks
        self._pending_updates = pending_updates
        self._pacing_delay = pacing_delay

        self.state = SessionState.LOADING
        self.cards: List[Card] = []
        self.due_queue: Tuple[Card, ...] = ()
        self.cursor = 0
        self.has_unsaved_changes = False
        self.review_status: Optional[str] = None
        self.notices: List[ReviewNotice] = []

        self._awaiting_advance = False
        self._saving = False
        self._staged: Dict[str, PendingRecord] = {}

    @property
    def deck_id(self) -> str:
        return self._context.deck_id

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_finished(self) -> bool:
        return self.cursor >= len(self.due_queue)

    @property
    def current_card(self) -> Optional[Card]:
        if self.state in {SessionState.LOADING, SessionState.NOT_FOUND, SessionState.LOAD_FAILED}:
            return None
        if self.is_finished:
            return None
        return self.due_queue[self.cursor]

    @property
    def progress(self) -> Tuple[int, int]:
        """Return ``(position, total)`` for a "Card i of n due" indicator."""
        total = len(self.due_queue)
        if total == 0:
            return 0, 0
        return min(self.cursor + 1, total), total

    def _notify(self, kind: str, message: str) -> None:
        self.notices.append(ReviewNotice(kind=kind, message=message))

    def _index_of(self, unique_id: Optional[str]) -> Optional[int]:
        if not unique_id:
            return None
        for index, card in enumerate(self.cards):
            if card.unique_id == unique_id:
                return index
        return None

    async def load(self) -> SessionState:
        """Fetch the deck, merge staged updates and build the due queue."""
        self.state = SessionState.LOADING
        deck_id = self._context.deck_id

        try:
            deck = await self._decks.get_deck(deck_id)
        except Exception:
            LOGGER.exception("Failed to load deck %s for user %s.", deck_id, self._context.user_id)
            self._notify("load_failed", "Could not load flashcards.")
            self.state = SessionState.LOAD_FAILED
            return self.state

        if deck is None:
            error = DeckNotFoundError(deck_id)
            LOGGER.warning("%s", error)
            self._notify("not_found", str(error))
            self.state = SessionState.NOT_FOUND
            return self.state

        cards = [Card.from_document(document, deck_id, position) for position, document in enumerate(deck.flashcards)]
        pending = await self._pending_updates.get_pending_updates(deck_id)

        staged: Dict[str, PendingRecord] = {}
        for index, card in enumerate(cards):
            record = pending.get(card.unique_id)
            if record is not None:
                cards[index] = card.merged_with(record)
                staged[card.unique_id] = record
        if len(staged) < len(pending):
            LOGGER.info(
                "Ignoring %s staged updates for cards no longer in deck %s.",
                len(pending) - len(staged),
                deck_id,
            )

        self.cards = cards
        self._staged = staged
        self.has_unsaved_changes = bool(staged)
        self.due_queue = select_due(cards, self._context.clock())
        self.cursor = 0
        self.review_status = None
        self._awaiting_advance = False

        if self.due_queue:
            self.state = SessionState.READY
        elif self.has_unsaved_changes:
            self.state = SessionState.SESSION_COMPLETE
        else:
            self.state = SessionState.NOTHING_TO_REVIEW

        LOGGER.info(
            "Loaded deck %s: %s cards, %s due, %s staged updates.",
            deck_id,
            len(cards),
            len(self.due_queue),
            len(staged),
        )
        return self.state

    def _move_cursor(self) -> None:
        if self.cursor < len(self.due_queue):
            self.cursor += 1
        if self.is_finished and self.state in {SessionState.READY, SessionState.REVIEWING}:
            self.state = SessionState.SESSION_COMPLETE

    async def submit_rating(self, rating: Union[Rating, str], *, advance: bool = True) -> ReviewOutcome:
        """Schedule the current card with ``rating`` and stage the result locally.

        With ``advance=False`` the cursor stays on the rated card until
        :meth:`advance` is called, so a host can pause before showing the next
        card.
        """
        label = rating.value if isinstance(rating, Rating) else str(rating)
        if self.state not in {SessionState.READY, SessionState.REVIEWING, SessionState.SAVING}:
            return ReviewOutcome(status=OutcomeStatus.IGNORED, rating=label)
        if self._awaiting_advance or self.is_finished:
            return ReviewOutcome(status=OutcomeStatus.IGNORED, rating=label)

        queued = self.due_queue[self.cursor]
        index = self._index_of(queued.unique_id)
        if index is None:
            error = IdentityMismatchError(queued.unique_id)
            LOGGER.warning("%s Skipping it in deck %s.", error, self.deck_id)
            self._notify("identity_mismatch", str(error))
            self._move_cursor()
            return ReviewOutcome(status=OutcomeStatus.SKIPPED, rating=label, card=queued)

        schedule = compute_next_schedule(self.cards[index], rating, self._context.clock())
        record = schedule.to_record()
        updated = self.cards[index].merged_with(record)
        self.cards[index] = updated
        self._staged[updated.unique_id] = record
        self.has_unsaved_changes = True

        staged = True
        try:
            await self._pending_updates.set_pending_update(self.deck_id, updated.unique_id, record)
        except OverlayWriteError:
            staged = False
            LOGGER.warning("Review of card %s is kept in memory only.", updated.unique_id)

        if self.state is SessionState.READY:
            self.state = SessionState.REVIEWING
        self.review_status = label
        self._awaiting_advance = True
        if advance:
            self.advance()

        return ReviewOutcome(
            status=OutcomeStatus.APPLIED,
            rating=label,
            card=updated,
            schedule=schedule,
            staged=staged,
        )

    def advance(self) -> bool:
        """Move past the card that was just rated."""
        if not self._awaiting_advance:
            return False
        self._awaiting_advance = False
        self.review_status = None
        self._move_cursor()
        return True

    async def advance_after_delay(self) -> bool:
        """Wait for the pacing delay, then advance to the next card."""
        await asyncio.sleep(self._pacing_delay)
        return self.advance()

    async def on_focus_lost(self) -> SaveResult:
        """Persist progress when the review screen is left."""
        return await self._save(explicit=False)

    async def on_app_state_change(self, app_state: str) -> Optional[SaveResult]:
        """Persist progress when the host application is backgrounded."""
        if app_state not in BACKGROUND_APP_STATES:
            return None
        return await self._save(explicit=False)

    async def finish(self) -> SaveResult:
        """Explicitly save the session's progress to the deck store."""
        return await self._save(explicit=True)

    async def _save(self, explicit: bool) -> SaveResult:
        if self._saving:
            LOGGER.debug("Save for deck %s already in progress; skipping.", self.deck_id)
            return SaveResult(SaveStatus.SKIPPED, explicit)
        if self.state not in {SessionState.READY, SessionState.REVIEWING, SessionState.SESSION_COMPLETE}:
            return SaveResult(SaveStatus.SKIPPED, explicit)
        if not self.has_unsaved_changes:
            return SaveResult(SaveStatus.NO_CHANGES if explicit else SaveStatus.SKIPPED, explicit)
        if not self.cards:
            return SaveResult(SaveStatus.SKIPPED, explicit)

        self._saving = True
        self.state = SessionState.SAVING
        documents = [card.to_document() for card in self.cards]
        flushed = dict(self._staged)
        try:
            try:
                await self._decks.put_deck_cards(self.deck_id, documents)
            except Exception as exc:
                error = SyncError(f"Failed to save progress for deck {self.deck_id}.")
                error.__cause__ = exc
                if explicit:
                    LOGGER.exception("Explicit save of deck %s failed.", self.deck_id)
                    self._notify(
                        "sync_error",
                        "Failed to save your progress. Your changes are stored locally.",
                    )
                else:
                    LOGGER.warning("Automatic save of deck %s failed: %s", self.deck_id, exc)
                return SaveResult(SaveStatus.FAILED, explicit, error)

            await self._after_flush(flushed)
            LOGGER.info("Saved %s cards for deck %s.", len(documents), self.deck_id)
            return SaveResult(SaveStatus.SAVED, explicit)
        finally:
            self._saving = False
            self.state = SessionState.SESSION_COMPLETE if self.is_finished else SessionState.READY

    async def _after_flush(self, flushed: Dict[str, PendingRecord]) -> None:
        try:
            await self._pending_updates.clear_pending_updates(self.deck_id)
        except OverlayWriteError:
            LOGGER.warning("Could not clear staged updates for deck %s after saving.", self.deck_id)

        for unique_id, record in flushed.items():
            if self._staged.get(unique_id) == record:
                del self._staged[unique_id]
        # Ratings submitted while the write was in flight are not in the deck store yet.
        for unique_id, record in list(self._staged.items()):
            try:
                await self._pending_updates.set_pending_update(self.deck_id, unique_id, record)
            except OverlayWriteError:
                LOGGER.warning("Review of card %s is kept in memory only.", unique_id)
        self.has_unsaved_changes = bool(self._staged)

    async def discard(self) -> bool:
        """Drop this session's unsaved progress without touching the deck store."""
        if self.state is not SessionState.SESSION_COMPLETE or self._saving:
            return False
        if self.has_unsaved_changes:
            try:
                await self._pending_updates.clear_pending_updates(self.deck_id)
            except OverlayWriteError:
                self._notify("discard_failed", "Could not discard the staged progress.")
                return False
            self._staged = {}
            self.has_unsaved_changes = False
            LOGGER.info("Discarded unsaved progress for deck %s.", self.deck_id)
        self.state = SessionState.CLOSED
        return True
