"""Helpers for working with canonical deck persistence."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.review.cards import Card
from src.review.errors import DeckNotFoundError

from . import Deck


@dataclass(slots=True)
class DeckSnapshot:
    """Detached copy of a stored deck and its card documents."""

    deck_id: str
    user_id: str
    name: str
    question_type: Optional[str] = None
    flashcards: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_model(cls, deck: Deck) -> "DeckSnapshot":
        return cls(
            deck_id=deck.id,
            user_id=deck.user_id,
            name=deck.name,
            question_type=deck.question_type,
            flashcards=[dict(card) for card in deck.flashcards or [] if isinstance(card, dict)],
        )


async def get_deck(session: AsyncSession, deck_id: str) -> Optional[DeckSnapshot]:
    """Return the stored deck or ``None`` when it does not exist."""
    deck = await session.get(Deck, deck_id)
    if deck is None:
        return None
    return DeckSnapshot.from_model(deck)


async def put_deck_cards(
    session: AsyncSession,
    deck_id: str,
    documents: Sequence[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> None:
    """Replace the card documents stored for a deck."""
    if now is None:
        now = datetime.now(timezone.utc)

    stmt = (
        update(Deck)
        .where(Deck.id == deck_id)
        .values(flashcards=[dict(document) for document in documents], updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        raise DeckNotFoundError(deck_id)


async def create_deck(
    session: AsyncSession,
    user_id: str,
    name: Optional[str],
    cards: Sequence[Card],
    question_type: Optional[str] = None,
    deck_id: Optional[str] = None,
) -> DeckSnapshot:
    """Persist a newly authored deck whose cards start with default review data."""
    deck = Deck(
        id=deck_id or uuid.uuid4().hex,
        user_id=user_id,
        name=(name or "").strip() or "Untitled Deck",
        question_type=question_type,
        flashcards=[card.to_document() for card in cards],
    )
    session.add(deck)
    await session.flush()
    return DeckSnapshot.from_model(deck)


async def list_user_decks(session: AsyncSession, user_id: str) -> List[DeckSnapshot]:
    """Return every deck owned by the user, oldest first."""
    stmt = select(Deck).where(Deck.user_id == user_id).order_by(Deck.created_at, Deck.id)
    result = await session.execute(stmt)
    return [DeckSnapshot.from_model(deck) for deck in result.scalars().all()]


class SqlDeckRepository:
    """Canonical deck store backed by the application database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_deck(self, deck_id: str) -> Optional[DeckSnapshot]:
        async with self._session_factory() as session:
            return await get_deck(session, deck_id)

    async def put_deck_cards(self, deck_id: str, documents: Sequence[Dict[str, Any]]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await put_deck_cards(session, deck_id, documents)
