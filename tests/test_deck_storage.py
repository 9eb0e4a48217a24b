from __future__ import annotations

import pytest

from src.db.decks import SqlDeckRepository, create_deck, get_deck, list_user_decks, put_deck_cards
from src.review.cards import new_card
from src.review.errors import DeckNotFoundError


@pytest.mark.asyncio
async def test_create_and_fetch_deck(session_factory) -> None:
    cards = [new_card("Q1", "A1"), new_card("Q2", "A2", options=["x", "y"])]

    async with session_factory() as session:
        async with session.begin():
            created = await create_deck(session, "user-1", "  Biology ", cards, question_type="mcq")

        async with session.begin():
            fetched = await get_deck(session, created.deck_id)

    assert fetched is not None
    assert fetched.name == "Biology"
    assert fetched.user_id == "user-1"
    assert fetched.question_type == "mcq"
    assert [card["uniqueId"] for card in fetched.flashcards] == [card.unique_id for card in cards]
    assert "nextReview" not in fetched.flashcards[0]
    assert fetched.flashcards[1]["options"] == ["x", "y"]


@pytest.mark.asyncio
async def test_create_deck_defaults_name(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            created = await create_deck(session, "user-1", None, [], deck_id="deck-fixed")

    assert created.deck_id == "deck-fixed"
    assert created.name == "Untitled Deck"
    assert created.flashcards == []


@pytest.mark.asyncio
async def test_repository_replaces_cards(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            created = await create_deck(session, "user-2", "Deck", [new_card("Q", "A")])

    repository = SqlDeckRepository(session_factory)
    await repository.put_deck_cards(created.deck_id, [{"uniqueId": "z", "question": "Q", "nextReview": 42}])

    stored = await repository.get_deck(created.deck_id)
    assert stored is not None
    assert stored.flashcards == [{"uniqueId": "z", "question": "Q", "nextReview": 42}]


@pytest.mark.asyncio
async def test_repository_reports_missing_deck(session_factory) -> None:
    repository = SqlDeckRepository(session_factory)

    assert await repository.get_deck("missing") is None
    with pytest.raises(DeckNotFoundError):
        await repository.put_deck_cards("missing", [])


@pytest.mark.asyncio
async def test_list_user_decks_filters_by_owner(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            await create_deck(session, "owner", "One", [], deck_id="d1")
            await create_deck(session, "owner", "Two", [], deck_id="d2")
            await create_deck(session, "someone-else", "Three", [], deck_id="d3")

        decks = await list_user_decks(session, "owner")
        assert {deck.deck_id for deck in decks} == {"d1", "d2"}

        with pytest.raises(DeckNotFoundError):
            await put_deck_cards(session, "d4", [])
