from collections import deque
from typing import List, Tuple

import pytest

from src.app.runtime import build_review_session
from src.app.settings import AppSettings
from src.db import run_migrations_if_needed
from src.db.local_storage import InMemoryKeyValueStorage
from src.review import PendingUpdateStore, SessionState


def test_run_migrations_if_needed_invokes_upgrade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Tuple[object, str]] = []

    def fake_upgrade(config: object, target: str) -> None:
        calls.append((config, target))

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "true")
    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert calls and calls[0][1] == "head"


def test_run_migrations_if_needed_skips_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "false")

    calls: deque[str] = deque()

    def fake_upgrade(_: object, target: str) -> None:
        calls.append(target)

    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert not calls


@pytest.mark.asyncio
async def test_build_review_session_wires_sql_deck_store(session_factory) -> None:
    settings = AppSettings(
        app_name="test",
        app_env="test",
        log_level="INFO",
        local_storage_url="sqlite+aiosqlite:///:memory:",
        review_pacing_ms=0,
    )
    review = build_review_session(
        settings,
        deck_id="unknown",
        user_id="user-1",
        session_factory=session_factory,
        pending_updates=PendingUpdateStore(InMemoryKeyValueStorage()),
    )

    assert await review.load() is SessionState.NOT_FOUND
