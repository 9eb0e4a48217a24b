"""Bootstrap logic for wiring review sessions to their stores."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.app.settings import AppSettings
from src.db import get_local_engine, get_session_factory, run_migrations_if_needed
from src.db.decks import SqlDeckRepository
from src.db.local_storage import SqlKeyValueStorage
from src.review import PendingUpdateStore, ReviewContext, ReviewSession


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_pending_update_store(settings: AppSettings) -> PendingUpdateStore:
    """Create the overlay store on top of device-local storage."""
    return PendingUpdateStore(SqlKeyValueStorage(get_local_engine(settings.local_storage_url)))


def build_review_session(
    settings: AppSettings,
    deck_id: str,
    user_id: str,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    pending_updates: Optional[PendingUpdateStore] = None,
) -> ReviewSession:
    """Assemble a review session for one deck owned by ``user_id``."""
    if session_factory is None:
        session_factory = get_session_factory()
    if pending_updates is None:
        pending_updates = build_pending_update_store(settings)
    return ReviewSession(
        ReviewContext(deck_id=deck_id, user_id=user_id),
        SqlDeckRepository(session_factory),
        pending_updates,
        pacing_delay=settings.review_pacing_delay,
    )


def bootstrap(settings: AppSettings) -> None:
    """Prepare logging and the database schema for review sessions."""
    _configure_logging(settings.log_level)
    LOGGER.info("%s is starting in %s mode.", settings.app_name, settings.app_env)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise
