"""Local staging area for review results that are not yet in the deck store."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from src.review.cards import normalize_timestamp
from src.review.errors import OverlayWriteError
from src.review.srs import ScheduleUpdate


LOGGER = logging.getLogger(__name__)

PENDING_UPDATES_STORAGE_KEY = "@allPendingSrsUpdates"

PendingRecord = Dict[str, Any]
PendingOverlay = Dict[str, Dict[str, PendingRecord]]


class KeyValueStorage(Protocol):
    """Minimal string key/value persistence required by the overlay."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


def _serializable_record(record: Union[ScheduleUpdate, Mapping[str, Any]]) -> PendingRecord:
    if isinstance(record, ScheduleUpdate):
        return record.to_record()
    serializable = dict(record)
    if "nextReview" in serializable:
        serializable["nextReview"] = normalize_timestamp(serializable["nextReview"])
    return serializable


class PendingUpdateStore:
    """Stage per-card schedule updates keyed by deck id and card id."""

    def __init__(self, storage: KeyValueStorage, key: str = PENDING_UPDATES_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key

    async def load(self) -> PendingOverlay:
        """Return every staged update, or an empty mapping when the overlay is unreadable."""
        try:
            raw = await self._storage.get_item(self._key)
        except Exception:
            LOGGER.exception("Failed to read pending review updates from local storage.")
            return {}
        if raw is None:
            return {}

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            LOGGER.error("Pending review updates are not valid JSON; ignoring them.")
            return {}
        if not isinstance(payload, dict):
            LOGGER.error("Pending review updates have unexpected shape %s; ignoring them.", type(payload).__name__)
            return {}

        overlay: PendingOverlay = {}
        for deck_id, records in payload.items():
            if not isinstance(records, dict):
                LOGGER.warning("Dropping malformed pending updates for deck %s.", deck_id)
                continue
            overlay[str(deck_id)] = {
                str(unique_id): record for unique_id, record in records.items() if isinstance(record, dict)
            }
        return overlay

    async def get_pending_updates(self, deck_id: str) -> Dict[str, PendingRecord]:
        """Return the staged updates for one deck."""
        overlay = await self.load()
        return overlay.get(deck_id, {})

    async def _save(self, overlay: PendingOverlay) -> None:
        try:
            serialized = json.dumps(overlay)
            await self._storage.set_item(self._key, serialized)
        except Exception as exc:
            LOGGER.exception("Failed to save pending review updates to local storage.")
            raise OverlayWriteError("Could not store review progress locally.") from exc

    async def set_pending_update(
        self,
        deck_id: str,
        unique_id: str,
        record: Union[ScheduleUpdate, Mapping[str, Any]],
    ) -> None:
        """Stage ``record`` for a card, replacing any earlier staged update."""
        overlay = await self.load()
        overlay.setdefault(deck_id, {})[unique_id] = _serializable_record(record)
        await self._save(overlay)

    async def clear_pending_updates(self, deck_id: str) -> None:
        """Drop every staged update for a deck."""
        overlay = await self.load()
        if deck_id not in overlay:
            return
        del overlay[deck_id]
        await self._save(overlay)
