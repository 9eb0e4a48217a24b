"""Device-local string key/value storage."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from . import LocalStorageEntry, ensure_local_storage_schema


class InMemoryKeyValueStorage:
    """Volatile key/value storage for tests and hosts without a local database."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqlKeyValueStorage:
    """Key/value storage persisted in a small local database table."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine, expire_on_commit=False
        )
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await ensure_local_storage_schema(self._engine)
            self._schema_ready = True

    async def get_item(self, key: str) -> Optional[str]:
        await self._ensure_schema()
        async with self._session_factory() as session:
            entry = await session.get(LocalStorageEntry, key)
            return entry.value if entry is not None else None

    async def set_item(self, key: str, value: str) -> None:
        await self._ensure_schema()
        async with self._session_factory() as session:
            async with session.begin():
                entry = await session.get(LocalStorageEntry, key)
                if entry is None:
                    session.add(LocalStorageEntry(key=key, value=value, updated_at=datetime.now(timezone.utc)))
                else:
                    entry.value = value
                    entry.updated_at = datetime.now(timezone.utc)

    async def remove_item(self, key: str) -> None:
        await self._ensure_schema()
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(LocalStorageEntry).where(LocalStorageEntry.key == key))
