from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from src.db import Base
from src.db.local_storage import SqlKeyValueStorage


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def sql_storage() -> SqlKeyValueStorage:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    try:
        yield SqlKeyValueStorage(engine)
    finally:
        await engine.dispose()
