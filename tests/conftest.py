"""Shared fixtures: a fresh SQLite database per test."""

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import prd_api.entities  # noqa: F401 - register tables with Base.metadata
from prd_api.database import Base, enable_sqlite_foreign_keys


async def _sessions_for(url: str) -> AsyncGenerator[async_sessionmaker, None]:
    test_engine = create_async_engine(url, echo=False)
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    # In-memory: every session shares one connection
    async for factory in _sessions_for("sqlite+aiosqlite:///"):
        yield factory


@pytest_asyncio.fixture
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    # File-backed: each session gets its own connection, so writers really race
    async for factory in _sessions_for(f"sqlite+aiosqlite:///{tmp_path / 'versions.db'}"):
        yield factory


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
