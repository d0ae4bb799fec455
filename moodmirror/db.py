from __future__ import annotations

from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from moodmirror.app.db.models import Base, SettingEntry

DEFAULT_SQLITE_URL = "sqlite+aiosqlite:///./data/moodmirror.db"
SQLITE_BUSY_TIMEOUT_SECONDS = 15


def normalize_database_url(raw_url: str | None) -> str:
    """Force the aiosqlite driver and create the parent directory of file databases."""

    url = str(raw_url or DEFAULT_SQLITE_URL)
    if url.startswith("sqlite://") and "+aiosqlite" not in url:
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    if url.startswith("sqlite+aiosqlite:///"):
        db_path = url.split("///", maxsplit=1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return url


def create_engine(database_url: str | None, *, echo: bool = False) -> AsyncEngine:
    url = normalize_database_url(database_url)
    connect_args = {"timeout": SQLITE_BUSY_TIMEOUT_SECONDS} if url.startswith("sqlite") else {}
    return create_async_engine(url, echo=echo, connect_args=connect_args)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def _store_schema_version(
    session_factory: async_sessionmaker[AsyncSession],
    version: str,
) -> None:
    async with session_factory() as session:
        existing = (
            await session.execute(select(SettingEntry).where(SettingEntry.key == "schema_version"))
        ).scalar_one_or_none()
        if existing is None:
            session.add(SettingEntry(key="schema_version", value=version))
        else:
            existing.value = version
        await session.commit()


async def init_db(
    engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    version: str,
) -> None:
    """Create missing tables and record the running version."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await _store_schema_version(session_factory, version)


__all__ = [
    "create_engine",
    "create_session_factory",
    "init_db",
    "normalize_database_url",
]
