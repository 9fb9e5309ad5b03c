"""Async MongoDB helpers built on top of Motor."""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorDatabase,
)

from .settings import settings


@lru_cache
def get_mongo_client() -> AsyncIOMotorClient:
    """Return a cached Motor client configured via ``db_core.settings``."""

    return AsyncIOMotorClient(settings.uri)


def get_db() -> AsyncIOMotorDatabase:
    """Return the application database named by ``settings.db_name``."""

    client = get_mongo_client()
    return client[settings.db_name]


async def ping() -> dict[str, Any]:
    """Run a ``ping`` command against the configured MongoDB server."""

    db = get_db()
    await db.command("ping")
    return {"ok": True}


@asynccontextmanager
async def transaction() -> AsyncIterator[Optional[AsyncIOMotorClientSession]]:
    """Yield a session inside a started transaction, or ``None``.

    Pass the yielded value as ``session=`` to every write that must commit
    together. With transactions disabled callers get ``None`` and fall back
    to a single ordered bulk write.
    """

    if not settings.use_transactions:
        yield None
        return

    client = get_mongo_client()
    async with await client.start_session() as session:
        async with session.start_transaction():
            yield session
