"""Async database access shared by the payments store and tooling.

Wraps a SQLAlchemy async engine with the small query surface the
rest of the code uses, plus an explicit ``transaction()`` for work that
must commit atomically.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import bittensor as bt
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .schema import Base


class DBManager:
    """Owns the async engine for one database URL."""

    def __init__(self, url: str, *, echo: bool = False, engine: AsyncEngine | None = None):
        self.url = url
        self.engine = engine or create_async_engine(url, echo=echo)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection inside BEGIN; commit on exit, roll back on error."""
        async with self.engine.begin() as conn:
            yield conn

    async def read(
        self, query: Any, params: dict[str, Any] | None = None, *, mappings: bool = False,
    ) -> list[Any]:
        async with self.engine.connect() as conn:
            result = await conn.execute(query, params or {})
            if mappings:
                return [dict(row) for row in result.mappings().all()]
            return list(result.all())

    async def create_all(self) -> None:
        """Create missing tables directly (dev/test); production uses alembic."""
        async with self.transaction() as conn:
            await conn.run_sync(Base.metadata.create_all)
        bt.logging.debug({"database": {"step": "create_all", "dialect": self.dialect}})

    async def dispose(self) -> None:
        await self.engine.dispose()


__all__ = ["DBManager"]
