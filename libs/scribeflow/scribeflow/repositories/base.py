from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from scribeflow.config import Settings
from scribeflow.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class DatabasePool:
    """Process-wide connection pool, opened on first use."""

    _pool: AsyncConnectionPool | None = None

    @classmethod
    async def get_pool(cls, settings: Settings) -> AsyncConnectionPool:
        if cls._pool is None:
            pool = AsyncConnectionPool(
                conninfo=settings.database_url,
                min_size=1,
                max_size=settings.postgres_pool_max_size,
                open=False,
            )
            await pool.open()
            cls._pool = pool
            logger.info(
                "database pool opened (host=%s, db=%s, max_size=%d)",
                settings.postgres_host,
                settings.postgres_db,
                settings.postgres_pool_max_size,
            )
        return cls._pool

    @classmethod
    async def close(cls) -> None:
        if cls._pool is not None:
            await cls._pool.close()
            cls._pool = None


class BaseRepository:
    def __init__(self, pool: AsyncConnectionPool) -> None:
        self.pool = pool

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def cursor(self, action: str, *, commit: bool = False) -> AsyncIterator[Any]:
        """Dict-row cursor; any driver error surfaces as PersistenceError("failed to <action>")."""
        try:
            async with self.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    yield cur
                if commit:
                    await conn.commit()
        except psycopg.Error as exc:
            raise PersistenceError(f"failed to {action}: {exc}") from exc
