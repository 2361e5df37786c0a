"""
Database connection pool management.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    create_async_engine,
)

ASYNC_DRIVER_SCHEME = "postgresql+asyncpg://"


def normalize_database_url(url: str) -> str:
    """
    Rewrite plain PostgreSQL URLs to use the asyncpg driver.

    Args:
        url: Connection string (postgres://, postgresql:// or already async)

    Returns:
        URL usable by SQLAlchemy's async engine
    """
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            return ASYNC_DRIVER_SCHEME + url[len(scheme):]
    return url


class Database:
    """
    Async database connection pool using SQLAlchemy.

    The pool is shared by request handlers; it is closed only by the
    "close database pool" cleanup hook during shutdown.
    """

    def __init__(
        self,
        database_url: str,
        pool_min: int = 2,
        pool_max: int = 10,
        idle_timeout: float = 30.0,
        pool_timeout: float = 30.0,
        echo: bool = False,
    ):
        """
        Initialize database pool configuration.

        Args:
            database_url: PostgreSQL connection string
            pool_min: Connections kept open in the pool
            pool_max: Upper bound of open connections (incl. overflow)
            idle_timeout: Recycle pooled connections after N seconds
            pool_timeout: Seconds to wait for a free connection
            echo: Enable SQL query logging
        """
        self.database_url = normalize_database_url(database_url)
        self.pool_min = pool_min
        self.pool_max = pool_max
        self.idle_timeout = idle_timeout
        self.pool_timeout = pool_timeout
        self.echo = echo
        self._engine: AsyncEngine | None = None

    @property
    def is_connected(self) -> bool:
        """Check if the engine (and its pool) has been created."""
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and its connection pool."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.database_url,
            echo=self.echo,
            pool_size=self.pool_min,
            max_overflow=max(self.pool_max - self.pool_min, 0),
            pool_timeout=self.pool_timeout,
            pool_recycle=int(self.idle_timeout),
            pool_pre_ping=True,
            connect_args={
                "server_settings": {
                    "application_name": "concierge",
                }
            },
        )

    async def disconnect(self) -> None:
        """Dispose the pool and close every pooled connection."""
        if self._engine is None:
            return

        engine, self._engine = self._engine, None
        await engine.dispose()

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Provide a pooled connection.

        Usage:
            async with database.connection() as conn:
                await conn.execute(text("SELECT 1"))

        Yields:
            AsyncConnection checked out from the pool
        """
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._engine.connect() as conn:
            yield conn

    async def health_check(self) -> bool:
        """
        Check database connectivity with a trivial query.

        Returns:
            True if the query succeeded

        Raises:
            RuntimeError: If the pool was never created
            Exception: Driver errors propagate so callers can report them
        """
        async with self.connection() as conn:
            await conn.execute(text("SELECT 1"))
        return True
