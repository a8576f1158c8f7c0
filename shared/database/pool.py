"""Database connection pool management.

One ``DatabasePool`` exists per process. The first ``initialize()`` call
builds it; every later call returns the same instance and ignores its
arguments. Concurrent first callers await the same in-flight construction.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from config.settings import Settings
from shared.database.errors import ConnectionExhausted, DbError, NotInitialized
from shared.observability.logger import get_logger, mask_dsn, set_log_level

logger = get_logger("shared.database.pool")

DEFAULT_MAX_SIZE = 30
DEFAULT_ACQUIRE_TIMEOUT = 30.0

# Process-wide singleton state
_instance: Optional["DatabasePool"] = None
_pending: Optional["asyncio.Future[DatabasePool]"] = None


class DatabasePool:
    """Bounded asyncpg pool shared by every repository in the process.

    Do not construct directly; use ``DatabasePool.initialize()``.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        dsn: str,
        max_size: int,
        acquire_timeout: float,
    ):
        self.pool = pool
        self.dsn = dsn
        self.max_size = max_size
        self.acquire_timeout = acquire_timeout

    @classmethod
    async def initialize(
        cls,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = DEFAULT_MAX_SIZE,
        acquire_timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
        command_timeout: Optional[float] = None,
        max_inactive_connection_lifetime: float = 300.0,
    ) -> "DatabasePool":
        """Create the process-wide pool, or return the existing one.

        Args:
            dsn: PostgreSQL connection string
            min_size: Connections opened eagerly
            max_size: Upper bound on concurrently checked-out connections
            acquire_timeout: Seconds to wait for a free connection
            command_timeout: Default per-statement timeout in seconds
            max_inactive_connection_lifetime: Seconds before idle connections close

        Returns:
            The shared DatabasePool

        Raises:
            OSError, asyncpg.PostgresError: If the first construction fails.
                Nothing is stored in that case; the next call tries again.
        """
        global _pending

        if _instance is not None:
            logger.debug("Pool already initialized, ignoring new arguments")
            return _instance

        # No await between the check and the assignment: exactly one
        # construction is scheduled no matter how many tasks get here.
        if _pending is None:
            _pending = asyncio.ensure_future(cls._build(
                dsn,
                min_size=min_size,
                max_size=max_size,
                acquire_timeout=acquire_timeout,
                command_timeout=command_timeout,
                max_inactive_connection_lifetime=max_inactive_connection_lifetime,
            ))
        # A cancelled waiter must not cancel the construction others await
        return await asyncio.shield(_pending)

    @classmethod
    async def _build(
        cls,
        dsn: str,
        *,
        min_size: int,
        max_size: int,
        acquire_timeout: float,
        command_timeout: Optional[float],
        max_inactive_connection_lifetime: float,
    ) -> "DatabasePool":
        global _instance, _pending

        try:
            pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=command_timeout,
                max_inactive_connection_lifetime=max_inactive_connection_lifetime,
            )
        except Exception as e:
            _pending = None
            logger.critical("Failed to create database pool", data={
                "dsn_masked": mask_dsn(dsn),
                "error": str(e)
            })
            raise

        _instance = cls(pool, dsn, max_size, acquire_timeout)
        logger.info("Database pool created", data={
            "dsn_masked": mask_dsn(dsn),
            "min_size": min_size,
            "max_size": max_size,
            "acquire_timeout": acquire_timeout
        })
        return _instance

    @classmethod
    def instance(cls) -> "DatabasePool":
        """Return the already-initialized pool.

        Raises:
            NotInitialized: If initialize() has not completed yet
        """
        if _instance is None:
            raise NotInitialized()
        return _instance

    @property
    def size(self) -> int:
        """Connections currently open (idle or checked out)."""
        return self.pool.get_size()

    @property
    def checked_out(self) -> int:
        """Connections currently handed out to callers."""
        return self.pool.get_size() - self.pool.get_idle_size()

    async def get_connection(self) -> asyncpg.Connection:
        """Check out a connection; the caller must hand it to release_connection().

        Raises:
            ConnectionExhausted: If none frees up within acquire_timeout
            DbError: If the backend refuses or drops a new pooled connection
        """
        try:
            return await self.pool.acquire(timeout=self.acquire_timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Database pool exhausted", data={
                "max_size": self.max_size,
                "timeout": self.acquire_timeout
            })
            raise ConnectionExhausted(self.max_size, self.acquire_timeout) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error("Failed to check out connection", table="pool", operation="acquire", data={
                "sqlstate": getattr(e, "sqlstate", None),
                "error": str(e)
            })
            raise DbError(
                "pool", "acquire", str(e) or type(e).__name__, sqlstate=getattr(e, "sqlstate", None)
            ) from e

    async def release_connection(self, conn: asyncpg.Connection):
        """Return a connection to the pool."""
        await self.pool.release(conn)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Scoped checkout: the connection goes back on every exit path.

        Usage:
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        """
        conn = await self.get_connection()
        try:
            yield conn
        finally:
            await self.release_connection(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Scoped checkout wrapped in a transaction.

        Pass the yielded connection as ``conn=`` to several repository calls
        to make them one unit of work. Commits on clean exit, rolls back on
        exception.
        """
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def close(self):
        """Close every pooled connection."""
        await self.pool.close()


async def create_pool(settings: Settings) -> DatabasePool:
    """Initialize the process-wide pool from application settings.

    Args:
        settings: Application settings with database configuration

    Returns:
        The shared DatabasePool
    """
    set_log_level(settings.log_level)
    return await DatabasePool.initialize(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        acquire_timeout=settings.db_acquire_timeout,
        command_timeout=settings.db_command_timeout,
        max_inactive_connection_lifetime=settings.db_max_inactive_connection_lifetime,
    )


def get_pool() -> DatabasePool:
    """Return the shared pool; raises NotInitialized before create_pool()."""
    return DatabasePool.instance()


async def close_pool():
    """Close the shared pool and forget it.

    Meant for process shutdown and test teardown only.
    """
    global _instance, _pending

    pool, _instance, _pending = _instance, None, None
    if pool is not None:
        await pool.close()
        logger.info("Database pool closed")
