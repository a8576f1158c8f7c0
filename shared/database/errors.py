"""Typed failures surfaced by the data-access layer."""
import asyncio
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import asyncpg

from shared.observability.logger import get_logger

logger = get_logger("shared.database.errors")


class DataAccessError(Exception):
    """Root of every error raised by the data-access layer."""


class NotInitialized(DataAccessError):
    """Pool accessed before DatabasePool.initialize() completed."""

    def __init__(self, message: str = "Database pool has not been initialized"):
        super().__init__(message)


class ConnectionExhausted(DataAccessError):
    """No pooled connection became available within the acquire timeout."""

    def __init__(self, max_size: int, timeout: float):
        self.max_size = max_size
        self.timeout = timeout
        super().__init__(
            f"No connection available from pool (max_size={max_size}) "
            f"after waiting {timeout}s"
        )


class NotFound(DataAccessError):
    """A read by primary key matched no row."""

    def __init__(self, table: str, key: Any):
        self.table = table
        self.key = key
        super().__init__(f"No row in {table} with key {key!r}")


class SchemaMismatch(DataAccessError):
    """Table descriptor, row model or key shape disagree; raised before any SQL runs."""


class BackendError(DataAccessError):
    """The backend rejected a statement or a new connection.

    The backend diagnostic is kept verbatim in ``message``; ``sqlstate`` is the
    PostgreSQL error code when the driver reported one.
    """

    def __init__(self, table: str, operation: str, message: str, sqlstate: Optional[str] = None):
        self.table = table
        self.operation = operation
        self.message = message
        self.sqlstate = sqlstate
        super().__init__(f"{operation} on {table} failed: {message}")


class Conflict(BackendError):
    """A write violated a uniqueness or primary-key constraint."""

    def __init__(
        self,
        table: str,
        operation: str,
        message: str,
        sqlstate: Optional[str] = None,
        constraint: Optional[str] = None,
    ):
        self.constraint = constraint
        super().__init__(table, operation, message, sqlstate)


class DbError(BackendError):
    """Any backend failure other than a uniqueness conflict."""


@contextmanager
def translate_errors(table: str, operation: str) -> Iterator[None]:
    """Map asyncpg exceptions raised inside the block to DAL errors.

    DAL errors pass through untouched. The original driver exception is
    chained as ``__cause__``.

    Raises:
        Conflict: On asyncpg.UniqueViolationError
        DbError: On any other asyncpg.PostgresError or asyncpg.InterfaceError,
            a statement timeout (command_timeout) or a dropped socket
    """
    try:
        yield
    except DataAccessError:
        raise
    except asyncpg.UniqueViolationError as e:
        logger.warning("Unique constraint violated", table=table, operation=operation, data={
            "constraint": getattr(e, "constraint_name", None),
            "error": str(e)
        })
        raise Conflict(
            table,
            operation,
            str(e),
            sqlstate=getattr(e, "sqlstate", None),
            constraint=getattr(e, "constraint_name", None),
        ) from e
    except asyncpg.PostgresError as e:
        logger.error("Database error", table=table, operation=operation, data={
            "sqlstate": getattr(e, "sqlstate", None),
            "error": str(e)
        })
        raise DbError(table, operation, str(e), sqlstate=getattr(e, "sqlstate", None)) from e
    except asyncpg.InterfaceError as e:
        logger.error("Database interface error", table=table, operation=operation, data={
            "error": str(e)
        })
        raise DbError(table, operation, str(e)) from e
    except asyncio.TimeoutError as e:
        logger.error("Statement timed out", table=table, operation=operation)
        raise DbError(table, operation, "statement timed out") from e
    except OSError as e:
        logger.error("Database connection lost", table=table, operation=operation, data={
            "error": str(e)
        })
        raise DbError(table, operation, str(e) or type(e).__name__) from e
