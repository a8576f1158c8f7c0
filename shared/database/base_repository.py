"""Base repository with connection pooling and generic table operations."""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, ClassVar, Generic, List, Optional, Type, TypeVar

import asyncpg

from shared.database import statements
from shared.database.errors import NotFound, SchemaMismatch, translate_errors
from shared.database.pool import DatabasePool
from shared.database.table import RowModel, Table, check_model, check_row
from shared.observability.logger import get_logger

logger = get_logger("shared.database.repository")

M = TypeVar("M", bound=RowModel)


class BaseRepository:
    """Base repository with connection pooling.

    All repositories MUST inherit from this class and go through
    ``connection()`` so that pooled connections are always returned.
    """

    def __init__(self, pool: Optional[DatabasePool] = None):
        """Initialize repository with connection pool.

        Args:
            pool: Shared DatabasePool; defaults to DatabasePool.instance()

        Raises:
            NotInitialized: If no pool is given and none has been created
        """
        self.pool = pool if pool is not None else DatabasePool.instance()

    @asynccontextmanager
    async def connection(
        self, conn: Optional[asyncpg.Connection] = None
    ) -> AsyncIterator[asyncpg.Connection]:
        """Use the caller's connection, or check one out for this block.

        A caller-supplied connection (e.g. from DatabasePool.transaction())
        is neither acquired nor released here.
        """
        if conn is not None:
            yield conn
            return
        async with self.pool.acquire() as pooled:
            yield pooled


class TableRepository(BaseRepository, Generic[M]):
    """Find / insert / delete for one (table, row model) pair.

    Subclasses only bind the pair:

        class LogRepository(TableRepository[Log]):
            table = CORE_LOG
            model = Log

    The pair is checked when the repository is constructed, before any
    statement can reach the database.
    """

    table: ClassVar[Table]
    model: ClassVar[Type[RowModel]]

    def __init__(self, pool: Optional[DatabasePool] = None):
        if getattr(self, "table", None) is None or getattr(self, "model", None) is None:
            raise SchemaMismatch(f"{type(self).__name__} must define table and model")
        check_model(self.table, self.model)
        super().__init__(pool)

    def _check_row(self, row: Any, operation: str) -> None:
        if not isinstance(row, self.model):
            raise SchemaMismatch(
                f"{type(self).__name__}.{operation} expects {self.model.__name__}, "
                f"got {type(row).__name__}"
            )
        if operation == "update":
            # Upsert writes the insert columns too
            check_row(self.table, row, "insert")
        check_row(self.table, row, operation)

    async def find_by_id(self, id: Any, *, conn: Optional[asyncpg.Connection] = None) -> M:
        """Get the row whose primary key equals ``id``.

        Args:
            id: Scalar for single-column keys; tuple or mapping for composite keys
            conn: Optional caller-managed connection

        Returns:
            The decoded row model

        Raises:
            NotFound: If no row matches
            DbError: For other database errors
        """
        key = self.table.key_values(id)
        async with self.connection(conn) as c:
            with translate_errors(self.table.name, "find_by_id"):
                record = await c.fetchrow(statements.select_by_key(self.table), *key)

        if record is None:
            logger.warning("Row not found", table=self.table.name, operation="find_by_id", data={
                "key": id
            })
            raise NotFound(self.table.name, id)
        return self.model.from_record(record)

    async def find_all(self, *, conn: Optional[asyncpg.Connection] = None) -> List[M]:
        """Get every row of the table, in whatever order the database returns them."""
        async with self.connection(conn) as c:
            with translate_errors(self.table.name, "find_all"):
                records = await c.fetch(statements.select_all(self.table))

        rows = [self.model.from_record(r) for r in records]
        logger.debug("Rows retrieved", table=self.table.name, operation="find_all", data={
            "count": len(rows)
        })
        return rows

    async def insert(self, row: M, *, conn: Optional[asyncpg.Connection] = None) -> None:
        """Insert one row using every column the model exposes.

        Raises:
            Conflict: If a unique or primary-key constraint is violated
            DbError: For other database errors
        """
        self._check_row(row, "insert")
        values = row.to_insert_columns()
        args = [values[c] for c in self.table.columns]

        async with self.connection(conn) as c:
            with translate_errors(self.table.name, "insert"):
                await c.execute(statements.insert_row(self.table), *args)

        logger.debug("Row inserted", table=self.table.name, operation="insert", data={
            "key": row.primary_key()
        })

    async def delete_by_id(self, id: Any, *, conn: Optional[asyncpg.Connection] = None) -> None:
        """Delete the row(s) matching ``id``. Deleting a missing key is not an error."""
        key = self.table.key_values(id)
        async with self.connection(conn) as c:
            with translate_errors(self.table.name, "delete_by_id"):
                status = await c.execute(statements.delete_by_key(self.table), *key)

        logger.debug("Delete executed", table=self.table.name, operation="delete_by_id", data={
            "key": id,
            "status": status
        })


class UpsertRepository(TableRepository[M]):
    """TableRepository plus ``update``: atomic insert-or-overwrite on the primary key."""

    async def update(self, row: M, *, conn: Optional[asyncpg.Connection] = None) -> None:
        """Create the row, or overwrite every non-key column if the key exists.

        Runs as one INSERT ... ON CONFLICT (primary key) DO UPDATE statement,
        so concurrent updates of the same key never mix columns.

        Raises:
            Conflict: If a unique constraint other than the primary key is violated
            DbError: For other database errors
        """
        self._check_row(row, "update")
        inserted = row.to_insert_columns()
        updated = row.to_update_columns()
        args = [inserted[c] for c in self.table.columns]
        args.extend(updated[c] for c in self.table.value_columns)

        async with self.connection(conn) as c:
            with translate_errors(self.table.name, "update"):
                await c.execute(statements.upsert_row(self.table), *args)

        logger.debug("Row upserted", table=self.table.name, operation="update", data={
            "key": row.primary_key()
        })
