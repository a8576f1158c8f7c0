"""Database infrastructure."""
from .base_repository import BaseRepository, TableRepository, UpsertRepository
from .errors import (
    Conflict,
    ConnectionExhausted,
    DataAccessError,
    DbError,
    NotFound,
    NotInitialized,
    SchemaMismatch,
)
from .pool import DatabasePool, create_pool, close_pool, get_pool
from .table import RowModel, Table

__all__ = [
    "BaseRepository",
    "TableRepository",
    "UpsertRepository",
    "DatabasePool",
    "create_pool",
    "close_pool",
    "get_pool",
    "RowModel",
    "Table",
    "DataAccessError",
    "NotFound",
    "Conflict",
    "ConnectionExhausted",
    "NotInitialized",
    "DbError",
    "SchemaMismatch",
]
