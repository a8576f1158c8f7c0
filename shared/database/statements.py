"""Parameterized SQL for the generic repository operations.

Every builder takes a ``Table`` and returns SQL text with ``$n`` placeholders.
Argument order is always primary_key order for keys and ``columns`` order
for row values.
"""
from functools import lru_cache

from shared.database.table import Table, quote_identifier


def _key_predicate(table: Table, start: int = 1) -> str:
    return " AND ".join(
        f"{quote_identifier(c)} = ${i}"
        for i, c in enumerate(table.primary_key, start=start)
    )


def _column_list(table: Table) -> str:
    return ", ".join(quote_identifier(c) for c in table.columns)


@lru_cache(maxsize=None)
def select_by_key(table: Table) -> str:
    """SELECT every column of the row matching the primary key, at most one."""
    return (
        f"SELECT {_column_list(table)} FROM {table.qualified_name} "
        f"WHERE {_key_predicate(table)} LIMIT 1"
    )


@lru_cache(maxsize=None)
def select_all(table: Table) -> str:
    """SELECT every column of every row; no ORDER BY."""
    return f"SELECT {_column_list(table)} FROM {table.qualified_name}"


@lru_cache(maxsize=None)
def insert_row(table: Table) -> str:
    """Single-row INSERT of every column."""
    placeholders = ", ".join(f"${i}" for i in range(1, len(table.columns) + 1))
    return (
        f"INSERT INTO {table.qualified_name} ({_column_list(table)}) "
        f"VALUES ({placeholders})"
    )


@lru_cache(maxsize=None)
def delete_by_key(table: Table) -> str:
    """DELETE the row(s) matching the primary key."""
    return f"DELETE FROM {table.qualified_name} WHERE {_key_predicate(table)}"


@lru_cache(maxsize=None)
def upsert_row(table: Table) -> str:
    """Single-statement insert-or-overwrite keyed on the primary key.

    Arguments are the row values in ``columns`` order followed by the update
    values in ``value_columns`` order. On conflict every non-key column is
    overwritten. A table made only of key columns has nothing to overwrite,
    so the conflict is ignored.
    """
    conflict_target = ", ".join(quote_identifier(c) for c in table.primary_key)
    value_columns = table.value_columns
    if not value_columns:
        return f"{insert_row(table)} ON CONFLICT ({conflict_target}) DO NOTHING"

    offset = len(table.columns)
    assignments = ", ".join(
        f"{quote_identifier(c)} = ${i}"
        for i, c in enumerate(value_columns, start=offset + 1)
    )
    return (
        f"{insert_row(table)} "
        f"ON CONFLICT ({conflict_target}) DO UPDATE SET {assignments}"
    )
