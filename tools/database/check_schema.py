#!/usr/bin/env python
"""Check that the live database matches the declared table descriptors."""
import asyncio
import sys
import os

# Add repository root to Python path
repo_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, repo_root)

import asyncpg
from config.settings import get_settings
from corelog.models.log import CORE_LOG
from shared.database.table import Table

TABLES = [CORE_LOG]


async def fetch_columns(conn: asyncpg.Connection, table: Table) -> list[asyncpg.Record]:
    return await conn.fetch(
        """
        SELECT column_name, data_type
        FROM information_schema.columns
        WHERE table_name = $1 AND table_schema = COALESCE($2, current_schema())
        ORDER BY ordinal_position
        """,
        table.name,
        table.schema
    )


async def fetch_primary_key(conn: asyncpg.Connection, table: Table) -> list[str]:
    rows = await conn.fetch(
        """
        SELECT a.attname
        FROM pg_index i
        JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
        WHERE i.indrelid = $1::regclass AND i.indisprimary
        ORDER BY array_position(i.indkey, a.attnum)
        """,
        table.qualified_name
    )
    return [r['attname'] for r in rows]


async def check_schema() -> bool:
    settings = get_settings()
    conn = await asyncpg.connect(settings.database_url)
    ok = True
    try:
        for table in TABLES:
            print(f"=== {table.name} columns ===")
            columns = await fetch_columns(conn, table)
            for row in columns:
                print(f"  {row['column_name']}: {row['data_type']}")

            live = {row['column_name'] for row in columns}
            if live != set(table.columns):
                ok = False
                print(f"  MISMATCH: declared {sorted(table.columns)}, live {sorted(live)}")

            if live:
                primary_key = await fetch_primary_key(conn, table)
                if tuple(primary_key) != table.primary_key:
                    ok = False
                    print(f"  MISMATCH: declared key {list(table.primary_key)}, live {primary_key}")
    finally:
        await conn.close()
    return ok


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(check_schema()) else 1)
