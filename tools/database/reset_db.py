#!/usr/bin/env python
"""Reset database by dropping the core_log table."""
import asyncio
import sys
import os

# Add repository root to Python path
repo_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, repo_root)

import asyncpg
from config.settings import get_settings
from corelog.models.log import CORE_LOG


async def reset_db():
    settings = get_settings()
    conn = await asyncpg.connect(settings.database_url)
    try:
        print(f"Dropping {CORE_LOG.name}...")
        await conn.execute(f"DROP TABLE IF EXISTS {CORE_LOG.qualified_name} CASCADE")

        # Update alembic version to base
        await conn.execute("DROP TABLE IF EXISTS alembic_version")
    finally:
        await conn.close()
    print("Database reset complete!")


if __name__ == "__main__":
    asyncio.run(reset_db())
