"""
Bring an older PostgreSQL schema up to date with the current models.

Run inside docker (recommended):
  docker exec -i barangay-api sh -lc "cd /app && PYTHONPATH=/app python scripts/check_and_fix_columns.py"

Adds missing columns first, then lets create_all build any missing tables.
"""

from __future__ import annotations

import asyncio
import logging

from core.logging import configure_logging
from db.database import create_db_and_tables, dispose_engine, engine
from db.migrations import add_missing_columns

logger = logging.getLogger("check_and_fix_columns")


async def main() -> None:
    try:
        added = await add_missing_columns(engine)
        await create_db_and_tables()
    finally:
        await dispose_engine()

    if added:
        logger.info("Added columns: %s", ", ".join(added))
    else:
        logger.info("Schema already up to date")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
