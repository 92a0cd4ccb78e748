"""Database migration utilities for deployments created before a column existed.

PostgreSQL only (uses information_schema / pg_indexes).
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# table -> {column: (type, default or None)}
EXPECTED_COLUMNS = {
    "users": {
        "first_name": ("VARCHAR", "''"),
        "last_name": ("VARCHAR", "''"),
        "role": ("TEXT", "'STAFF'"),
        "last_login": ("TIMESTAMPTZ", None),
    },
    "residents": {
        "hashed_password": ("VARCHAR", None),
    },
    "inventory_items": {
        "qr_code": ("VARCHAR", None),
        "is_active": ("BOOLEAN", "TRUE"),
    },
}

UNIQUE_INDEXES = {
    "ix_inventory_items_qr_code": ("inventory_items", "qr_code"),
}


async def _existing_columns(conn, table_name: str) -> set[str]:
    result = await conn.execute(
        text("""
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = :table_name
        """),
        {"table_name": table_name},
    )
    return {row[0] for row in result.fetchall()}


async def add_missing_columns(engine: AsyncEngine) -> list[str]:
    """Add columns the models expect but an older schema lacks.

    Returns the list of "table.column" entries that were added.
    """
    added: list[str] = []
    missing_tables: set[str] = set()
    async with engine.begin() as conn:
        for table_name, columns in EXPECTED_COLUMNS.items():
            existing = await _existing_columns(conn, table_name)
            if not existing:
                missing_tables.add(table_name)
                logger.info("Table %s does not exist yet; create_all will build it", table_name)
                continue

            for column_name, (column_type, default_value) in columns.items():
                if column_name in existing:
                    logger.info("%s.%s already exists", table_name, column_name)
                    continue

                logger.info("Adding %s.%s ...", table_name, column_name)
                if default_value is None:
                    await conn.execute(
                        text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_type}")
                    )
                else:
                    # Add with default, backfill, then tighten to NOT NULL
                    await conn.execute(
                        text(f"""
                            ALTER TABLE {table_name}
                            ADD COLUMN {column_name} {column_type} DEFAULT {default_value}
                        """)
                    )
                    await conn.execute(
                        text(f"""
                            UPDATE {table_name}
                            SET {column_name} = {default_value}
                            WHERE {column_name} IS NULL
                        """)
                    )
                    await conn.execute(
                        text(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} SET NOT NULL")
                    )
                added.append(f"{table_name}.{column_name}")

        for index_name, (table_name, column_name) in UNIQUE_INDEXES.items():
            if table_name in missing_tables:
                continue
            result = await conn.execute(
                text("SELECT indexname FROM pg_indexes WHERE tablename = :t AND indexname = :i"),
                {"t": table_name, "i": index_name},
            )
            if result.scalar() is None:
                logger.info("Creating unique index %s", index_name)
                await conn.execute(
                    text(f"CREATE UNIQUE INDEX {index_name} ON {table_name} ({column_name})")
                )

    return added
