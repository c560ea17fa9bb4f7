"""Database migrations module.

Migrations are versioned SQL files in this directory (``001_initial.sql``),
applied in order and recorded in ``schema_migrations``.
"""

import logging
from pathlib import Path
from typing import Any

from judge.db.core import _get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_CREATE_MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    description TEXT
);
"""


async def get_current_version() -> int:
    """Get the current migration version from the database."""
    async with _get_connection() as conn:
        await conn.execute(_CREATE_MIGRATIONS_TABLE)
        row = await (await conn.execute(
            "SELECT COALESCE(MAX(version), 0) FROM schema_migrations"
        )).fetchone()
        return int(row[0]) if row and row[0] else 0


def list_migrations() -> list[dict[str, Any]]:
    """Parse migration files into version-ordered dicts."""
    migrations = []
    for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
        # "001_initial.sql" -> 1
        try:
            version = int(path.stem.split("_")[0])
        except (ValueError, IndexError):
            continue
        migrations.append({
            "version": version,
            "description": "_".join(path.stem.split("_")[1:]),
            "path": path,
        })
    return sorted(migrations, key=lambda m: m["version"])


async def run_migrations() -> int:
    """Run all pending migrations.

    Returns:
        Number of migrations applied.
    """
    current = await get_current_version()
    applied = 0

    for migration in list_migrations():
        if migration["version"] <= current:
            continue
        async with _get_connection(autocommit=False) as conn:
            async with conn.transaction():
                await conn.execute(migration["path"].read_text())
                await conn.execute(
                    "INSERT INTO schema_migrations (version, description) VALUES (%s, %s)",
                    (migration["version"], migration["description"]),
                )
        logger.info("Applied migration %d: %s", migration["version"], migration["description"])
        applied += 1

    if applied:
        logger.info("Applied %d migrations", applied)
    else:
        logger.debug("Schema is up to date at version %d", current)
    return applied
