"""Forward-only SQL migrations tracked in the ``_migrations`` table.

Migrations are the ``_``-prefixed ``.sql`` files of a SQL source. They run
in ascending filename order, each at most once per database; the full
filename (``_0001_create_users.sql``) is recorded after it succeeds.
Concurrent runners against one database are not coordinated.
"""

import asyncio
import logging
from typing import List, Set

from common.interfaces import DatabaseAdapter, SqlSource
from common.observability import MIGRATIONS_APPLIED, dal_metrics
from dal.errors import DalError, MigrationError
from dal.sql_source import SQL_EXTENSION

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "_migrations"

CREATE_MIGRATIONS_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
    name TEXT PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

SELECT_APPLIED_SQL = f"SELECT name FROM {MIGRATIONS_TABLE}"
RECORD_MIGRATION_SQL = f"INSERT INTO {MIGRATIONS_TABLE} (name) VALUES (:name)"


def migration_query_name(filename: str) -> str:
    """Return the source name for a migration filename (extension removed)."""
    if filename.endswith(SQL_EXTENSION):
        return filename[: -len(SQL_EXTENSION)]
    return filename


class MigrationRunner:
    """Applies pending migrations from a SQL source through an adapter."""

    def __init__(self, adapter: DatabaseAdapter, source: SqlSource) -> None:
        """Bind the runner to an initialized adapter and a SQL source."""
        self.adapter = adapter
        self.source = source

    async def ensure_table(self) -> None:
        """Create the tracking table if it does not exist."""
        await self.adapter.execute_query(CREATE_MIGRATIONS_TABLE_SQL)

    async def applied_migrations(self) -> Set[str]:
        """Return the filenames already recorded as applied."""
        rows = await self.adapter.execute_query(SELECT_APPLIED_SQL)
        return {row["name"] for row in rows}

    async def pending_migrations(self) -> List[str]:
        """Return migration filenames not yet applied, in application order."""
        await self.ensure_table()
        applied = await self.applied_migrations()
        listed = await asyncio.to_thread(self.source.list_migrations)
        return [name for name in sorted(listed) if name not in applied]

    async def run(self) -> List[str]:
        """Apply every pending migration in order.

        Returns:
            The filenames applied by this call (empty when up to date).

        Raises:
            MigrationError: On the first failing migration; later files are
                not attempted and the failing file is not recorded.
        """
        pending = await self.pending_migrations()
        if not pending:
            logger.info("No pending migrations")
            return []

        logger.info("Found %d pending migration(s)", len(pending))
        applied: List[str] = []
        for filename in pending:
            logger.info("Running migration: %s", filename)
            try:
                name = migration_query_name(filename)
                sql = await asyncio.to_thread(self.source.resolve, name)
                await self.adapter.execute_query(sql)
                await self.adapter.execute_query(RECORD_MIGRATION_SQL, {"name": filename})
            except (DalError, OSError, ValueError) as exc:
                message = getattr(exc, "message", None) or str(exc)
                logger.error("Migration %s failed: %s", filename, message)
                raise MigrationError(
                    filename, message, provider=self.adapter.provider
                ) from exc

            dal_metrics.increment(
                MIGRATIONS_APPLIED, attributes={"db.provider": self.adapter.provider}
            )
            applied.append(filename)
            logger.info("Migration completed: %s", filename)

        logger.info("Applied %d migration(s)", len(applied))
        return applied


async def run_migrations(adapter: DatabaseAdapter, source: SqlSource) -> List[str]:
    """Apply pending migrations; see ``MigrationRunner.run``."""
    return await MigrationRunner(adapter, source).run()
