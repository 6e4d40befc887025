"""Resolve logical query names to SQL text stored in ``.sql`` files.

Files live under one directory. A file whose name starts with
``MIGRATION_PREFIX`` is a migration; every other ``.sql`` file is a named
query addressable by its path relative to the directory, without the
extension (``reports/daily.sql`` -> ``reports/daily``).

Two modes:
    cached: every file is read once by ``load()``; lookups hit memory.
    live:   every ``resolve()`` re-reads the file from disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

SQL_EXTENSION = ".sql"
MIGRATION_PREFIX = "_"


class SqlSourceNotFound(FileNotFoundError):
    """No SQL file exists for a query name."""


@dataclass(frozen=True)
class QueryFile:
    """One ``.sql`` file discovered under the SQL directory."""

    name: str
    path: Path
    sql: str
    is_migration: bool


def is_migration_name(name: str) -> bool:
    """Return True for names that follow the migration naming rule.

    Only top-level files qualify: ``sub/_x`` is an ordinary query named ``sub/_x``.
    """
    return name.startswith(MIGRATION_PREFIX)


class SqlFileResolver:
    """Loads SQL text by name from a directory, with optional in-memory caching."""

    def __init__(
        self,
        sql_path: Union[str, Path],
        *,
        cache_enabled: bool = True,
        log_sql: bool = False,
    ) -> None:
        """Create a resolver rooted at ``sql_path``.

        Args:
            sql_path: Directory holding the ``.sql`` files.
            cache_enabled: Read files once at load() instead of on every call.
            log_sql: Log each loaded query name.
        """
        self.sql_path = Path(sql_path).resolve()
        self.cache_enabled = cache_enabled
        self.log_sql = log_sql
        self._cache: Dict[str, str] = {}
        self._migrations: Dict[str, QueryFile] = {}
        self._loaded = False

    def load(self) -> List[QueryFile]:
        """Enumerate the directory once, filling the query cache and migration list.

        Returns:
            Every discovered file, queries and migrations alike.
        """
        files = self.scan()
        self._cache = {f.name: f.sql for f in files if not f.is_migration}
        self._migrations = {f"{f.name}{SQL_EXTENSION}": f for f in files if f.is_migration}
        self._loaded = True

        if self.log_sql:
            for name in sorted(self._cache):
                logger.info("Loaded SQL query: %s", name)
        logger.info(
            "Loaded %d SQL queries and %d migrations from %s",
            len(self._cache),
            len(self._migrations),
            self.sql_path,
        )
        return files

    def scan(self) -> List[QueryFile]:
        """Read every ``.sql`` file under the directory (recursively), sorted by name."""
        return [
            QueryFile(
                name=name,
                path=path,
                sql=path.read_text(encoding="utf-8"),
                is_migration=is_migration_name(name),
            )
            for name, path in self._discover()
        ]

    def _discover(self) -> List[Tuple[str, Path]]:
        if not self.sql_path.is_dir():
            logger.warning("SQL directory does not exist: %s", self.sql_path)
            return []
        return [
            (path.relative_to(self.sql_path).with_suffix("").as_posix(), path)
            for path in sorted(self.sql_path.rglob(f"*{SQL_EXTENSION}"))
            if path.is_file()
        ]

    def _ensure_loaded(self) -> None:
        if self.cache_enabled and not self._loaded:
            self.load()

    def _path_for(self, name: str) -> Optional[Path]:
        if not name or name.startswith(("/", "\\")):
            return None
        candidate = (self.sql_path / f"{name}{SQL_EXTENSION}").resolve()
        if self.sql_path not in candidate.parents:
            return None
        return candidate

    def resolve(self, name: str) -> str:
        """Return the SQL text for a query or migration name.

        Raises:
            SqlSourceNotFound: When no file exists for ``name``.
            UnicodeDecodeError: The file is not valid UTF-8.
        """
        self._ensure_loaded()
        if self.cache_enabled:
            if name in self._cache:
                return self._cache[name]
            migration = self._migrations.get(f"{name}{SQL_EXTENSION}")
            if migration is not None:
                return migration.sql
            raise SqlSourceNotFound(f"Could not find SQL file: {name}")

        path = self._path_for(name)
        if path is None or not path.is_file():
            raise SqlSourceNotFound(f"Could not find SQL file: {name}")
        return path.read_text(encoding="utf-8")

    def list_migrations(self) -> List[str]:
        """Return migration filenames (with extension) sorted ascending."""
        if self.cache_enabled:
            self._ensure_loaded()
            return sorted(self._migrations)
        # Live listings only enumerate names; contents are read by resolve().
        return sorted(
            f"{name}{SQL_EXTENSION}" for name, _ in self._discover() if is_migration_name(name)
        )

    def query_names(self) -> List[str]:
        """Return the addressable (non-migration) query names."""
        if self.cache_enabled:
            self._ensure_loaded()
            return sorted(self._cache)
        return sorted(name for name, _ in self._discover() if not is_migration_name(name))
