import asyncio
import logging
import sqlite3
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

import aiosqlite

from common.sql.statements import split_statements
from dal.errors import DalError, DatabaseConnectionError, ExecutionError, NotInitializedError
from dal.execution_policy import (
    StatementErrorPolicy,
    resolve_binding_fallback,
    resolve_statement_error_policy,
)
from dal.sqlite.param_translation import translate_named_params_to_sqlite
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)

PROVIDER = "sqlite"

T = TypeVar("T")


class SqliteAdapter:
    """Embedded SQLite adapter over a single aiosqlite connection.

    aiosqlite runs every statement on one worker thread. A transaction holds
    the adapter lock from BEGIN to COMMIT/ROLLBACK so statements from other
    tasks wait instead of joining it. Inside ``work`` use the transaction
    view it receives; calling the adapter itself there would wait forever.
    """

    provider: str = PROVIDER

    def __init__(
        self,
        db_path: str,
        *,
        statement_error_policy: Optional[str] = None,
        binding_fallback: Optional[bool] = None,
        log_sql: bool = False,
    ) -> None:
        """Create an uninitialized adapter for ``db_path`` (``file:`` prefix allowed)."""
        self._db_path = normalize_sqlite_path(db_path)
        self._conn: Optional[aiosqlite.Connection] = None
        self._session: Optional[_SqliteSession] = None
        self._lock = asyncio.Lock()
        self.statement_error_policy = resolve_statement_error_policy(
            PROVIDER, statement_error_policy
        )
        self.binding_fallback = resolve_binding_fallback(binding_fallback)
        self.log_sql = log_sql

    @property
    def db_path(self) -> str:
        """Return the filesystem path (or ``:memory:``) this adapter opens."""
        return self._db_path

    @property
    def is_initialized(self) -> bool:
        """Return True while the connection is open."""
        return self._conn is not None

    def sql_transformer(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> Tuple[str, Dict[str, Any]]:
        """Rewrite canonical markers into SQLite named binding."""
        return translate_named_params_to_sqlite(sql, params)

    async def init(self) -> None:
        """Open (creating if absent) the database file."""
        if self._conn is not None:
            return
        logger.info("Initializing SQLite with path: %s", self._db_path)
        try:
            conn = await aiosqlite.connect(self._db_path, isolation_level=None)
        except sqlite3.Error as exc:
            raise DatabaseConnectionError(f"Failed to open SQLite database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self._session = _SqliteSession(
            conn,
            statement_error_policy=self.statement_error_policy,
            binding_fallback=self.binding_fallback,
            log_sql=self.log_sql,
        )
        logger.info("Database adapter initialized")

    async def close(self) -> None:
        """Close the connection; later operations raise NotInitializedError."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._session = None
        logger.info("SQLite connection closed")

    def _require_session(self) -> "_SqliteSession":
        if self._session is None:
            raise NotInitializedError(PROVIDER)
        return self._session

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute one or more statements and return the concatenated rows."""
        session = self._require_session()
        async with self._lock:
            return await session.execute_query(sql, params)

    async def execute_single_statement(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute exactly one statement with canonical markers and a parameter mapping."""
        session = self._require_session()
        async with self._lock:
            return await session.execute_statement(sql, params)

    async def transaction(self, work: Callable[[Any], Awaitable[T]]) -> T:
        """Run ``work`` between BEGIN and COMMIT with the connection to itself.

        Other callers of this adapter block until the transaction ends.
        """
        session = self._require_session()
        async with self._lock:
            await session.run_control("BEGIN")
            try:
                result = await work(_SqliteTransaction(session))
            except BaseException:
                await session.run_control("ROLLBACK")
                raise
            await session.run_control("COMMIT")
            return result


class _SqliteTransaction:
    """Transaction-scoped view handed to ``SqliteAdapter.transaction`` callbacks."""

    provider: str = PROVIDER
    is_initialized: bool = True

    def __init__(self, session: "_SqliteSession") -> None:
        self._session = session

    def sql_transformer(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> Tuple[str, Dict[str, Any]]:
        return translate_named_params_to_sqlite(sql, params)

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        return await self._session.execute_query(sql, params)

    async def execute_single_statement(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run one canonical statement with a parameter mapping, bypassing the adapter lock."""
        return await self._session.execute_statement(sql, params)

    async def transaction(self, work: Callable[[Any], Awaitable[T]]) -> T:
        raise DalError("Nested transactions are not supported")


class _SqliteSession:
    """Statement execution over one open aiosqlite connection."""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        *,
        statement_error_policy: StatementErrorPolicy,
        binding_fallback: bool,
        log_sql: bool,
    ) -> None:
        self._conn = conn
        self._statement_error_policy = statement_error_policy
        self._binding_fallback = binding_fallback
        self._log_sql = log_sql

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        statements = merge_incomplete_statements(split_statements(sql))
        if not statements:
            return []
        if len(statements) == 1:
            return await self.execute_statement(statements[0], params)

        logger.debug("Executing multi-statement SQLite query (%d statements)", len(statements))
        results: List[Dict[str, Any]] = []
        for stmt in statements:
            try:
                results.extend(await self.execute_statement(stmt, params))
            except ExecutionError as exc:
                if self._statement_error_policy is StatementErrorPolicy.ABORT:
                    raise
                logger.error("Error executing SQLite statement, continuing: %s", exc.message)
        return results

    async def execute_statement(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        bound_sql, bound_params = translate_named_params_to_sqlite(sql, params)
        if self._log_sql:
            logger.debug("[SQLITE] Executing SQL: %s", bound_sql)
        try:
            return await self._fetch(bound_sql, bound_params)
        except (sqlite3.ProgrammingError, sqlite3.InterfaceError) as exc:
            if not (bound_params and _is_binding_error(exc)):
                raise ExecutionError(str(exc), provider=PROVIDER) from exc
            if not self._binding_fallback:
                raise ExecutionError(
                    f"Parameter binding failed: {exc}", provider=PROVIDER
                ) from exc
            logger.warning("Parameter binding error, re-executing without parameters: %s", exc)
        except sqlite3.Error as exc:
            raise ExecutionError(str(exc), provider=PROVIDER) from exc

        try:
            return await self._fetch(bound_sql, dict.fromkeys(bound_params))
        except sqlite3.Error as exc:
            raise ExecutionError(str(exc), provider=PROVIDER) from exc

    async def run_control(self, statement: str) -> None:
        try:
            await self._conn.execute(statement)
        except sqlite3.Error as exc:
            raise ExecutionError(str(exc), provider=PROVIDER) from exc

    async def _fetch(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        async def _run():
            async with self._conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
            return [dict(row) for row in rows]

        return await trace_query_operation(
            "dal.query.execute",
            provider=PROVIDER,
            sql=sql,
            operation=_run(),
        )


def _is_binding_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "binding" in message or "bindings" in message


def merge_incomplete_statements(statements: List[str]) -> List[str]:
    """Re-join pieces that SQLite reports as incomplete (e.g. trigger bodies)."""
    merged: List[str] = []
    buffer = ""
    for stmt in statements:
        buffer = f"{buffer}\n;\n{stmt}" if buffer else stmt
        # The terminator goes on its own line so a trailing -- comment cannot swallow it.
        if sqlite3.complete_statement(f"{buffer}\n;"):
            merged.append(buffer)
            buffer = ""
    if buffer:
        merged.append(buffer)
    return merged


def normalize_sqlite_path(db_path: str) -> str:
    """Strip the ``file:`` prefix used in connection strings."""
    path = (db_path or "").strip()
    if path.startswith("file:"):
        path = path[len("file:") :]
    return path or ":memory:"
