import logging
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

import asyncpg

from common.sanitization import mask_connection_url, redact_sensitive_info
from common.sql.statements import split_statements
from dal.errors import (
    AuthenticationFailedError,
    ConnectivityError,
    DalError,
    DatabaseConnectionError,
    DatabaseNotFoundError,
    ExecutionError,
    NotInitializedError,
)
from dal.execution_policy import StatementErrorPolicy, resolve_statement_error_policy
from dal.postgres.param_translation import translate_named_params_to_postgres
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)

PROVIDER = "postgres"

DEFAULT_POOL_MAX_SIZE = 20
DEFAULT_IDLE_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0

_AUTH_SQLSTATES = {"28P01", "28000"}
_MISSING_DATABASE_SQLSTATE = "3D000"

T = TypeVar("T")


class PostgresAdapter:
    """PostgreSQL adapter backed by an asyncpg connection pool."""

    provider: str = PROVIDER

    def __init__(
        self,
        dsn: str,
        *,
        max_size: int = DEFAULT_POOL_MAX_SIZE,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        statement_error_policy: Optional[str] = None,
        log_sql: bool = False,
    ) -> None:
        """Create an uninitialized adapter; no connection is opened until init()."""
        if max_size < 1:
            raise ValueError("Postgres pool max_size must be at least 1")
        self._dsn = dsn
        self._max_size = max_size
        self._idle_timeout = idle_timeout
        self._connect_timeout = connect_timeout
        self._pool: Optional[asyncpg.Pool] = None
        self.statement_error_policy = resolve_statement_error_policy(
            PROVIDER, statement_error_policy
        )
        self.log_sql = log_sql

    @property
    def is_initialized(self) -> bool:
        """Return True while the pool is open."""
        return self._pool is not None

    def sql_transformer(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> Tuple[str, List[Any]]:
        """Rewrite canonical markers into positional ``$N`` slots."""
        return translate_named_params_to_postgres(sql, params)

    async def init(self) -> None:
        """Create the pool and prove connectivity with ``SELECT 1``."""
        if self._pool is not None:
            return
        logger.info("Initializing Postgres pool for %s", mask_connection_url(self._dsn))
        pool = None
        try:
            pool = await asyncpg.create_pool(
                self._dsn,
                min_size=1,
                max_size=self._max_size,
                max_inactive_connection_lifetime=self._idle_timeout,
                timeout=self._connect_timeout,
            )
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except Exception as exc:
            if pool is not None:
                await pool.close()
            raise classify_connection_error(exc, self._dsn) from exc
        self._pool = pool
        logger.info("Database adapter initialized")

    async def close(self) -> None:
        """Drain and close the pool; later operations raise NotInitializedError."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        logger.info("Postgres connection pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise NotInitializedError(PROVIDER)
        return self._pool

    def _session(self) -> "_PostgresSession":
        pool = self._require_pool()

        @asynccontextmanager
        async def _acquire() -> AsyncIterator[asyncpg.Connection]:
            async with pool.acquire() as conn:
                yield conn

        return _PostgresSession(_acquire, self.statement_error_policy, self.log_sql)

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute one or more statements and return the concatenated rows."""
        return await self._session().execute_query(sql, params)

    async def execute_single_statement(
        self, sql: str, args: Optional[List[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute one statement already in ``$N`` form with positional ``args``."""
        return await self._session().execute_statement(sql, args or [])

    async def transaction(self, work: Callable[[Any], Awaitable[T]]) -> T:
        """Run ``work`` on one pooled connection inside a database transaction.

        Any failure inside the transaction aborts the whole batch, since
        Postgres refuses further statements once a transaction has failed.
        """
        pool = self._require_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                return await work(_PostgresTransaction(conn, self.log_sql))


class _PostgresTransaction:
    """Transaction-scoped view bound to a single connection."""

    provider: str = PROVIDER
    is_initialized: bool = True

    def __init__(self, conn: asyncpg.Connection, log_sql: bool) -> None:
        @asynccontextmanager
        async def _same_connection() -> AsyncIterator[asyncpg.Connection]:
            yield conn

        self._session = _PostgresSession(_same_connection, StatementErrorPolicy.ABORT, log_sql)

    def sql_transformer(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> Tuple[str, List[Any]]:
        return translate_named_params_to_postgres(sql, params)

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        return await self._session.execute_query(sql, params)

    async def execute_single_statement(
        self, sql: str, args: Optional[List[Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run one ``$N`` statement with positional ``args`` on the transaction connection."""
        return await self._session.execute_statement(sql, args or [])

    async def transaction(self, work: Callable[[Any], Awaitable[T]]) -> T:
        raise DalError("Nested transactions are not supported")


class _PostgresSession:
    """Batch splitting and per-statement execution over a connection source."""

    def __init__(
        self,
        connection: Callable[[], Any],
        statement_error_policy: StatementErrorPolicy,
        log_sql: bool,
    ) -> None:
        self._connection = connection
        self._statement_error_policy = statement_error_policy
        self._log_sql = log_sql

    async def execute_query(
        self, sql: str, params: Optional[Mapping[str, Any]]
    ) -> List[Dict[str, Any]]:
        statements = split_statements(sql)
        if not statements:
            return []

        async with self._connection() as conn:
            if len(statements) == 1:
                stmt_sql, stmt_args = translate_named_params_to_postgres(statements[0], params)
                return await self._execute(conn, stmt_sql, stmt_args)

            logger.debug(
                "Executing multi-statement Postgres query (%d statements)", len(statements)
            )
            results: List[Dict[str, Any]] = []
            for stmt in statements:
                # Numbering restarts per statement so each one is independently valid.
                stmt_sql, stmt_args = translate_named_params_to_postgres(stmt, params)
                try:
                    results.extend(await self._execute(conn, stmt_sql, stmt_args))
                except ExecutionError as exc:
                    if self._statement_error_policy is StatementErrorPolicy.ABORT:
                        raise
                    logger.error(
                        "Error executing Postgres statement, continuing: %s", exc.message
                    )
            return results

    async def execute_statement(self, sql: str, args: List[Any]) -> List[Dict[str, Any]]:
        async with self._connection() as conn:
            return await self._execute(conn, sql, args)

    async def _execute(
        self, conn: asyncpg.Connection, sql: str, args: List[Any]
    ) -> List[Dict[str, Any]]:
        if self._log_sql:
            logger.debug("[POSTGRES] Executing SQL: %s", sql)

        async def _run():
            rows = await conn.fetch(sql, *args)
            return [dict(row) for row in rows]

        try:
            return await trace_query_operation(
                "dal.query.execute",
                provider=PROVIDER,
                sql=sql,
                operation=_run(),
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise ExecutionError(str(exc), provider=PROVIDER) from exc


def classify_connection_error(exc: BaseException, dsn: str) -> DatabaseConnectionError:
    """Map a pool-creation failure onto the connection error taxonomy."""
    sqlstate = getattr(exc, "sqlstate", None)
    if isinstance(exc, asyncpg.InvalidPasswordError) or sqlstate in _AUTH_SQLSTATES:
        return AuthenticationFailedError("Authentication failed")
    if isinstance(exc, asyncpg.InvalidCatalogNameError) or sqlstate == _MISSING_DATABASE_SQLSTATE:
        return DatabaseNotFoundError("Database does not exist")

    detail = redact_sensitive_info(str(exc)) or type(exc).__name__
    return ConnectivityError(
        f"Could not connect to Postgres at {mask_connection_url(dsn)}: {detail}"
    )
