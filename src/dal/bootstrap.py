"""Startup wiring: build the adapter, connect, and apply migrations."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from common.interfaces import DatabaseAdapter, SqlSource
from common.sanitization import mask_connection_url
from dal.factory import create_database_adapter
from dal.migrations import run_migrations
from dal.sql_source import SqlFileResolver

if TYPE_CHECKING:
    from common.config.settings import DerbySettings

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Everything the data layer needs to start."""

    url: str
    sql_path: str = "./sql"
    log_sql: bool = False
    cache_enabled: bool = True
    statement_error_policy: Optional[str] = None
    binding_fallback: Optional[bool] = None
    pool_max_size: int = 20
    pool_idle_timeout: float = 30.0
    connect_timeout: float = 5.0
    run_migrations: bool = True

    @classmethod
    def from_settings(cls, settings: "DerbySettings") -> "DatabaseConfig":
        """Derive the data-layer config from application settings."""
        return cls(
            url=settings.DATABASE_URL,
            sql_path=settings.SQL_PATH,
            log_sql=settings.LOG_SQL,
            cache_enabled=not settings.DISABLE_SQL_CACHE,
            statement_error_policy=settings.SQL_STATEMENT_ERROR_POLICY,
            binding_fallback=settings.SQL_BINDING_FALLBACK,
            pool_max_size=settings.DB_POOL_MAX_SIZE,
            pool_idle_timeout=settings.DB_POOL_IDLE_TIMEOUT,
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
        )


def build_resolver(config: DatabaseConfig) -> SqlFileResolver:
    """Create (and, in cached mode, load) the file resolver for ``config``."""
    resolver = SqlFileResolver(
        config.sql_path,
        cache_enabled=config.cache_enabled,
        log_sql=config.log_sql,
    )
    if config.cache_enabled:
        resolver.load()
    return resolver


async def setup_database(
    config: DatabaseConfig, resolver: Optional[SqlSource] = None
) -> DatabaseAdapter:
    """Create the adapter for ``config.url``, connect it, and apply pending migrations.

    Args:
        config: Data-layer configuration.
        resolver: SQL source for migrations; built from ``config.sql_path``
            when omitted.

    Returns:
        The initialized adapter.

    Raises:
        UnsupportedProtocolError: Unknown URL scheme.
        DatabaseConnectionError: The adapter could not connect.
        MigrationError: A migration failed; the adapter is closed first.

    Any failure after the adapter connects closes it before propagating.
    """
    adapter = create_database_adapter(
        config.url,
        log_sql=config.log_sql,
        statement_error_policy=config.statement_error_policy,
        binding_fallback=config.binding_fallback,
        pool_max_size=config.pool_max_size,
        pool_idle_timeout=config.pool_idle_timeout,
        connect_timeout=config.connect_timeout,
    )
    await adapter.init()
    logger.info("Connected to %s", mask_connection_url(config.url))

    if config.run_migrations:
        try:
            source = resolver if resolver is not None else build_resolver(config)
            await run_migrations(adapter, source)
        except Exception:
            await adapter.close()
            raise
    return adapter
