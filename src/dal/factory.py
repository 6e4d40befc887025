"""Adapter factory with URL-scheme driven provider selection.

The connection URL scheme picks the adapter. Builders are registered
lazily so importing this module never imports a driver that is not used.

Canonical Provider IDs:
    - "sqlite": SqliteAdapter (``sqlite://path``, ``sqlite3://path``)
    - "postgres": PostgresAdapter (``postgres://``, ``postgresql://``, ``pg://``)

Example:
    >>> from dal.factory import create_database_adapter
    >>> adapter = create_database_adapter("sqlite://:memory:")
    >>> adapter.provider
    'sqlite'
"""

import logging
from typing import Any, Callable, Optional

from common.interfaces import DatabaseAdapter
from common.sanitization import mask_connection_url
from dal.errors import UnsupportedProtocolError
from dal.util.env import parse_database_url

logger = logging.getLogger(__name__)

AdapterBuilder = Callable[..., DatabaseAdapter]

# =============================================================================
# Provider Registry
# =============================================================================

ADAPTER_PROVIDERS: "dict[str, AdapterBuilder]" = {}


def register_adapter_provider(provider: str, builder: AdapterBuilder) -> None:
    """Register (or replace) the builder for a canonical provider ID."""
    ADAPTER_PROVIDERS[provider] = builder


def _build_sqlite(
    target: str,
    *,
    log_sql: bool = False,
    statement_error_policy: Optional[str] = None,
    binding_fallback: Optional[bool] = None,
    **_: Any,
) -> DatabaseAdapter:
    from dal.sqlite import SqliteAdapter

    return SqliteAdapter(
        target,
        statement_error_policy=statement_error_policy,
        binding_fallback=binding_fallback,
        log_sql=log_sql,
    )


def _build_postgres(
    target: str,
    *,
    log_sql: bool = False,
    statement_error_policy: Optional[str] = None,
    pool_max_size: Optional[int] = None,
    pool_idle_timeout: Optional[float] = None,
    connect_timeout: Optional[float] = None,
    **_: Any,
) -> DatabaseAdapter:
    from dal.postgres import PostgresAdapter
    from dal.postgres.adapter import (
        DEFAULT_CONNECT_TIMEOUT_SECONDS,
        DEFAULT_IDLE_TIMEOUT_SECONDS,
        DEFAULT_POOL_MAX_SIZE,
    )

    # asyncpg only understands the postgres/postgresql schemes.
    return PostgresAdapter(
        f"postgresql://{target}",
        max_size=pool_max_size or DEFAULT_POOL_MAX_SIZE,
        idle_timeout=(
            DEFAULT_IDLE_TIMEOUT_SECONDS if pool_idle_timeout is None else pool_idle_timeout
        ),
        connect_timeout=(
            DEFAULT_CONNECT_TIMEOUT_SECONDS if connect_timeout is None else connect_timeout
        ),
        statement_error_policy=statement_error_policy,
        log_sql=log_sql,
    )


def _register_defaults() -> None:
    ADAPTER_PROVIDERS.setdefault("sqlite", _build_sqlite)
    ADAPTER_PROVIDERS.setdefault("postgres", _build_postgres)


def create_database_adapter(url: str, **options: Any) -> DatabaseAdapter:
    """Create an uninitialized adapter for ``url``.

    Args:
        url: Connection URL of the form ``scheme://rest``.
        **options: Adapter settings (``log_sql``, ``statement_error_policy``,
            ``binding_fallback``, ``pool_max_size``, ``pool_idle_timeout``,
            ``connect_timeout``); each builder ignores what it does not use.

    Raises:
        UnsupportedProtocolError: If the scheme matches no registered provider.
    """
    _register_defaults()
    provider, target = parse_database_url(url)
    builder = ADAPTER_PROVIDERS.get(provider)
    if builder is None:
        raise UnsupportedProtocolError(provider or url.split(":", 1)[0])

    logger.info("Initializing %s adapter for %s", provider, mask_connection_url(url))
    return builder(target, **options)
