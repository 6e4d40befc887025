"""Exception taxonomy raised by the data access layer."""

from __future__ import annotations

from typing import Optional

from common.errors.error_codes import ErrorCode


class DalError(Exception):
    """Base class for all DAL failures."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        """Initialize the error with a human-readable message."""
        super().__init__(message)
        self.message = message


class QueryNotFoundError(DalError):
    """No SQL source exists for the requested query name."""

    error_code = ErrorCode.QUERY_NOT_FOUND

    def __init__(self, name: str) -> None:
        """Initialize with the query name that failed to resolve."""
        super().__init__(f"Query '{name}' not found")
        self.name = name


class UnsupportedProtocolError(DalError):
    """Connection URL scheme is not one of the supported backends."""

    error_code = ErrorCode.UNSUPPORTED_PROTOCOL

    def __init__(self, protocol: str) -> None:
        """Initialize with the offending URL scheme."""
        super().__init__(f"Unsupported database protocol: {protocol}")
        self.protocol = protocol


class DatabaseConnectionError(DalError, ConnectionError):
    """The adapter could not establish its connection or pool."""

    error_code = ErrorCode.DB_CONNECTION_ERROR


class AuthenticationFailedError(DatabaseConnectionError):
    """The server rejected the configured credentials."""

    error_code = ErrorCode.DB_AUTH_FAILED


class DatabaseNotFoundError(DatabaseConnectionError):
    """The configured database does not exist on the server."""

    error_code = ErrorCode.DB_NOT_FOUND


class ConnectivityError(DatabaseConnectionError):
    """Generic failure reaching the database server."""


class ExecutionError(DalError):
    """A statement failed at the backend.

    The backend's message is kept verbatim in ``message``; the original
    exception is chained as ``__cause__``.
    """

    error_code = ErrorCode.EXECUTION_ERROR

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        """Initialize with the backend message and the provider that raised it."""
        super().__init__(message)
        self.provider = provider


class MigrationError(ExecutionError):
    """A migration file failed; later migrations were not applied."""

    error_code = ErrorCode.MIGRATION_FAILED

    def __init__(self, migration: str, message: str, *, provider: Optional[str] = None) -> None:
        """Initialize with the failing migration filename and backend message."""
        super().__init__(f"Migration {migration} failed: {message}", provider=provider)
        self.migration = migration


class NotInitializedError(DalError):
    """An adapter was used before init() or after close()."""

    error_code = ErrorCode.NOT_INITIALIZED

    def __init__(self, provider: str) -> None:
        """Initialize with the provider of the unusable adapter."""
        super().__init__(f"{provider} adapter not initialized")
        self.provider = provider
