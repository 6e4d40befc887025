"""Canonical error-code taxonomy for the query gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and observability."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    QUERY_NOT_FOUND = "QUERY_NOT_FOUND"
    UNSUPPORTED_PROTOCOL = "UNSUPPORTED_PROTOCOL"
    DB_CONNECTION_ERROR = "DB_CONNECTION_ERROR"
    DB_AUTH_FAILED = "DB_AUTH_FAILED"
    DB_NOT_FOUND = "DB_NOT_FOUND"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class JsonRpcErrorCode(int, Enum):
    """JSON-RPC 2.0 reserved error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.QUERY_NOT_FOUND: 404,
    ErrorCode.DB_CONNECTION_ERROR: 503,
    ErrorCode.DB_AUTH_FAILED: 503,
    ErrorCode.DB_NOT_FOUND: 503,
}

_JSON_RPC_CODES: dict[ErrorCode, JsonRpcErrorCode] = {
    ErrorCode.VALIDATION_ERROR: JsonRpcErrorCode.INVALID_PARAMS,
    ErrorCode.QUERY_NOT_FOUND: JsonRpcErrorCode.METHOD_NOT_FOUND,
}


def parse_error_code(
    value: Any,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Parse string-like values to `ErrorCode` with safe fallback."""
    if isinstance(value, ErrorCode):
        return value
    if value is None:
        return fallback
    try:
        return ErrorCode(str(value).strip())
    except ValueError:
        return fallback


def http_status_for_code(value: Any) -> int:
    """Return the HTTP status used when an error code reaches the HTTP API."""
    return _HTTP_STATUS.get(parse_error_code(value), 500)


def json_rpc_code_for_code(value: Any) -> int:
    """Return the JSON-RPC error code used when an error code reaches a WebSocket client."""
    return int(_JSON_RPC_CODES.get(parse_error_code(value), JsonRpcErrorCode.INTERNAL_ERROR))

