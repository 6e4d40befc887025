"""Common error taxonomy helpers."""

from common.errors.error_codes import (
    ErrorCode,
    JsonRpcErrorCode,
    http_status_for_code,
    json_rpc_code_for_code,
    parse_error_code,
)
from common.errors.sanitization import sanitize_error_message, sanitize_exception

__all__ = [
    "ErrorCode",
    "JsonRpcErrorCode",
    "http_status_for_code",
    "json_rpc_code_for_code",
    "parse_error_code",
    "sanitize_error_message",
    "sanitize_exception",
]
