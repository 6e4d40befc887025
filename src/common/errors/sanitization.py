"""Sanitization helpers for user-facing error surfaces."""

from __future__ import annotations

from typing import Any, Optional

from common.errors.error_codes import ErrorCode, parse_error_code
from common.sanitization.text import redact_sensitive_info

MAX_PUBLIC_ERROR_LENGTH = 2048

_SAFE_ERROR_TEMPLATES: dict[ErrorCode, str] = {
    ErrorCode.DB_CONNECTION_ERROR: "Database connection failed.",
    ErrorCode.DB_AUTH_FAILED: "Database authentication failed.",
    ErrorCode.DB_NOT_FOUND: "Database does not exist.",
    ErrorCode.NOT_INITIALIZED: "Database is not available.",
    ErrorCode.INTERNAL_ERROR: "An internal error occurred.",
}


def sanitize_error_message(
    message: Any,
    *,
    error_code: Any = None,
    fallback: str = "Request failed.",
) -> str:
    """Return safe user-facing error text without leaking credentials.

    Connection-level codes collapse to fixed templates. Everything else keeps
    the original (backend) message with secrets redacted and length bounded.
    """
    code: Optional[ErrorCode] = (
        parse_error_code(error_code, fallback=ErrorCode.EXECUTION_ERROR)
        if error_code is not None
        else None
    )
    template = _SAFE_ERROR_TEMPLATES.get(code) if code is not None else None
    if template:
        return template

    raw_text = "" if message is None else str(message)
    safe_text = redact_sensitive_info(raw_text.strip())
    if not safe_text:
        safe_text = (fallback or "Request failed.").strip()
    return safe_text[:MAX_PUBLIC_ERROR_LENGTH]


def sanitize_exception(
    exc: Exception,
    *,
    error_code: Any = None,
    fallback: str = "Request failed.",
) -> str:
    """Sanitize an exception for outward-facing API contracts."""
    if error_code is None:
        error_code = getattr(exc, "error_code", None)
    return sanitize_error_message(
        str(exc),
        error_code=error_code,
        fallback=fallback,
    )
