"""Sanitization utilities."""

from .text import mask_connection_url, redact_sensitive_info

__all__ = ["mask_connection_url", "redact_sensitive_info"]
