"""Shared observability helpers."""

from common.observability.metrics import (
    MIGRATIONS_APPLIED,
    QUERIES_EXECUTED,
    STATEMENTS_EXECUTED,
    dal_metrics,
)

__all__ = ["MIGRATIONS_APPLIED", "QUERIES_EXECUTED", "STATEMENTS_EXECUTED", "dal_metrics"]
