"""Interfaces shared by the DAL and the gateway."""

from .database_adapter import DatabaseAdapter, Params, Row, SqlTransformer
from .sql_source import SqlSource

__all__ = [
    "DatabaseAdapter",
    "Params",
    "Row",
    "SqlSource",
    "SqlTransformer",
]
