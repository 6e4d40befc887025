"""Data Abstraction Layer (DAL) for Derby.

This package resolves named SQL files, translates canonical ``:name``/``$name``
parameters for each backend, and runs the statements through an adapter.
"""

from dal.bootstrap import DatabaseConfig, build_resolver, setup_database
from dal.factory import create_database_adapter
from dal.migrations import MigrationRunner, run_migrations
from dal.named_query import NamedQueryExecutor
from dal.sql_source import SqlFileResolver

__all__ = [
    "DatabaseConfig",
    "MigrationRunner",
    "NamedQueryExecutor",
    "SqlFileResolver",
    "build_resolver",
    "create_database_adapter",
    "run_migrations",
    "setup_database",
]
