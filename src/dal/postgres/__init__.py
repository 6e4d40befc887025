"""PostgreSQL DAL Implementations.

This package contains the asyncpg-backed adapter and its parameter translation.
"""

from .adapter import PostgresAdapter
from .param_translation import translate_named_params_to_postgres

__all__ = [
    "PostgresAdapter",
    "translate_named_params_to_postgres",
]
