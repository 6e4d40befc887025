"""SQLite-backed DAL components."""

from .adapter import SqliteAdapter
from .param_translation import translate_named_params_to_sqlite

__all__ = [
    "SqliteAdapter",
    "translate_named_params_to_sqlite",
]
