"""SQL text helpers shared across packages."""

from common.sql.statements import (
    find_markers,
    is_multi_statement,
    referenced_names,
    rewrite_markers,
    split_statements,
)

__all__ = [
    "find_markers",
    "is_multi_statement",
    "referenced_names",
    "rewrite_markers",
    "split_statements",
]
