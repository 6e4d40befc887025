"""Lexical helpers for stored SQL text.

The gateway does not parse SQL. It only needs to find canonical parameter
markers (``:name`` or ``$name``) and split batches on ``;``. Both operations
skip string literals, quoted identifiers, comments and Postgres
dollar-quoted bodies so that a ``;`` or ``:x`` inside them is left alone.
"""

from __future__ import annotations

import re
from typing import Callable, List

_TOKEN_RE = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*'?) |
    (?P<dquote>"(?:[^"]|"")*"?) |
    (?P<dollar_quoted>\$(?P<tag>(?:[A-Za-z_]\w*)?)\$.*?(?:\$(?P=tag)\$|\Z)) |
    (?P<line_comment>--[^\n]*) |
    (?P<block_comment>/\*.*?(?:\*/|\Z)) |
    (?P<cast>::) |
    (?P<marker>[:$](?P<name>[A-Za-z_]\w*)) |
    (?P<semicolon>;)
    """,
    re.VERBOSE | re.DOTALL,
)

_COMMENT_GROUPS = ("line_comment", "block_comment")


def find_markers(sql: str) -> List[str]:
    """Return canonical marker names in text order, repeats included."""
    if not sql:
        return []
    return [m.group("name") for m in _TOKEN_RE.finditer(sql) if m.group("marker")]


def referenced_names(sql: str) -> List[str]:
    """Return distinct marker names in order of first appearance."""
    seen: dict[str, None] = {}
    for name in find_markers(sql):
        seen.setdefault(name, None)
    return list(seen)


def rewrite_markers(sql: str, replace: Callable[[str], str]) -> str:
    """Replace every canonical marker with ``replace(name)``; other text is untouched."""
    if not sql:
        return sql

    def _sub(match: re.Match) -> str:
        if match.group("marker"):
            return replace(match.group("name"))
        return match.group(0)

    return _TOKEN_RE.sub(_sub, sql)


def _drop_comment(match: re.Match) -> str:
    if any(match.group(group) for group in _COMMENT_GROUPS):
        return " "
    return match.group(0)


def _is_blank(chunk: str) -> bool:
    return not _TOKEN_RE.sub(_drop_comment, chunk).strip()


def split_statements(sql: str) -> List[str]:
    """Split a batch on top-level ``;`` and drop blank or comment-only pieces."""
    if not sql:
        return []

    statements: List[str] = []
    start = 0
    for match in _TOKEN_RE.finditer(sql):
        if match.group("semicolon"):
            statements.append(sql[start : match.start()])
            start = match.end()
    statements.append(sql[start:])

    return [stmt.strip() for stmt in statements if not _is_blank(stmt)]


def is_multi_statement(sql: str) -> bool:
    """Return True when the text holds more than one non-blank statement."""
    return len(split_statements(sql)) > 1
