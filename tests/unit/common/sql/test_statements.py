"""Tests for the SQL marker scanner and statement splitter."""

import pytest

from common.sql import (
    find_markers,
    is_multi_statement,
    referenced_names,
    rewrite_markers,
    split_statements,
)


def test_find_markers_returns_both_sigils_in_order():
    """Both :name and $name markers are found, repeats included."""
    sql = "SELECT * FROM t WHERE a = :a AND b = $b OR c = :a"
    assert find_markers(sql) == ["a", "b", "a"]
    assert referenced_names(sql) == ["a", "b"]


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT ':x'",
        'SELECT "$x" FROM t',
        "SELECT 1 -- :x",
        "SELECT /* $x\n :x */ 1",
        "SELECT $$ :x $$",
        "SELECT $body$ $x; $body$",
        "SELECT x::text FROM t",
        "SELECT $1",
    ],
)
def test_non_markers_are_ignored(sql):
    """Literals, comments, dollar-quoted bodies, casts and positional slots hold no markers."""
    assert find_markers(sql) == []


def test_marker_followed_by_cast():
    """A marker directly followed by a cast keeps the cast."""
    assert find_markers("SELECT :v::int") == ["v"]
    assert rewrite_markers("SELECT :v::int", lambda name: "$1") == "SELECT $1::int"


def test_escaped_quote_inside_literal():
    """Doubled quotes do not end a literal early."""
    assert find_markers("SELECT 'it''s :x', :y") == ["y"]


def test_rewrite_markers_leaves_other_text_untouched():
    """Only markers are replaced."""
    rewritten = rewrite_markers("SELECT :a, $b, ':c' -- :d", lambda name: f"<{name}>")
    assert rewritten == "SELECT <a>, <b>, ':c' -- :d"


def test_split_statements_on_top_level_semicolons():
    """Trailing semicolons and whitespace do not produce empty statements."""
    sql = "CREATE TABLE t(id INT); INSERT INTO t VALUES (1);\n"
    assert split_statements(sql) == ["CREATE TABLE t(id INT)", "INSERT INTO t VALUES (1)"]


def test_split_statements_ignores_semicolons_in_literals_and_comments():
    """Semicolons inside strings, comments and dollar quotes are not separators."""
    sql = (
        "INSERT INTO t VALUES ('a;b'); -- done; really\n"
        "CREATE FUNCTION f() RETURNS int AS $$ SELECT 1; $$ LANGUAGE sql"
    )
    statements = split_statements(sql)
    assert len(statements) == 2
    assert statements[0] == "INSERT INTO t VALUES ('a;b')"
    assert statements[1].endswith("LANGUAGE sql")


def test_split_statements_drops_comment_only_chunks():
    """A trailing comment after the last semicolon is not a statement."""
    assert split_statements("SELECT 1; -- trailing comment\n/* block */") == ["SELECT 1"]
    assert split_statements("") == []
    assert split_statements("  ;  ; ") == []


def test_is_multi_statement():
    """Only two or more real statements count as a batch."""
    assert is_multi_statement("SELECT 1; SELECT 2")
    assert not is_multi_statement("SELECT 1;")
    assert not is_multi_statement("SELECT ';'")
