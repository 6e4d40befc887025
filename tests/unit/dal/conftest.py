"""Shared fixtures for DAL unit tests."""

from pathlib import Path

import pytest

USERS_MIGRATION = """
-- Migration: Create users table
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE NOT NULL,
    given_name TEXT,
    preferences TEXT
);

INSERT INTO users (email, given_name)
SELECT 'admin@example.com', 'Admin'
WHERE NOT EXISTS (SELECT 1 FROM users WHERE email = 'admin@example.com');
"""

GET_USERS = """
SELECT id, email, given_name
FROM users
WHERE (:search IS NULL OR given_name LIKE '%' || :search || '%')
ORDER BY id
LIMIT CASE WHEN :limit IS NULL THEN 10 ELSE :limit END;
"""

UPDATE_USER = """
UPDATE users
SET given_name = COALESCE($given_name, given_name)
WHERE id = $id
RETURNING id, email, given_name;
"""


@pytest.fixture
def write_sql():
    """Return a helper that writes ``<root>/<name>.sql`` and returns its path."""

    def _write(root: Path, name: str, sql: str) -> Path:
        path = root / f"{name}.sql"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(sql, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def users_sql_dir(tmp_path, write_sql):
    """A SQL directory with one users migration and two named queries."""
    root = tmp_path / "sql"
    write_sql(root, "_0001_create_users", USERS_MIGRATION)
    write_sql(root, "get_users", GET_USERS)
    write_sql(root, "update_user", UPDATE_USER)
    return root
