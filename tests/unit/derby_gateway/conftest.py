"""Shared fixtures for gateway tests."""

from pathlib import Path

import pytest

from common.config.settings import DerbySettings

USERS_MIGRATION = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE NOT NULL,
    given_name TEXT
);

INSERT INTO users (email, given_name)
SELECT 'admin@example.com', 'Admin'
WHERE NOT EXISTS (SELECT 1 FROM users WHERE email = 'admin@example.com');
"""

QUERIES = {
    "_0001_create_users": USERS_MIGRATION,
    "get_users": (
        "SELECT id, email, given_name FROM users\n"
        "WHERE (:search IS NULL OR given_name LIKE '%' || :search || '%')\n"
        "ORDER BY id;\n"
    ),
    "update_user": (
        "UPDATE users SET given_name = COALESCE($given_name, given_name)\n"
        "WHERE id = $id RETURNING id, email, given_name;\n"
    ),
    "echo": "SELECT :x AS x;",
    "broken": "SELECT * FROM no_such_table;",
    "users/by_email": "SELECT id, email FROM users WHERE email = :email;",
}


@pytest.fixture
def gateway_root(tmp_path: Path) -> Path:
    """Create a SQL directory and a static directory under tmp_path."""
    sql_dir = tmp_path / "sql"
    for name, sql in QUERIES.items():
        path = sql_dir / f"{name}.sql"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(sql, encoding="utf-8")

    public = tmp_path / "public"
    (public / "assets").mkdir(parents=True)
    (public / "index.html").write_text("<html>derby</html>", encoding="utf-8")
    (public / "assets" / "app.js").write_text("console.log('derby');", encoding="utf-8")
    return tmp_path


@pytest.fixture
def gateway_settings(gateway_root: Path) -> DerbySettings:
    """Settings pointing at a throwaway SQLite database."""
    return DerbySettings(
        DATABASE_URL=f"sqlite://{gateway_root / 'derby.db'}",
        SQL_PATH=str(gateway_root / "sql"),
        STATIC_DIR=str(gateway_root / "public"),
    )
