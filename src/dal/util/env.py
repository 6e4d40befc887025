"""Provider normalization for database connection URLs.

Canonical Provider IDs (internal, lowercase):
- "postgres" - PostgreSQL adapter
- "sqlite" - SQLite adapter

User-Facing Aliases (case-insensitive URL schemes):
- PostgreSQL: "postgresql", "postgres", "pg"
- SQLite: "sqlite", "sqlite3"

Example:
    >>> normalize_provider("PostgreSQL")
    'postgres'
    >>> parse_database_url("sqlite://data/app.db")
    ('sqlite', 'data/app.db')
"""

from typing import Tuple

# Alias mappings: user-friendly names -> canonical provider ID
PROVIDER_ALIASES: dict[str, str] = {
    # PostgreSQL aliases
    "postgresql": "postgres",
    "postgres": "postgres",
    "pg": "postgres",
    # SQLite aliases
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
}


def normalize_provider(value: str) -> str:
    """Normalize a provider value to its canonical form.

    Unknown values pass through lowercased and stripped; validation
    happens in the adapter factory.

    Example:
        >>> normalize_provider("  PG  ")
        'postgres'
        >>> normalize_provider("mysql")
        'mysql'
    """
    cleaned = value.strip().lower()
    return PROVIDER_ALIASES.get(cleaned, cleaned)


def parse_database_url(url: str) -> Tuple[str, str]:
    """Split ``scheme://rest`` into ``(provider, rest)``.

    The provider is normalized through the alias table. A URL without
    ``://`` has an empty scheme, which no adapter accepts.

    Example:
        >>> parse_database_url("postgresql://u:p@db:5432/app")
        ('postgres', 'u:p@db:5432/app')
    """
    scheme, sep, rest = url.strip().partition("://")
    if not sep:
        return "", url.strip()
    return normalize_provider(scheme), rest
