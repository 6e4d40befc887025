from typing import List, Protocol, runtime_checkable


@runtime_checkable
class SqlSource(Protocol):
    """Protocol for looking up SQL text by logical query name."""

    def resolve(self, name: str) -> str:
        """Return the SQL text for ``name``.

        Raises:
            FileNotFoundError: When no source exists for ``name``.
        """
        ...

    def list_migrations(self) -> List[str]:
        """Return migration filenames sorted ascending."""
        ...
