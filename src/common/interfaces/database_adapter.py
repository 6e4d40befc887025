from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    runtime_checkable,
)

Row = Dict[str, Any]
Params = Mapping[str, Any]
SqlTransformer = Callable[[str, Optional[Params]], Tuple[str, Any]]

T = TypeVar("T")


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Protocol for a live connection (or pool) to one relational database.

    Implementations own the driver handle, rewrite canonical ``:name`` /
    ``$name`` markers through ``sql_transformer`` and return rows as plain
    dicts. Lifecycle: uninitialized -> initialized -> closed.
    """

    provider: str

    @property
    def is_initialized(self) -> bool:
        """Return True between a successful init() and close()."""
        ...

    def sql_transformer(self, sql: str, params: Optional[Params]) -> Tuple[str, Any]:
        """Rewrite canonical SQL and parameters into the driver's native form."""
        ...

    async def init(self) -> None:
        """Open the connection or pool. Fails fast; never retried."""
        ...

    async def close(self) -> None:
        """Release the connection or pool."""
        ...

    async def execute_query(self, sql: str, params: Optional[Params] = None) -> List[Row]:
        """Execute one or more ``;``-separated statements and return all rows.

        Args:
            sql: Canonical SQL text.
            params: Parameter mapping keyed by marker name.

        Returns:
            Flattened list of row dicts in statement order.
        """
        ...

    async def transaction(self, work: Callable[["DatabaseAdapter"], Awaitable[T]]) -> T:
        """Run ``work`` inside one native transaction.

        ``work`` receives a transaction-scoped adapter. The transaction commits
        when ``work`` returns and rolls back when it raises. Nested calls are
        not supported.
        """
        ...
