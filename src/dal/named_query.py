"""Named query execution: resolve SQL by name, bind, execute, return rows."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from common.interfaces import DatabaseAdapter, SqlSource
from common.observability import QUERIES_EXECUTED, dal_metrics
from dal.errors import DalError, ExecutionError, QueryNotFoundError
from dal.sql_source import is_migration_name

logger = logging.getLogger(__name__)

ParameterFormatter = Callable[[Mapping[str, Any], str], Mapping[str, Any]]
ResultTransformer = Callable[[List[Dict[str, Any]], str], List[Dict[str, Any]]]


class NamedQueryExecutor:
    """Runs queries addressed by name against one adapter.

    Migration files are never addressable here; they only run through the
    migration runner.
    """

    def __init__(
        self,
        source: SqlSource,
        adapter: DatabaseAdapter,
        *,
        parameter_formatter: Optional[ParameterFormatter] = None,
        result_transformer: Optional[ResultTransformer] = None,
    ) -> None:
        """Create an executor.

        Args:
            source: Where SQL text is looked up by name.
            adapter: An initialized database adapter.
            parameter_formatter: Optional ``(params, name) -> params`` hook.
            result_transformer: Optional ``(rows, name) -> rows`` hook.
        """
        self.source = source
        self.adapter = adapter
        self.parameter_formatter = parameter_formatter
        self.result_transformer = result_transformer

    def resolve_sql(self, name: str) -> str:
        """Return SQL for ``name``.

        Raises:
            QueryNotFoundError: No query exists for ``name``.
            ExecutionError: The file exists but could not be read or decoded.
        """
        if not name or is_migration_name(name):
            raise QueryNotFoundError(name)
        try:
            return self.source.resolve(name)
        except FileNotFoundError as exc:
            raise QueryNotFoundError(name) from exc
        except (OSError, ValueError) as exc:
            raise ExecutionError(
                f"Could not read query '{name}': {exc}", provider=self.adapter.provider
            ) from exc

    async def execute_named_query(
        self, name: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Execute the query stored under ``name`` with named ``params``.

        Raises:
            QueryNotFoundError: No query exists for ``name``; the database is
                not touched.
            ExecutionError: The backend rejected the statement.
        """
        # Live sources read from disk on every call.
        sql = await asyncio.to_thread(self.resolve_sql, name)
        bound = dict(params or {})
        if self.parameter_formatter is not None:
            bound = dict(self.parameter_formatter(bound, name))

        logger.debug("Executing named query %s", name)
        try:
            rows = await self.adapter.execute_query(sql, bound)
        except DalError:
            raise
        except Exception as exc:
            raise ExecutionError(str(exc), provider=self.adapter.provider) from exc

        dal_metrics.increment(QUERIES_EXECUTED, attributes={"db.provider": self.adapter.provider})
        if self.result_transformer is not None:
            rows = self.result_transformer(rows, name)
        return rows
