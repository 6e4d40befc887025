import hashlib
from typing import Awaitable, Optional

from common.observability.context import request_id_var
from common.observability.metrics import STATEMENTS_EXECUTED, dal_metrics, is_metrics_enabled


def trace_enabled() -> bool:
    """Return True when DAL query tracing is enabled or OTEL exporter defaults apply."""
    return is_metrics_enabled("DAL_TRACE_QUERIES")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


def _operation_verb(sql: Optional[str]) -> str:
    if not sql:
        return "UNKNOWN"
    for line in sql.strip().splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("--"):
            return stripped.split(maxsplit=1)[0].upper()
    return "UNKNOWN"


async def trace_query_operation(
    name: str,
    provider: str,
    sql: Optional[str],
    operation: Awaitable,
):
    """Trace a DAL statement with OTEL when enabled.

    The span carries a SHA-256 of the statement, never the statement text.
    """
    dal_metrics.increment(
        STATEMENTS_EXECUTED,
        attributes={"db.provider": provider, "db.operation": _operation_verb(sql)},
    )
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name) as span:
        request_id = request_id_var.get()
        if request_id:
            span.set_attribute("request_id", request_id)
        span.set_attribute("db.provider", provider)
        span.set_attribute("db.operation", _operation_verb(sql))
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
