import hashlib
from typing import Awaitable, Optional, TypeVar

from common.observability.context import request_id_var, tool_name_var
from common.observability.metrics import is_metrics_enabled

T = TypeVar("T")


def trace_enabled() -> bool:
    """Return True when DAL query tracing is enabled or OTEL exporter defaults apply."""
    return is_metrics_enabled("DAL_TRACE_QUERIES")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def trace_query_operation(
    name: str,
    provider: str,
    statement_kind: str,
    sql: Optional[str],
    operation: Awaitable[T],
) -> T:
    """Trace a DAL statement with OTEL when enabled.

    Only a hash of the SQL text is recorded; bound parameters never are.
    """
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("dal")
    with tracer.start_as_current_span(name) as span:
        request_id = request_id_var.get()
        if request_id:
            span.set_attribute("request_id", request_id)
        tool_name = tool_name_var.get()
        if tool_name:
            span.set_attribute("mcp.tool.name", tool_name)
        span.set_attribute("db.provider", provider)
        span.set_attribute("db.statement_kind", statement_kind)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
