"""Tracing wrapper for MCP tools.

Every tool call runs inside an ``mcp.tool.<name>`` SERVER span with a fresh
request id published through ``common.observability.context`` so DAL spans
and error envelopes can be correlated with the call.
"""

import functools
import json
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from common.observability.context import request_id_var, tool_name_var
from common.observability.metrics import mcp_metrics

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _extract_envelope_error_category(response: Any) -> str | None:
    """Extract envelope-level error category from response payload, if present."""
    payload: dict[str, Any] | None = None

    if isinstance(response, dict):
        payload = response
    elif isinstance(response, str):
        try:
            parsed = json.loads(response)
        except (TypeError, ValueError):
            return None
        if isinstance(parsed, dict):
            payload = parsed

    if not isinstance(payload, dict):
        return None

    error_payload = payload.get("error")
    if error_payload is None:
        return None

    if isinstance(error_payload, dict):
        category = error_payload.get("category")
        return str(category) if category is not None else "unknown"

    return "unknown"


def _record_call(tool_name: str, started_at: float, status: str) -> float:
    duration_ms = max(0.0, (time.monotonic() - started_at) * 1000.0)
    mcp_metrics.record_histogram(
        "mcp.tool.duration_ms",
        duration_ms,
        unit="ms",
        description="MCP tool end-to-end duration in milliseconds",
        attributes={"tool_name": tool_name},
    )
    mcp_metrics.add_counter(
        "mcp.tool.calls_total",
        description="Count of MCP tool calls by outcome",
        attributes={"tool_name": tool_name, "status": status},
    )
    return duration_ms


def trace_tool(tool_name: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Add OpenTelemetry tracing to an MCP tool handler.

    Args:
        tool_name: The name of the tool (e.g. "query_select").
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer("mcp.server")
            request_id = uuid.uuid4().hex
            request_token = request_id_var.set(request_id)
            tool_token = tool_name_var.set(tool_name)

            with tracer.start_as_current_span(
                f"mcp.tool.{tool_name}",
                kind=trace.SpanKind.SERVER,
            ) as span:
                span.set_attribute("mcp.tool.name", tool_name)
                span.set_attribute("request_id", request_id)
                database = kwargs.get("database")
                if database is not None:
                    span.set_attribute("db.name", str(database))

                call_started_at = time.monotonic()
                try:
                    response = await func(*args, **kwargs)

                    error_category = _extract_envelope_error_category(response)
                    status = "error" if error_category is not None else "ok"
                    duration_ms = _record_call(tool_name, call_started_at, status)
                    span.set_attribute("mcp.tool.duration_ms", duration_ms)
                    span.set_attribute(
                        "mcp.tool.response.size_bytes", len(str(response).encode("utf-8"))
                    )
                    if error_category is not None:
                        span.set_status(Status(StatusCode.ERROR))
                        span.set_attribute("mcp.tool.error.category", error_category)
                    else:
                        span.set_status(Status(StatusCode.OK))
                    return response

                except Exception as e:
                    duration_ms = _record_call(tool_name, call_started_at, "exception")
                    span.set_attribute("mcp.tool.duration_ms", duration_ms)
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    err_cls = getattr(e, "category", "unknown")
                    span.set_attribute(
                        "mcp.tool.error.category", str(getattr(err_cls, "value", err_cls))
                    )
                    raise
                finally:
                    tool_name_var.reset(tool_token)
                    request_id_var.reset(request_token)

        return wrapper

    return decorator
