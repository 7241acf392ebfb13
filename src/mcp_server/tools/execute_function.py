"""MCP tool: execute_function - Invoke a function or stored procedure."""

import time
from typing import Any, List, Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "execute_function"
TOOL_DESCRIPTION = (
    "Execute a function or stored procedure with positional parameters. "
    "Procedures are blocked in read-only mode."
)


async def handler(
    database: str,
    name: str,
    params: Optional[List[Any]] = None,
    schema: Optional[str] = None,
) -> str:
    """Invoke a routine by name.

    Functions return a single ``{"result": value}`` row; procedures return
    whatever rows the call produces.

    Failure Modes:
        - Not Found: If no routine with that name exists.
        - Read-Only Violation: If the routine is a procedure and DB_READONLY=true.

    Args:
        database: Allowlisted database name.
        name: Routine name.
        params: Positional arguments, in call order.
        schema: Optional PostgreSQL schema (default 'public').
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.execute_routine(database, name, params, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
