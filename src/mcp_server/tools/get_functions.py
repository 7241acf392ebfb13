"""MCP tool: get_functions - List functions and stored procedures."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_functions"
TOOL_DESCRIPTION = "Get list of all functions and stored procedures in a database/schema."


async def handler(database: str, schema: Optional[str] = None) -> str:
    """List routines with their kind, signature and (on MySQL) timestamps."""
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        routines = await service.list_routines(database, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        [routine.model_dump(exclude_none=True) for routine in routines],
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(routines),
    )
