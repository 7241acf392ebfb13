"""MCP tool: get_function_source - Show a routine's definition."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_function_source"
TOOL_DESCRIPTION = "Get the source code of a function or stored procedure."


async def handler(database: str, name: str, schema: Optional[str] = None) -> str:
    """Return the definition of every routine named ``name``.

    PostgreSQL overloads each produce one entry.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        sources = await service.get_routine_source(database, name, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        [source.model_dump(by_alias=True) for source in sources],
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(sources),
    )
