"""MCP tool: get_databases - List the allowlisted databases."""

import time

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_databases"
TOOL_DESCRIPTION = "List all databases this server is allowed to access."


async def handler() -> str:
    """Return the configured database allowlist, primary database first."""
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        databases = service.list_databases()
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME)

    return tool_success_response(
        databases,
        provider=service.provider,
        start_time=start_time,
        items_returned=len(databases),
    )
