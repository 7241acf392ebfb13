"""MCP tool: get_custom_types - List user-defined types (PostgreSQL only)."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_custom_types"
TOOL_DESCRIPTION = (
    "Get custom type definitions (PostgreSQL only). Lists ENUMs with their labels, "
    "COMPOSITE types and DOMAINs."
)


async def handler(database: str, schema: Optional[str] = None) -> str:
    """List enum, composite and domain types.

    On MySQL this returns an ``unsupported_capability`` error.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        custom_types = await service.list_custom_types(database, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        [custom_type.model_dump() for custom_type in custom_types],
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(custom_types),
    )
