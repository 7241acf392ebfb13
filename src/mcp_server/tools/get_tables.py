"""MCP tool: get_tables - List tables in a database/schema."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_tables"
TOOL_DESCRIPTION = "List tables in a database (PostgreSQL: in a schema, default 'public')."


async def handler(database: str, schema: Optional[str] = None) -> str:
    """List table names.

    Args:
        database: Allowlisted database name.
        schema: PostgreSQL schema; ignored on MySQL.

    Returns:
        JSON envelope whose result is an array of table names.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        tables = await service.list_tables(database, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        tables,
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(tables),
    )
