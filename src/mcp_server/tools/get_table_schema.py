"""MCP tool: get_table_schema - Describe one table."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_table_schema"
TOOL_DESCRIPTION = (
    "Get detailed schema information for a table including columns, types, keys, "
    "foreign keys and indexes."
)


async def handler(database: str, table: str, schema: Optional[str] = None) -> str:
    """Retrieve columns, foreign keys and indexes of a table.

    Failure Modes:
        - Access Denied: If ``database`` is not in the allowlist.
        - Not Found: If the table has no columns in the catalog.

    Args:
        database: Allowlisted database name.
        table: Table name.
        schema: Optional PostgreSQL schema (default 'public').
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        table_schema = await service.describe_table(database, table, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        table_schema.model_dump(by_alias=True),
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(table_schema.columns),
    )
