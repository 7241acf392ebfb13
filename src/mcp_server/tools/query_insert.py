"""MCP tool: query_insert - Insert a single row."""

import time
from typing import Any, Dict, Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "query_insert"
TOOL_DESCRIPTION = "Insert a single row into a table. Blocked in read-only mode."


async def handler(
    database: str, table: str, data: Dict[str, Any], schema: Optional[str] = None
) -> str:
    """Insert one row built from ``data`` (column -> value, in the order given).

    Returns:
        JSON envelope with ``rows_affected`` and a summary message.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.insert(database, table, data, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
