"""MCP tool: query_raw - Execute caller-authored SQL (opt-in)."""

import time
from typing import Any, List, Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "query_raw"
TOOL_DESCRIPTION = (
    "DANGEROUS: Execute raw SQL queries. Must be explicitly enabled with "
    "ALLOW_RAW_QUERY=true. Use $1, $2 placeholders on PostgreSQL and ? on MySQL. "
    "Only non-mutating statements are allowed in read-only mode."
)


async def handler(database: str, query: str, params: Optional[List[Any]] = None) -> str:
    """Execute raw SQL with positional parameters.

    Row-returning statements produce ``rows``/``columns``; everything else
    produces ``rows_affected``.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.raw(database, query, params)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
