"""MCP tool: query_delete - Delete rows matched by a mandatory WHERE clause."""

import time
from typing import List, Optional

from dal.models.filters import FilterClause
from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "query_delete"
TOOL_DESCRIPTION = (
    "Delete rows from a table. WHERE clause is required. Blocked in read-only mode. "
    "Rejected when more rows than MAX_DELETE_LIMIT would be affected."
)


async def handler(
    database: str, table: str, where: List[FilterClause], schema: Optional[str] = None
) -> str:
    """Delete rows from a table after a row-cap preflight count.

    Args:
        database: Allowlisted database name.
        table: Table name.
        where: Filter clauses identifying the rows to delete (required).
        schema: Optional PostgreSQL schema.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.delete(database, table, where, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
