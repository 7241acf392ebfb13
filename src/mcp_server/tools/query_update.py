"""MCP tool: query_update - Update rows matched by a mandatory WHERE clause."""

import time
from typing import Any, Dict, List, Optional

from dal.models.filters import FilterClause
from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "query_update"
TOOL_DESCRIPTION = (
    "Update rows in a table. WHERE clause is required. Blocked in read-only mode. "
    "Rejected when more rows than MAX_UPDATE_LIMIT would be affected."
)


async def handler(
    database: str,
    table: str,
    data: Dict[str, Any],
    where: List[FilterClause],
    schema: Optional[str] = None,
) -> str:
    """Update rows in a table.

    Data Access:
        Writes. A ``COUNT(*)`` with the same WHERE clause runs first and the
        UPDATE is never issued when the count exceeds MAX_UPDATE_LIMIT.

    Failure Modes:
        - Read-Only Violation: If the server runs with DB_READONLY=true.
        - Validation Error: If ``where`` is empty or has no valid column.
        - Row Limit Exceeded: If too many rows match.

    Args:
        database: Allowlisted database name.
        table: Table name.
        data: Column -> new value.
        where: Filter clauses identifying the rows to update.
        schema: Optional PostgreSQL schema.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.update(database, table, data, where, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
