"""MCP tool: query_select - Run a structured SELECT against an allowlisted database."""

import time
from typing import List, Optional

from dal.models.filters import FilterClause
from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import query_result_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "query_select"
TOOL_DESCRIPTION = (
    "Execute a SELECT query on the database. Filters are AND-ed; supported operators: "
    "=, !=, <>, <, >, <=, >=, LIKE, ILIKE, IN, NOT IN, BETWEEN, IS NULL, IS NOT NULL. "
    "The row limit is capped by MAX_SELECT_LIMIT."
)


async def handler(
    database: str,
    table: str,
    schema: Optional[str] = None,
    columns: Optional[List[str]] = None,
    where: Optional[List[FilterClause]] = None,
    order_by: Optional[List[str]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> str:
    """Select rows from a table.

    Data Access:
        Read-only. No guardrail other than the database allowlist and the
        row-limit clamp applies.

    Failure Modes:
        - Access Denied: If ``database`` is not in the allowlist.
        - Validation Error: If a table, column or order_by token is unsafe.
        - Execution Failed: If the driver rejects the statement.

    Args:
        database: Allowlisted database name.
        table: Table name (``schema.table`` is accepted on PostgreSQL).
        schema: Optional PostgreSQL schema.
        columns: Columns to project; all columns when omitted.
        where: Filter clauses ``{column, op, value}``.
        order_by: ORDER BY entries such as ``"created_at DESC"``.
        limit: Requested row limit; values <= 0 or above the cap use the cap.
        offset: Rows to skip.

    Returns:
        JSON envelope with ``rows`` and ``columns``.
    """
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        result = await service.select(
            database,
            table,
            schema=schema,
            columns=columns,
            where=where,
            order_by=order_by,
            limit=limit,
            offset=offset,
        )
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return query_result_response(
        result, provider=service.provider, database=database, start_time=start_time
    )
