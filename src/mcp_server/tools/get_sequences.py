"""MCP tool: get_sequences - List sequences (MySQL: auto_increment columns)."""

import time
from typing import Optional

from mcp_server.runtime import QueryRuntime
from mcp_server.utils.envelopes import tool_success_response
from mcp_server.utils.errors import tool_exception_response

TOOL_NAME = "get_sequences"
TOOL_DESCRIPTION = "Get sequence information (PostgreSQL sequences, MySQL auto_increment)."


async def handler(database: str, schema: Optional[str] = None) -> str:
    start_time = time.monotonic()
    try:
        service = QueryRuntime.get_service()
        sequences = await service.list_sequences(database, schema=schema)
    except Exception as exc:
        return tool_exception_response(exc, TOOL_NAME, database=database)

    return tool_success_response(
        [sequence.model_dump() for sequence in sequences],
        provider=service.provider,
        database=database,
        start_time=start_time,
        items_returned=len(sequences),
    )
