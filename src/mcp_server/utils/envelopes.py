"""Utility functions for tool response envelopes."""

import time
from typing import Any, Optional

from common.models.tool_envelopes import (
    GenericToolMetadata,
    MutationResult,
    QueryRowsResult,
    ToolResponseEnvelope,
)
from common.observability.context import request_id_var
from dal.query_result import QueryResult
from mcp_server.utils.provider import resolve_provider


def tool_success_response(
    result: Any,
    *,
    provider: Optional[str] = None,
    database: Optional[str] = None,
    start_time: Optional[float] = None,
    **metadata: Any,
) -> str:
    """Construct a standardized success response envelope.

    ``start_time`` is a ``time.monotonic()`` reading taken when the handler
    started; extra keyword arguments become envelope metadata fields.
    """
    execution_time_ms = None
    if start_time is not None:
        execution_time_ms = (time.monotonic() - start_time) * 1000
    envelope = ToolResponseEnvelope(
        result=result,
        metadata=GenericToolMetadata(
            provider=resolve_provider(provider),
            database=database,
            execution_time_ms=execution_time_ms,
            request_id=request_id_var.get(),
            **metadata,
        ),
    )
    return envelope.model_dump_json(exclude_none=True)


def query_result_response(
    result: QueryResult,
    *,
    provider: Optional[str] = None,
    database: Optional[str] = None,
    start_time: Optional[float] = None,
) -> str:
    """Envelope a service ``QueryResult`` as rows or as a mutation summary."""
    if result.is_mutation:
        return tool_success_response(
            MutationResult(rows_affected=result.affected, message=result.message),
            provider=provider,
            database=database,
            start_time=start_time,
            rows_affected=result.affected,
        )
    return tool_success_response(
        QueryRowsResult(rows=result.rows, columns=result.columns),
        provider=provider,
        database=database,
        start_time=start_time,
        rows_returned=len(result.rows),
        limit_applied=result.limit_applied,
    )
