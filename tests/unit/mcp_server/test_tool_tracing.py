"""Tests for MCP tool spans and DAL statement spans."""

import hashlib
import json
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode

from common.observability.context import request_id_var, tool_name_var
from dal.tracing import trace_query_operation
from mcp_server.utils.tracing import trace_tool


def _in_memory_tracer(name="mcp.server"):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider.get_tracer(name), exporter


@pytest.mark.asyncio
async def test_successful_call_produces_ok_server_span():
    tracer, exporter = _in_memory_tracer()
    seen = {}

    async def handler(database, table):
        seen["request_id"] = request_id_var.get()
        seen["tool"] = tool_name_var.get()
        return json.dumps({"result": [], "metadata": {"provider": "postgres"}})

    with patch("opentelemetry.trace.get_tracer", return_value=tracer):
        await trace_tool("query_select")(handler)(database="appdb", table="users")

    (span,) = exporter.get_finished_spans()
    assert span.name == "mcp.tool.query_select"
    assert span.kind == SpanKind.SERVER
    assert span.status.status_code == StatusCode.OK
    assert span.attributes["db.name"] == "appdb"
    assert span.attributes["request_id"] == seen["request_id"]
    assert seen["tool"] == "query_select"
    assert request_id_var.get() is None
    assert tool_name_var.get() is None


@pytest.mark.asyncio
async def test_error_envelope_marks_span_as_error():
    tracer, exporter = _in_memory_tracer()

    async def handler():
        return json.dumps({"error": {"category": "unauthorized", "message": "denied"}})

    with (
        patch("opentelemetry.trace.get_tracer", return_value=tracer),
        patch("mcp_server.utils.tracing.mcp_metrics.add_counter") as mock_add_counter,
    ):
        await trace_tool("get_tables")(handler)()

    (span,) = exporter.get_finished_spans()
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes["mcp.tool.error.category"] == "unauthorized"
    assert mock_add_counter.call_args.kwargs["attributes"] == {
        "tool_name": "get_tables",
        "status": "error",
    }


@pytest.mark.asyncio
async def test_raised_exception_is_recorded_and_reraised():
    tracer, exporter = _in_memory_tracer()

    async def handler():
        raise RuntimeError("kaboom")

    with patch("opentelemetry.trace.get_tracer", return_value=tracer):
        with pytest.raises(RuntimeError, match="kaboom"):
            await trace_tool("query_raw")(handler)()

    (span,) = exporter.get_finished_spans()
    assert span.status.status_code == StatusCode.ERROR
    assert span.events[0].name == "exception"


@pytest.mark.asyncio
async def test_dal_span_records_statement_hash(monkeypatch):
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    tracer, exporter = _in_memory_tracer("dal")
    sql = "SELECT * FROM users WHERE email = $1"

    async def run():
        return ["row"]

    with patch("opentelemetry.trace.get_tracer", return_value=tracer):
        result = await trace_query_operation(
            "dal.query.execute",
            provider="postgres",
            statement_kind="select",
            sql=sql,
            operation=run(),
        )

    assert result == ["row"]
    (span,) = exporter.get_finished_spans()
    assert span.attributes["db.statement_hash"] == hashlib.sha256(sql.encode()).hexdigest()
    assert span.attributes["db.status"] == "ok"


@pytest.mark.asyncio
async def test_dal_spans_are_skipped_when_disabled():
    tracer, exporter = _in_memory_tracer("dal")

    async def run():
        return 1

    with patch("opentelemetry.trace.get_tracer", return_value=tracer):
        await trace_query_operation("dal.query.execute", "mysql", "fetch", "SELECT 1", run())

    assert exporter.get_finished_spans() == ()
