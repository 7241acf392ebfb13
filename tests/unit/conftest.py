"""Unit test environment helpers."""

import pytest

_DB_ENV_VARS = (
    "DB_TYPE",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_READONLY",
    "ALLOW_RAW_QUERY",
    "MAX_SELECT_LIMIT",
    "MAX_UPDATE_LIMIT",
    "MAX_DELETE_LIMIT",
    "STRICT_FILTER_COLUMNS",
    "MUTATION_GUARD_TRANSACTION",
    "DB_POOL_MIN_SIZE",
    "DB_POOL_MAX_SIZE",
    "DB_STATEMENT_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Clear database and telemetry env so unit tests never reach a real server."""
    for name in _DB_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", raising=False)
    monkeypatch.delenv("MCP_OBSERVABILITY_METRICS_ENABLED", raising=False)
    monkeypatch.delenv("DAL_OBSERVABILITY_METRICS_ENABLED", raising=False)
    monkeypatch.setenv("DAL_TRACE_QUERIES", "false")
    yield


@pytest.fixture(autouse=True)
def _reset_query_runtime():
    """Reset the global QueryRuntime service after each test."""
    from mcp_server.runtime import QueryRuntime

    original_service = QueryRuntime._service

    yield

    QueryRuntime._service = original_service
