"""MCP Server entrypoint for the guarded SQL server.

This module initializes the FastMCP server and registers all database tools
via the central registry.
"""

import logging
import sys
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastmcp import FastMCP
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from common.config.env import get_env_bool, get_env_int, get_env_str
from mcp_server.runtime import QueryRuntime
from mcp_server.tools.registry import register_all

# Load environment variables
load_dotenv()

# Configure logging at the start; stderr keeps the stdio transport clean
logging.basicConfig(
    level=(get_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# OTEL Setup
OTEL_EXPORTER_OTLP_ENDPOINT = get_env_str("OTEL_EXPORTER_OTLP_ENDPOINT")
OTEL_SERVICE_NAME = get_env_str("OTEL_SERVICE_NAME", "guarded-sql-mcp")


def setup_telemetry():
    """Initialize OTEL SDK for MCP Server.

    Spans are always created; they are only exported when an OTLP endpoint
    is configured and OTEL_DISABLE_EXPORTER is not set.
    """
    resource = Resource.create({SERVICE_NAME: OTEL_SERVICE_NAME})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    if get_env_bool("OTEL_DISABLE_EXPORTER", False):
        logger.info("OTEL initialized without exporter (OTEL_DISABLE_EXPORTER=true)")
        return provider

    if not OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("OTEL initialized without exporter (OTEL_EXPORTER_OTLP_ENDPOINT unset)")
        return provider

    exporter = OTLPSpanExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    logger.info("OTEL initialized for MCP Server: %s", OTEL_SERVICE_NAME)
    return provider


setup_telemetry()


@asynccontextmanager
async def lifespan(app):
    """Lifespan context manager for the database connection pools.

    This ensures the pools are created in the same event loop as the server,
    avoiding "Event loop is closed" errors. A failure here aborts startup.
    """
    try:
        await QueryRuntime.init()
    except Exception:
        logger.exception("Database initialization failed")
        raise

    logger.info("MCP server initialization complete - ready")
    try:
        yield
    finally:
        # Shutdown: Close database connection pools
        await QueryRuntime.close()


# Initialize FastMCP Server with dependencies
mcp = FastMCP("guarded-sql-mcp", lifespan=lifespan)

# Register all tools via the central registry
register_all(mcp)


def run_server(server: FastMCP, transport: str, host: str, port: int) -> None:
    """Run ``server`` on the transport named by ``MCP_TRANSPORT``.

    ``http`` and ``streamable-http`` both select FastMCP's streamable HTTP
    transport; ``sse`` keeps the legacy SSE endpoint.
    """
    transport = (transport or "stdio").strip().lower()
    if transport in ("http", "streamable-http"):
        logger.info("Starting MCP server in http mode on %s:%s/mcp", host, port)
        server.run(transport="http", host=host, port=port, path="/mcp")
    elif transport == "sse":
        logger.info("Starting MCP server in sse mode on %s:%s/messages", host, port)
        server.run(transport="sse", host=host, port=port, path="/messages")
    elif transport == "stdio":
        server.run(transport="stdio")
    else:
        raise ValueError(f"Unsupported MCP_TRANSPORT '{transport}' (expected stdio, sse, http)")


if __name__ == "__main__":

    # Respect transport and host/port from environment for containerized use
    run_server(
        mcp,
        get_env_str("MCP_TRANSPORT", "stdio"),
        get_env_str("MCP_HOST", "0.0.0.0"),
        get_env_int("MCP_PORT", 8000),
    )
