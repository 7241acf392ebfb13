"""Central registry for MCP tools.

This module provides a single point of registration for all MCP tools.
It collects tool modules and registers them with the FastMCP server.
"""

import logging
from typing import TYPE_CHECKING, List, Set

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)

# Canonical tool names (without _tool suffix)
# This is the authoritative list of all public tools
CANONICAL_TOOLS: Set[str] = {
    # Query tools
    "query_select",
    "query_insert",
    "query_update",
    "query_delete",
    "query_raw",
    # Metadata tools
    "get_databases",
    "get_tables",
    "get_table_schema",
    "get_sequences",
    "get_custom_types",
    # Routine tools
    "get_functions",
    "get_function_source",
    "execute_function",
}


def get_all_tool_names() -> List[str]:
    """Return list of all canonical tool names."""
    return sorted(CANONICAL_TOOLS)


def validate_tool_names() -> bool:
    """Validate that no canonical tool names end with '_tool'.

    Returns:
        True if all names are valid, raises ValueError otherwise.
    """
    invalid = [name for name in CANONICAL_TOOLS if name.endswith("_tool")]
    if invalid:
        raise ValueError(f"Tool names must not end with '_tool': {invalid}")
    return True


def register_all(mcp: "FastMCP") -> None:
    """Register all tools with the MCP server.

    Args:
        mcp: FastMCP server instance
    """
    validate_tool_names()

    from mcp_server.tools import (
        execute_function,
        get_custom_types,
        get_databases,
        get_function_source,
        get_functions,
        get_sequences,
        get_table_schema,
        get_tables,
        query_delete,
        query_insert,
        query_raw,
        query_select,
        query_update,
    )
    from mcp_server.utils.tracing import trace_tool

    modules = [
        query_select,
        query_insert,
        query_update,
        query_delete,
        query_raw,
        get_databases,
        get_tables,
        get_table_schema,
        get_sequences,
        get_custom_types,
        get_functions,
        get_function_source,
        execute_function,
    ]

    registered = set()
    for module in modules:
        name = module.TOOL_NAME
        if name not in CANONICAL_TOOLS:
            raise ValueError(f"Tool {name!r} is not in CANONICAL_TOOLS")
        traced = trace_tool(name)(module.handler)
        mcp.tool(name=name, description=module.TOOL_DESCRIPTION)(traced)
        registered.add(name)

    missing = CANONICAL_TOOLS - registered
    if missing:
        raise ValueError(f"Canonical tools without a handler: {sorted(missing)}")

    logger.info("Registered %d tools with MCP server", len(registered))
