"""Data Abstraction Layer (DAL) for the guarded SQL MCP server.

This package turns structured CRUD requests into dialect-correct,
parameterized SQL, applies the guardrail policy and normalizes driver rows.
"""

from dal.errors import (
    AccessDenied,
    DalError,
    ExecutionFailed,
    NotFound,
    QueryBuildFailed,
    RawQueryDisabled,
    ReadOnlyViolation,
    RowLimitExceeded,
    UnsupportedOperation,
    ValidationError,
)

__all__ = [
    "AccessDenied",
    "DalError",
    "ExecutionFailed",
    "NotFound",
    "QueryBuildFailed",
    "RawQueryDisabled",
    "ReadOnlyViolation",
    "RowLimitExceeded",
    "UnsupportedOperation",
    "ValidationError",
]
