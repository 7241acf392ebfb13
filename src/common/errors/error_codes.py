"""Canonical error-code taxonomy for DAL/MCP flows."""

from __future__ import annotations

from enum import Enum
from typing import Any

from common.models.error_metadata import ErrorCategory


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and observability."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    ACCESS_DENIED = "ACCESS_DENIED"
    READONLY_VIOLATION = "READONLY_VIOLATION"
    RAW_QUERY_DISABLED = "RAW_QUERY_DISABLED"
    ROW_LIMIT_EXCEEDED = "ROW_LIMIT_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    QUERY_BUILD_FAILED = "QUERY_BUILD_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_CATEGORY_TO_CODE: dict[str, ErrorCode] = {
    ErrorCategory.INVALID_REQUEST.value: ErrorCode.VALIDATION_ERROR,
    ErrorCategory.UNAUTHORIZED.value: ErrorCode.ACCESS_DENIED,
    ErrorCategory.MUTATION_BLOCKED.value: ErrorCode.READONLY_VIOLATION,
    ErrorCategory.UNSUPPORTED_CAPABILITY.value: ErrorCode.RAW_QUERY_DISABLED,
    ErrorCategory.LIMIT_EXCEEDED.value: ErrorCode.ROW_LIMIT_EXCEEDED,
    ErrorCategory.NOT_FOUND.value: ErrorCode.NOT_FOUND,
    ErrorCategory.TIMEOUT.value: ErrorCode.EXECUTION_FAILED,
    ErrorCategory.CONNECTIVITY.value: ErrorCode.EXECUTION_FAILED,
    ErrorCategory.SYNTAX.value: ErrorCode.EXECUTION_FAILED,
    ErrorCategory.CONSTRAINT_VIOLATION.value: ErrorCode.EXECUTION_FAILED,
    ErrorCategory.UNKNOWN.value: ErrorCode.INTERNAL_ERROR,
    ErrorCategory.INTERNAL.value: ErrorCode.INTERNAL_ERROR,
}

_CODE_GROUPS: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "VALIDATION",
    ErrorCode.ACCESS_DENIED: "POLICY",
    ErrorCode.READONLY_VIOLATION: "POLICY",
    ErrorCode.RAW_QUERY_DISABLED: "POLICY",
    ErrorCode.ROW_LIMIT_EXCEEDED: "POLICY",
    ErrorCode.NOT_FOUND: "VALIDATION",
    ErrorCode.EXECUTION_FAILED: "DB",
    ErrorCode.QUERY_BUILD_FAILED: "INTERNAL",
    ErrorCode.INTERNAL_ERROR: "INTERNAL",
}


def _normalize_category(category: str | ErrorCategory | None) -> str:
    if isinstance(category, ErrorCategory):
        return category.value
    if category is None:
        return ""
    return str(category).strip()


def canonical_error_code_for_category(
    category: str | ErrorCategory | None,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Resolve canonical error code from category-like values."""
    normalized = _normalize_category(category)
    if not normalized:
        return fallback
    return _CATEGORY_TO_CODE.get(normalized, fallback)


def parse_error_code(
    value: Any,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Parse string-like values to `ErrorCode` with safe fallback."""
    if isinstance(value, ErrorCode):
        return value
    if value is None:
        return fallback
    try:
        return ErrorCode(str(value).strip())
    except ValueError:
        return fallback


def error_code_group(value: Any) -> str:
    """Return a stable coarse grouping for telemetry dimensions."""
    parsed = parse_error_code(value)
    return _CODE_GROUPS.get(parsed, "INTERNAL")
