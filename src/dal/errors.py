"""Error taxonomy for the guarded query layer.

Every failure surfaced by the DAL is a ``DalError`` subclass carrying a stable
``ErrorCode`` and ``ErrorCategory`` so that the MCP layer can turn it into a
uniform error envelope without string matching.
"""

from typing import Optional

from common.errors.error_codes import ErrorCode
from common.models.error_metadata import ErrorCategory


class DalError(Exception):
    """Base class for all guarded query layer errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DalError):
    """Malformed or unsafe request input (identifiers, filters, values)."""

    code = ErrorCode.VALIDATION_ERROR
    category = ErrorCategory.INVALID_REQUEST


class UnsupportedOperation(ValidationError):
    """Operation the active dialect has no counterpart for (e.g. MySQL custom types)."""

    category = ErrorCategory.UNSUPPORTED_CAPABILITY


class AccessDenied(DalError):
    """Database outside of the configured allowlist."""

    code = ErrorCode.ACCESS_DENIED
    category = ErrorCategory.UNAUTHORIZED

    def __init__(self, database: str, allowed: tuple[str, ...]) -> None:
        self.database = database
        self.allowed = allowed
        super().__init__(
            f"access to database '{database}' not allowed (allowed: {list(allowed)})"
        )


class ReadOnlyViolation(DalError):
    """Write operation attempted while the server runs in read-only mode."""

    code = ErrorCode.READONLY_VIOLATION
    category = ErrorCategory.MUTATION_BLOCKED

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        self.operation = operation
        super().__init__(message or f"{operation} operations are not allowed in read-only mode")


class RawQueryDisabled(DalError):
    """Raw SQL execution requested without ALLOW_RAW_QUERY enabled."""

    code = ErrorCode.RAW_QUERY_DISABLED
    category = ErrorCategory.UNSUPPORTED_CAPABILITY

    def __init__(self) -> None:
        super().__init__(
            "Raw queries are disabled. Set ALLOW_RAW_QUERY=true to enable raw SQL execution"
        )


class RowLimitExceeded(DalError):
    """A mutation would touch more rows than the configured cap allows."""

    code = ErrorCode.ROW_LIMIT_EXCEEDED
    category = ErrorCategory.LIMIT_EXCEEDED

    def __init__(self, operation: str, matched: int, limit: int) -> None:
        self.operation = operation
        self.matched = matched
        self.limit = limit
        super().__init__(
            f"{operation} would affect {matched} row(s), which exceeds the maximum limit of "
            f"{limit}. Please refine your WHERE clause to target fewer rows"
        )


class NotFound(DalError):
    """Catalog object (routine, table) does not exist."""

    code = ErrorCode.NOT_FOUND
    category = ErrorCategory.NOT_FOUND


class ExecutionFailed(DalError):
    """The driver rejected or failed to run a statement."""

    code = ErrorCode.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.category = category
        self.retryable = retryable


class QueryBuildFailed(DalError):
    """A statement could not be rendered from an otherwise valid request."""

    code = ErrorCode.QUERY_BUILD_FAILED
    category = ErrorCategory.INTERNAL
