"""Shared error construction helpers for MCP tool handlers.

Provides a consistent error envelope so callers never have to special-case
error parsing across different tools.
"""

import logging
from typing import Optional

from common.errors.error_codes import ErrorCode, canonical_error_code_for_category
from common.models.error_metadata import ErrorCategory, ToolError
from common.models.tool_envelopes import GenericToolMetadata, ToolResponseEnvelope
from common.observability.context import request_id_var
from common.sanitization.text import redact_sensitive_info
from dal.errors import DalError
from mcp_server.utils.provider import resolve_provider

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2048


def sanitize_error_message(message: str, fallback: str = "Request failed.") -> str:
    """Redact and bound user-facing error text."""
    safe_text = redact_sensitive_info((message or "").strip())
    if not safe_text:
        safe_text = fallback
    return safe_text[:MAX_ERROR_MESSAGE_LENGTH]


def build_error_metadata(
    *,
    message: str,
    category: ErrorCategory,
    provider: str | None,
    retryable: bool = False,
    code: Optional[str] = None,
    error_code: Optional[str] = None,
    hint: Optional[str] = None,
) -> ToolError:
    """Build bounded, redacted ToolError."""
    resolved_provider = resolve_provider(provider)
    safe_message = sanitize_error_message(message)
    safe_hint = sanitize_error_message(hint, fallback="") if hint else None
    canonical_error_code = error_code or canonical_error_code_for_category(category).value
    if not canonical_error_code:
        canonical_error_code = ErrorCode.INTERNAL_ERROR.value

    return ToolError(
        category=category,
        code=code or canonical_error_code,
        error_code=canonical_error_code,
        message=safe_message,
        retryable=bool(retryable),
        provider=resolved_provider,
        details_safe={"hint": safe_hint} if safe_hint else None,
        hint=safe_hint or None,
    )


def tool_error_response(
    *,
    message: str,
    code: str,
    error_code: Optional[str] = None,
    category: ErrorCategory = ErrorCategory.INVALID_REQUEST,
    provider: str | None = None,
    retryable: bool = False,
    database: Optional[str] = None,
) -> str:
    """Construct a structured JSON error response for an MCP tool.

    Returns a ToolResponseEnvelope JSON string with a populated ``error``
    field, ensuring the caller receives a uniform error shape regardless
    of which tool emitted it.

    Args:
        message: Human-readable error description (max 2048 chars).
        code: Machine-readable error code (e.g. "ACCESS_DENIED").
        category: Provider-agnostic error category.
        provider: Originating dialect / provider name.
        retryable: Whether the caller should retry.
        database: Database the request targeted, when known.
    """
    resolved_provider = resolve_provider(provider)
    envelope = ToolResponseEnvelope(
        result=None,
        metadata=GenericToolMetadata(
            provider=resolved_provider,
            database=database,
            request_id=request_id_var.get(),
        ),
        error=build_error_metadata(
            message=message,
            category=category,
            provider=resolved_provider,
            retryable=retryable,
            code=code,
            error_code=error_code,
        ),
    )
    return envelope.model_dump_json(exclude_none=True)


def tool_exception_response(
    exc: Exception,
    tool_name: str,
    *,
    provider: str | None = None,
    database: Optional[str] = None,
) -> str:
    """Convert an exception raised by the query service into an error envelope.

    ``DalError`` subclasses carry their own code and category. Anything else
    is unexpected: it is logged with its traceback and reported as internal.
    """
    if isinstance(exc, DalError):
        logger.info("%s rejected: %s (%s)", tool_name, exc.code.value, exc.category.value)
        return tool_error_response(
            message=exc.message,
            code=exc.code.value,
            error_code=exc.code.value,
            category=exc.category,
            provider=provider,
            retryable=exc.retryable,
            database=database,
        )

    logger.exception("Unexpected error in %s", tool_name)
    return tool_error_response(
        message=f"{tool_name} failed: {exc}",
        code=ErrorCode.INTERNAL_ERROR.value,
        error_code=ErrorCode.INTERNAL_ERROR.value,
        category=ErrorCategory.INTERNAL,
        provider=provider,
        database=database,
    )
