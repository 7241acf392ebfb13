from __future__ import annotations

import logging
from dataclasses import dataclass

from common.models.error_metadata import ErrorCategory
from dal.util.timeouts import QueryTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorClassification:
    """Structured provider-aware error classification."""

    category: ErrorCategory
    provider: str
    is_retryable: bool


def classify_error_info(provider: str, exc: BaseException) -> ErrorClassification:
    """Classify a driver error into a provider-agnostic category with retryability."""
    message = str(exc).lower()
    class_name = exc.__class__.__name__.lower()
    module_name = exc.__class__.__module__.lower()
    provider = (provider or "unknown").lower()

    if isinstance(exc, (QueryTimeoutError, TimeoutError)) or _matches_any(
        message, ("timeout", "timed out", "canceling statement")
    ):
        return ErrorClassification(ErrorCategory.TIMEOUT, provider, True)
    if isinstance(exc, (ConnectionError, OSError)) or _matches_any(
        message,
        (
            "could not connect",
            "connection refused",
            "connection reset",
            "lost connection",
            "server has gone away",
            "connection was closed",
        ),
    ):
        return ErrorClassification(ErrorCategory.CONNECTIVITY, provider, True)
    if _matches_any(message, ("syntax error", "you have an error in your sql syntax")):
        return ErrorClassification(ErrorCategory.SYNTAX, provider, False)
    if _matches_any(
        message,
        (
            "duplicate key",
            "duplicate entry",
            "violates foreign key",
            "foreign key constraint fails",
            "violates not-null",
            "cannot be null",
            "violates unique",
            "violates check",
        ),
    ):
        return ErrorClassification(ErrorCategory.CONSTRAINT_VIOLATION, provider, False)

    if module_name.startswith("asyncpg"):
        if "syntax" in class_name or "undefined" in class_name:
            return ErrorClassification(ErrorCategory.SYNTAX, provider, False)
        if "integrityconstraint" in class_name or "violation" in class_name:
            return ErrorClassification(ErrorCategory.CONSTRAINT_VIOLATION, provider, False)
    if module_name.startswith("pymysql") or module_name.startswith("aiomysql"):
        if class_name == "programmingerror":
            return ErrorClassification(ErrorCategory.SYNTAX, provider, False)
        if class_name == "integrityerror":
            return ErrorClassification(ErrorCategory.CONSTRAINT_VIOLATION, provider, False)
        if class_name == "operationalerror":
            return ErrorClassification(ErrorCategory.CONNECTIVITY, provider, True)

    logger.debug("Unclassified %s error %s: %s", provider, exc.__class__.__name__, exc)
    return ErrorClassification(ErrorCategory.INTERNAL, provider, False)


def _matches_any(message: str, needles: tuple[str, ...]) -> bool:
    return any(needle in message for needle in needles)
