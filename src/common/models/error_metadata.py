"""Structured error metadata models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, Enum):
    """Canonical error categories."""

    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    MUTATION_BLOCKED = "mutation_blocked"
    UNSUPPORTED_CAPABILITY = "unsupported_capability"
    LIMIT_EXCEEDED = "limit_exceeded"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    CONNECTIVITY = "connectivity"
    SYNTAX = "syntax"
    CONSTRAINT_VIOLATION = "constraint_violation"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


class ToolError(BaseModel):
    """Canonical tool error contract."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    category: ErrorCategory = Field(..., description="Provider-agnostic error category")
    code: Optional[str] = Field(None, description="Stable machine-readable error code")
    error_code: Optional[str] = Field(None, description="Canonical error-code taxonomy value")
    message: str = Field(
        ..., max_length=2048, description="Safe user-facing error message (redacted/bounded)"
    )
    retryable: bool = Field(False, description="Whether the error is retryable")
    details_safe: Optional[dict[str, Any]] = Field(
        None, description="Safe details that can be surfaced to callers"
    )
    provider: Optional[str] = Field("unknown", description="Originating provider/system")
    hint: Optional[str] = Field(
        None, max_length=2048, description="Provider-specific hint or suggestion"
    )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses/telemetry."""
        return self.model_dump(exclude_none=True)
