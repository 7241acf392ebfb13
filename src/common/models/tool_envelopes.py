"""Typed envelope models for tool IO."""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

from common.models.error_metadata import ToolError

# Current schema version for future-proofing
CURRENT_SCHEMA_VERSION = "1.0"
CURRENT_TOOL_VERSION = "v1"
T = TypeVar("T")


class GenericToolMetadata(BaseModel):
    """Generic metadata for tool responses."""

    tool_version: str = Field(
        default=CURRENT_TOOL_VERSION,
        description="Semantic version for tool response contract",
    )
    provider: str = Field("unknown", description="Database or system provider")
    database: Optional[str] = Field(None, description="Database the tool operated on")
    execution_time_ms: Optional[float] = None
    rows_returned: Optional[int] = None
    rows_affected: Optional[int] = None
    limit_applied: Optional[int] = None
    items_returned: Optional[int] = None
    request_id: Optional[str] = Field(
        None, description="Request identifier propagated for cross-layer correlation"
    )

    @model_validator(mode="after")
    def sync_item_count(self) -> "GenericToolMetadata":
        """Mirror the row count into the generic item count when only rows are known."""
        if self.items_returned is None and self.rows_returned is not None:
            self.items_returned = self.rows_returned
        return self


class GenericToolResponseEnvelope(BaseModel, Generic[T]):
    """Standardized envelope for tool responses."""

    schema_version: str = Field(default=CURRENT_SCHEMA_VERSION)
    result: Optional[T] = Field(default=None, description="The tool's main output payload")
    metadata: GenericToolMetadata = Field(default_factory=GenericToolMetadata)
    error: Optional[ToolError] = None

    def is_error(self) -> bool:
        """Return True when the envelope carries an error."""
        return self.error is not None


class ToolResponseEnvelope(GenericToolResponseEnvelope[T], Generic[T]):
    """Alias for GenericToolResponseEnvelope for clarity at call sites."""

    pass


class QueryRowsResult(BaseModel):
    """Result payload for row-returning query tools."""

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)


class MutationResult(BaseModel):
    """Result payload for INSERT/UPDATE/DELETE and non-row raw statements."""

    rows_affected: int = Field(0, description="Affected-row count reported by the driver")
    message: str = Field("", description="Human-readable summary of the mutation")
