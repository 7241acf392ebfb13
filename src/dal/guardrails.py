"""Safety policy applied around every statement the query layer issues.

Checks run in a fixed order for each operation: database allowlist, dialect
capability, read-only gate, raw-SQL gate, request validation; then, for
UPDATE/DELETE, a pre-flight ``COUNT(*)`` against the per-operation row cap.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional, Tuple

from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, Field

from common.config.env import get_env_bool, get_env_int
from common.observability.metrics import dal_metrics
from common.sql.dialect import Dialect
from dal.errors import AccessDenied, RawQueryDisabled, ReadOnlyViolation, RowLimitExceeded
from dal.models.statements import RenderedStatement
from dal.util.read_only import is_mutating_sql, leading_keyword

if TYPE_CHECKING:
    from dal.executor import StatementExecutor

logger = logging.getLogger(__name__)

DEFAULT_MAX_SELECT_LIMIT = 1000
DEFAULT_MAX_UPDATE_LIMIT = 1
DEFAULT_MAX_DELETE_LIMIT = 1


class GuardrailConfig(BaseModel):
    """Immutable guardrail settings, built once at startup."""

    model_config = ConfigDict(frozen=True)

    read_only: bool = False
    allow_raw_query: bool = False
    max_select_limit: int = Field(DEFAULT_MAX_SELECT_LIMIT, ge=0)
    max_update_limit: int = Field(DEFAULT_MAX_UPDATE_LIMIT, ge=0)
    max_delete_limit: int = Field(DEFAULT_MAX_DELETE_LIMIT, ge=0)
    strict_filter_columns: bool = False
    transactional_mutation_guard: bool = False

    @classmethod
    def from_env(cls) -> "GuardrailConfig":
        """Load guardrail settings from the environment.

        Negative limits are treated like unparsable ones: a warning is logged
        and the default applies.
        """
        return cls(
            read_only=get_env_bool("DB_READONLY", False),
            allow_raw_query=get_env_bool("ALLOW_RAW_QUERY", False),
            max_select_limit=_non_negative("MAX_SELECT_LIMIT", DEFAULT_MAX_SELECT_LIMIT),
            max_update_limit=_non_negative("MAX_UPDATE_LIMIT", DEFAULT_MAX_UPDATE_LIMIT),
            max_delete_limit=_non_negative("MAX_DELETE_LIMIT", DEFAULT_MAX_DELETE_LIMIT),
            strict_filter_columns=get_env_bool("STRICT_FILTER_COLUMNS", False),
            transactional_mutation_guard=get_env_bool("MUTATION_GUARD_TRANSACTION", False),
        )

    def mutation_cap(self, operation: str) -> int:
        """Return the row cap for UPDATE or DELETE."""
        return self.max_update_limit if operation == "UPDATE" else self.max_delete_limit


def _non_negative(name: str, default: int) -> int:
    value = get_env_int(name, default)
    if value is None or value < 0:
        logger.warning("Invalid value for %s: %s, using default: %d", name, value, default)
        return default
    return value


def _record_rejection(reason: str, operation: str, **attributes: Any) -> None:
    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(
            "dal.guardrail.rejected",
            attributes={"reason": reason, "operation": operation, **attributes},
        )
    dal_metrics.add_counter(
        "dal.guardrail.rejections_total",
        description="Count of statements rejected by guardrails",
        attributes={"reason": reason, "operation": operation},
    )


class GuardrailEngine:
    """Stateless policy checks over an allowlist and a ``GuardrailConfig``."""

    def __init__(self, config: GuardrailConfig, allowlist: Tuple[str, ...]) -> None:
        self.config = config
        self.allowlist = tuple(allowlist)

    def check_database(self, database: str, operation: str = "query") -> str:
        """Return the database name when it is an exact allowlist member."""
        if database not in self.allowlist:
            _record_rejection("access_denied", operation)
            logger.warning("Rejected %s against non-allowlisted database %r", operation, database)
            raise AccessDenied(database, self.allowlist)
        return database

    def check_writable(self, operation: str, message: Optional[str] = None) -> None:
        if self.config.read_only:
            _record_rejection("read_only", operation)
            logger.info("Rejected %s in read-only mode", operation)
            raise ReadOnlyViolation(operation, message)

    def check_raw_enabled(self) -> None:
        if not self.config.allow_raw_query:
            _record_rejection("raw_disabled", "RAW")
            raise RawQueryDisabled()

    def check_raw_statement(self, sql: str, dialect: Dialect) -> None:
        """Block mutating raw SQL text while in read-only mode."""
        if self.config.read_only and is_mutating_sql(sql, dialect):
            statement_type = leading_keyword(sql) or "UNKNOWN"
            _record_rejection("read_only", "RAW", statement_type=statement_type)
            raise ReadOnlyViolation(
                "RAW",
                f"Only SELECT queries are allowed in read-only mode (got {statement_type})",
            )

    def clamp_select_limit(self, requested: Optional[int]) -> int:
        """Return ``requested`` when 0 < requested <= cap, else the cap."""
        cap = self.config.max_select_limit
        if requested is None or requested <= 0 or requested > cap:
            return cap
        return int(requested)

    async def preflight_mutation(
        self,
        executor: "StatementExecutor",
        conn: Any,
        count_statement: RenderedStatement,
        operation: str,
    ) -> int:
        """Count the rows a pending UPDATE/DELETE would touch; raise when over the cap.

        The count is advisory: concurrent writers may change the matching set
        before the mutation runs unless the transactional guard is enabled.
        """
        matched = await executor.fetch_value(conn, count_statement)
        matched = int(matched or 0)
        self.verify_row_count(operation, matched)
        return matched

    def verify_row_count(self, operation: str, matched: int) -> None:
        """Raise ``RowLimitExceeded`` when ``matched`` is above the operation's cap.

        Used both on the pre-flight count and, under the transactional guard,
        on the affected count the driver reports for the mutation itself.
        """
        cap = self.config.mutation_cap(operation)
        if matched > cap:
            _record_rejection("row_limit", operation, matched=int(matched), cap=cap)
            logger.info("Rejected %s matching %d row(s) (cap %d)", operation, matched, cap)
            raise RowLimitExceeded(operation, int(matched), cap)
