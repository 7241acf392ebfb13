"""Statement execution with deadlines and driver-error mapping."""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, TypeVar

from common.observability.metrics import dal_metrics
from common.sql.dialect import Dialect
from dal.error_classification import classify_error_info
from dal.errors import DalError, ExecutionFailed
from dal.models.statements import RenderedStatement
from dal.normalization import normalize_rows
from dal.util.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def affected_rows_from_status(status: Any) -> int:
    """Parse the affected-row count out of a driver status tag.

    ``"UPDATE 3"`` -> 3, ``"INSERT 0 1"`` -> 1; tags without a trailing count
    (``"CREATE TABLE"``, ``"OK"``) report 0.
    """
    if isinstance(status, int):
        return max(status, 0)
    parts = str(status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


class StatementExecutor:
    """Runs rendered statements on a connection wrapper.

    Driver failures are wrapped in ``ExecutionFailed`` (timeouts included);
    ``DalError`` subclasses raised underneath pass through untouched.
    """

    def __init__(self, dialect: Dialect, timeout_seconds: float = 0) -> None:
        self.dialect = dialect
        self.timeout_seconds = timeout_seconds

    async def _run(
        self, conn: Any, statement: RenderedStatement, call: Callable[[], Awaitable[T]]
    ) -> T:
        started = time.monotonic()
        status = "ok"
        try:
            return await run_with_timeout(
                call,
                self.timeout_seconds,
                cancel=getattr(conn, "cancel", None),
                provider=self.dialect.value,
                statement_kind=statement.kind,
            )
        except DalError:
            status = "rejected"
            raise
        except Exception as exc:
            status = "error"
            classification = classify_error_info(self.dialect.value, exc)
            logger.warning(
                "%s %s statement failed (%s): %s",
                self.dialect.value,
                statement.kind,
                classification.category.value,
                exc,
            )
            raise ExecutionFailed(
                f"{statement.kind} failed: {exc}",
                cause=exc,
                category=classification.category,
                retryable=classification.is_retryable,
            ) from exc
        finally:
            dal_metrics.record_histogram(
                "dal.statement.duration_ms",
                (time.monotonic() - started) * 1000,
                unit="ms",
                description="Statement execution latency",
                attributes={
                    "provider": self.dialect.value,
                    "kind": statement.kind,
                    "status": status,
                },
            )

    async def fetch_rows(self, conn: Any, statement: RenderedStatement) -> List[Dict[str, Any]]:
        """Run a row-returning statement and normalize its rows."""
        rows = await self._run(
            conn, statement, lambda: conn.fetch(statement.sql, *statement.params)
        )
        return normalize_rows(rows)

    async def fetch_value(self, conn: Any, statement: RenderedStatement) -> Any:
        """Run a statement and return the first column of its first row."""
        return await self._run(
            conn, statement, lambda: conn.fetchval(statement.sql, *statement.params)
        )

    async def execute_write(self, conn: Any, statement: RenderedStatement) -> int:
        """Run a non-row statement and return the driver-reported affected count."""
        status = await self._run(
            conn, statement, lambda: conn.execute(statement.sql, *statement.params)
        )
        return affected_rows_from_status(status)
