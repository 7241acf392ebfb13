import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


class QueryTimeoutError(TimeoutError):
    """Statement deadline exceeded, with dialect and statement-kind context."""

    def __init__(self, provider: str, statement_kind: str, timeout_seconds: float) -> None:
        """Initialize timeout details."""
        self.provider = provider
        self.statement_kind = statement_kind
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{provider} {statement_kind} statement timed out after {float(timeout_seconds):g}s."
        )


async def run_with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout_seconds: Optional[float],
    cancel: Optional[Callable[[], object]] = None,
    *,
    provider: str = "unknown",
    statement_kind: str = "query",
) -> T:
    """Run an awaitable operation under a deadline.

    A falsy or non-positive ``timeout_seconds`` disables the deadline. On expiry
    the optional ``cancel`` callback is invoked (awaited when it returns an
    awaitable) before ``QueryTimeoutError`` is raised.
    """
    if not timeout_seconds or timeout_seconds <= 0:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        if cancel is not None:
            try:
                result = cancel()
                if inspect.isawaitable(result):
                    await result
            except Exception as cancel_exc:
                logger.warning("Statement cancellation after timeout failed: %s", cancel_exc)
        raise QueryTimeoutError(provider, statement_kind, timeout_seconds) from exc
