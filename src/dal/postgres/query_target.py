import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from dal.config import DatabaseSettings
from dal.errors import AccessDenied
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)


class PostgresQueryTarget:
    """PostgreSQL query target using asyncpg.

    A Postgres connection is bound to one database, so one pool is kept per
    allowlisted database: the primary pool is opened by ``init()`` and the
    others are created on first use.
    """

    provider = "postgres"

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._pools: Dict[str, asyncpg.Pool] = {}
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        """Validate config and open the primary database pool."""
        missing = [
            name
            for name, value in {
                "DB_HOST": self._settings.host,
                "DB_USER": self._settings.user,
            }.items()
            if not value
        ]
        if missing:
            missing_list = ", ".join(missing)
            raise ValueError(
                f"Postgres query target missing required config: {missing_list}. "
                "Set DB_HOST and DB_USER."
            )
        await self._pool_for(self._settings.primary_database)

    async def _create_pool(self, database: str) -> asyncpg.Pool:
        timeout = self._settings.statement_timeout_seconds or None
        logger.info("Opening Postgres pool for database %s", database)
        return await asyncpg.create_pool(
            host=self._settings.host,
            port=self._settings.port,
            user=self._settings.user,
            password=self._settings.password or None,
            database=database,
            min_size=self._settings.pool_min_size,
            max_size=self._settings.pool_max_size,
            command_timeout=timeout,
            server_settings={"application_name": "guarded_sql_mcp"},
        )

    async def _pool_for(self, database: str) -> asyncpg.Pool:
        if database not in self._settings.allowlist:
            raise AccessDenied(database, self._settings.allowlist)
        pool = self._pools.get(database)
        if pool is not None:
            return pool
        async with self._lock:
            pool = self._pools.get(database)
            if pool is None:
                pool = await self._create_pool(database)
                self._pools[database] = pool
            return pool

    async def close(self) -> None:
        """Close every open pool."""
        pools, self._pools = list(self._pools.values()), {}
        for pool in pools:
            await pool.close()

    @asynccontextmanager
    async def get_connection(
        self, database: Optional[str] = None
    ) -> AsyncIterator["_PostgresConnection"]:
        """Yield a connection wrapper bound to ``database`` (primary by default)."""
        database = database or self._settings.primary_database
        pool = await self._pool_for(database)
        async with pool.acquire() as conn:
            yield _PostgresConnection(conn, database)


class _PostgresConnection:
    """Uniform connection surface over an asyncpg connection."""

    provider = "postgres"

    def __init__(self, conn: asyncpg.Connection, database: str) -> None:
        self._conn = conn
        self.database = database

    async def execute(self, sql: str, *params: Any) -> str:
        """Execute a statement and return the driver status tag (e.g. ``UPDATE 3``)."""
        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            statement_kind="execute",
            sql=sql,
            operation=self._conn.execute(sql, *params),
        )

    async def fetch(self, sql: str, *params: Any) -> List[asyncpg.Record]:
        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            statement_kind="fetch",
            sql=sql,
            operation=self._conn.fetch(sql, *params),
        )

    async def fetchrow(self, sql: str, *params: Any) -> Optional[asyncpg.Record]:
        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            statement_kind="fetch",
            sql=sql,
            operation=self._conn.fetchrow(sql, *params),
        )

    async def fetchval(self, sql: str, *params: Any) -> Any:
        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            statement_kind="fetch",
            sql=sql,
            operation=self._conn.fetchval(sql, *params),
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed statements in one transaction, rolled back on error."""
        async with self._conn.transaction():
            yield

    async def use_database(self, database: str) -> None:
        """No-op: the connection already belongs to the pool for its database."""
        if database != self.database:
            raise RuntimeError(
                f"Postgres connection for {self.database!r} cannot switch to {database!r}"
            )

    def cancel(self) -> None:
        """No-op: asyncpg cancels the server-side query when the awaiting task is cancelled."""
        return None
