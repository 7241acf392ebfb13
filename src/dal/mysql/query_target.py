import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import aiomysql

from dal.config import DatabaseSettings
from dal.errors import AccessDenied
from dal.mysql.param_translation import translate_qmark_params
from dal.mysql.quoting import quote_mysql_name
from dal.tracing import trace_query_operation

logger = logging.getLogger(__name__)


class MysqlQueryTarget:
    """MySQL query target using aiomysql.

    A single pool serves every allowlisted database: CRUD statements qualify
    tables with the database name and raw/routine execution switches the
    session with ``USE`` first.
    """

    provider = "mysql"

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._pool: Optional[aiomysql.Pool] = None

    async def init(self) -> None:
        """Validate config and open the pool against the primary database."""
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
                f"MySQL query target missing required config: {missing_list}. "
                "Set DB_HOST and DB_USER."
            )
        if self._pool is None:
            logger.info("Opening MySQL pool for database %s", self._settings.primary_database)
            self._pool = await aiomysql.create_pool(
                host=self._settings.host,
                port=self._settings.port,
                user=self._settings.user,
                password=self._settings.password,
                db=self._settings.primary_database,
                minsize=self._settings.pool_min_size,
                maxsize=self._settings.pool_max_size,
                autocommit=True,
                cursorclass=aiomysql.DictCursor,
            )

    async def close(self) -> None:
        """Close MySQL resources."""
        if self._pool is not None:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None

    @asynccontextmanager
    async def get_connection(
        self, database: Optional[str] = None
    ) -> AsyncIterator["_MysqlConnection"]:
        """Yield a MySQL connection wrapper."""
        if self._pool is None:
            raise RuntimeError("MySQL pool not initialized. Call MysqlQueryTarget.init().")
        database = database or self._settings.primary_database
        if database not in self._settings.allowlist:
            raise AccessDenied(database, self._settings.allowlist)

        async with self._pool.acquire() as conn:
            yield _MysqlConnection(conn, database)


class _MysqlConnection:
    """Adapter providing asyncpg-like helpers over aiomysql."""

    provider = "mysql"

    def __init__(self, conn: aiomysql.Connection, database: str) -> None:
        self._conn = conn
        self.database = database

    async def _run(self, sql: str, params: tuple, fetch: str) -> Any:
        query, bound_params = translate_qmark_params(sql, params)

        async def _execute():
            async with self._conn.cursor() as cursor:
                await cursor.execute(query, bound_params)
                if fetch == "all":
                    return list(await cursor.fetchall())
                if fetch == "one":
                    return await cursor.fetchone()
                return _format_execute_status(sql, cursor.rowcount)

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            statement_kind="execute" if fetch == "status" else "fetch",
            sql=sql,
            operation=_execute(),
        )

    async def execute(self, sql: str, *params: Any) -> str:
        return await self._run(sql, params, "status")

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        return await self._run(sql, params, "all")

    async def fetchrow(self, sql: str, *params: Any) -> Optional[Dict[str, Any]]:
        return await self._run(sql, params, "one")

    async def fetchval(self, sql: str, *params: Any) -> Any:
        row = await self.fetchrow(sql, *params)
        if row is None:
            return None
        return next(iter(row.values()))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed statements in one transaction, rolled back on error."""
        await self._conn.begin()
        try:
            yield
        except BaseException:
            await self._conn.rollback()
            raise
        else:
            await self._conn.commit()

    async def use_database(self, database: str) -> None:
        """Switch the session default database with a USE statement."""
        await self.execute(f"USE {quote_mysql_name(database)}")
        self.database = database

    def cancel(self) -> None:
        """Close the underlying connection so the pool discards it after a timeout."""
        self._conn.close()


def _format_execute_status(sql: str, rowcount: int) -> str:
    verb = sql.strip().split(maxsplit=1)
    if not verb:
        return "OK"
    if rowcount is not None and rowcount >= 0:
        return f"{verb[0].upper()} {rowcount}"
    return "OK"
