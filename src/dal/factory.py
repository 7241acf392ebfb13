"""DAL factory: dialect-driven construction of the query stack.

Provider selection follows ``DatabaseSettings.dialect`` (from ``DB_TYPE``):

    - "postgres": asyncpg pools, ``PostgresCatalogIntrospector``
    - "mysql": aiomysql pool, ``MysqlCatalogIntrospector``

Example:
    >>> settings = load_settings_from_env()
    >>> service = build_query_service(settings, GuardrailConfig.from_env())
    >>> await service.target.init()
"""

import logging
from typing import Callable, Dict, Union

from common.interfaces.catalog_introspector import CatalogIntrospector
from common.sql.dialect import Dialect
from dal.config import DatabaseSettings
from dal.executor import StatementExecutor
from dal.guardrails import GuardrailConfig, GuardrailEngine
from dal.mysql.catalog import MysqlCatalogIntrospector
from dal.mysql.query_target import MysqlQueryTarget
from dal.postgres.catalog import PostgresCatalogIntrospector
from dal.postgres.query_target import PostgresQueryTarget
from dal.query_service import GuardedQueryService

logger = logging.getLogger(__name__)

QueryTarget = Union[PostgresQueryTarget, MysqlQueryTarget]

QUERY_TARGET_PROVIDERS: Dict[Dialect, Callable[[DatabaseSettings], QueryTarget]] = {
    Dialect.POSTGRES: PostgresQueryTarget,
    Dialect.MYSQL: MysqlQueryTarget,
}

CATALOG_PROVIDERS: Dict[Dialect, Callable[[StatementExecutor], CatalogIntrospector]] = {
    Dialect.POSTGRES: PostgresCatalogIntrospector,
    Dialect.MYSQL: MysqlCatalogIntrospector,
}


def create_query_target(settings: DatabaseSettings) -> QueryTarget:
    """Return the (not yet initialized) query target for the configured dialect."""
    return QUERY_TARGET_PROVIDERS[settings.dialect](settings)


def create_catalog(dialect: Dialect, executor: StatementExecutor) -> CatalogIntrospector:
    return CATALOG_PROVIDERS[dialect](executor)


def build_query_service(
    settings: DatabaseSettings, guardrail_config: GuardrailConfig
) -> GuardedQueryService:
    """Wire target, executor, catalog and guardrails into a query service.

    Pools are not opened here; call ``service.target.init()`` before serving.
    """
    executor = StatementExecutor(settings.dialect, settings.statement_timeout_seconds)
    service = GuardedQueryService(
        dialect=settings.dialect,
        target=create_query_target(settings),
        catalog=create_catalog(settings.dialect, executor),
        executor=executor,
        guardrails=GuardrailEngine(guardrail_config, settings.allowlist),
    )
    logger.info(
        "Built %s query service for databases %s", settings.dialect.value, settings.allowlist
    )
    return service
