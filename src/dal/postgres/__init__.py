"""PostgreSQL DAL Implementations.

This package contains the asyncpg query target and the pg_catalog-based
catalog introspector.
"""

from .catalog import PostgresCatalogIntrospector
from .query_target import PostgresQueryTarget

__all__ = [
    "PostgresCatalogIntrospector",
    "PostgresQueryTarget",
]
