from typing import Any, List, Optional, Protocol, runtime_checkable

from dal.models.catalog import (
    CustomTypeInfo,
    RoutineInfo,
    RoutineSource,
    SequenceInfo,
    TableSchema,
)


@runtime_checkable
class CatalogIntrospector(Protocol):
    """Protocol for dialect-specific, read-only catalog queries.

    Every method runs on a connection wrapper already bound to ``database``;
    ``schema`` is only meaningful for PostgreSQL.
    """

    supports_custom_types: bool

    async def list_tables(self, conn: Any, database: str, schema: Optional[str]) -> List[str]:
        """List table names."""
        ...

    async def describe_table(
        self, conn: Any, database: str, table: str, schema: Optional[str]
    ) -> TableSchema:
        """Describe columns, foreign keys and indexes of one table."""
        ...

    async def list_sequences(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[SequenceInfo]:
        """List sequences (auto_increment columns on MySQL)."""
        ...

    async def list_custom_types(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[CustomTypeInfo]:
        """List enum, composite and domain types."""
        ...

    async def list_routines(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[RoutineInfo]:
        """List functions and procedures."""
        ...

    async def get_routine_source(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> List[RoutineSource]:
        """Return the definition of every routine with this name (overloads included)."""
        ...

    async def get_routine_kind(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> Optional[str]:
        """Return "function" or "procedure", or None when no such routine exists."""
        ...
