"""Guarded query service: the single entry point for every tool operation.

The service owns no global state. It is built once at startup (see
``dal.factory.build_query_service``) with the dialect, a query target, a
catalog introspector, an executor and the guardrail engine, and each call
runs the same pipeline:

    allowlist -> capability -> read-only gate -> raw gate -> validation
    -> rendering -> preflight count -> execution -> normalization

Guardrail and validation failures are raised before a connection is
acquired, so no SQL reaches the server for a rejected request.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from common.interfaces.catalog_introspector import CatalogIntrospector
from common.sql.dialect import DEFAULT_POSTGRES_SCHEMA, Dialect
from dal.errors import NotFound, UnsupportedOperation, ValidationError
from dal.executor import StatementExecutor
from dal.guardrails import GuardrailEngine
from dal.identifiers import require_identifier, require_name, require_order_by
from dal.models.catalog import (
    CustomTypeInfo,
    RoutineInfo,
    RoutineSource,
    SequenceInfo,
    TableSchema,
)
from dal.models.filters import FilterClause
from dal.models.statements import (
    DeleteSpec,
    InsertSpec,
    RawSpec,
    RenderedStatement,
    RoutineCallSpec,
    SelectSpec,
    UpdateSpec,
    column_values,
)
from dal.normalization import normalize_value
from dal.predicates import Predicate, compile_filters, parse_filters
from dal.query_result import QueryResult
from dal.rendering import get_renderer
from dal.util.read_only import returns_rows

logger = logging.getLogger(__name__)

Filters = Optional[Iterable[Union[FilterClause, Mapping[str, Any]]]]


class GuardedQueryService:
    """Structured CRUD, raw SQL, catalog and routine operations behind guardrails."""

    def __init__(
        self,
        dialect: Dialect,
        target: Any,
        catalog: CatalogIntrospector,
        executor: StatementExecutor,
        guardrails: GuardrailEngine,
    ) -> None:
        self.dialect = dialect
        self.target = target
        self.catalog = catalog
        self.executor = executor
        self.guardrails = guardrails
        self.renderer = get_renderer(dialect)

    @property
    def provider(self) -> str:
        return self.dialect.value

    @property
    def allowlist(self) -> tuple:
        return self.guardrails.allowlist

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _schema(self, schema: Optional[str]) -> Optional[str]:
        if schema is None or not str(schema).strip():
            return None
        return require_name(schema, "schema")

    def _scope(self, database: str, schema: Optional[str]) -> str:
        if self.dialect is Dialect.POSTGRES:
            return schema or DEFAULT_POSTGRES_SCHEMA
        return database

    def _predicates(self, filters: Tuple[FilterClause, ...]) -> List[Predicate]:
        return compile_filters(filters, strict=self.guardrails.config.strict_filter_columns)

    def _required_predicates(
        self, filters: Tuple[FilterClause, ...], operation: str
    ) -> List[Predicate]:
        """Compile a mandatory WHERE clause.

        An empty filter list is rejected, and so is a list whose every clause
        was dropped for an invalid column: UPDATE/DELETE never run unfiltered.
        """
        if not filters:
            raise ValidationError(f"WHERE clause is required for {operation}")
        predicates = self._predicates(filters)
        if not predicates:
            raise ValidationError(
                f"WHERE clause for {operation} has no valid conditions after sanitization"
            )
        return predicates

    @staticmethod
    def _values(data: Optional[Mapping[str, Any]], operation: str):
        if not data:
            raise ValidationError(f"{operation} requires at least one column value")
        values = column_values(data)
        for column, _ in values:
            require_name(column, "column")
        return values

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def select(
        self,
        database: str,
        table: str,
        *,
        schema: Optional[str] = None,
        columns: Optional[Sequence[str]] = None,
        where: Filters = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> QueryResult:
        """Run a structured SELECT; ``limit`` is clamped to the configured maximum."""
        self.guardrails.check_database(database, "SELECT")

        table = require_identifier(table, "table")
        schema = self._schema(schema)
        projection = tuple(require_identifier(column, "column") for column in columns or ())
        ordering = tuple(require_order_by(entry) for entry in order_by or ())
        if offset is not None and offset < 0:
            raise ValidationError(f"offset must be >= 0, got {offset}")
        filters = parse_filters(where)
        predicates = self._predicates(filters)
        applied_limit = self.guardrails.clamp_select_limit(limit)

        spec = SelectSpec(
            table=table,
            schema=schema,
            columns=projection,
            filters=filters,
            order_by=ordering,
            limit=applied_limit,
            offset=int(offset or 0),
        )
        statement = self.renderer.select(spec, database, predicates)
        async with self.target.get_connection(database) as conn:
            rows = await self.executor.fetch_rows(conn, statement)
        return QueryResult(
            rows=rows,
            message=f"SELECT from {database}.{table}",
            limit_applied=applied_limit,
        )

    async def insert(
        self,
        database: str,
        table: str,
        data: Optional[Mapping[str, Any]],
        *,
        schema: Optional[str] = None,
    ) -> QueryResult:
        self.guardrails.check_database(database, "INSERT")
        self.guardrails.check_writable("INSERT")

        table = require_identifier(table, "table")
        spec = InsertSpec(
            table=table, values=self._values(data, "INSERT"), schema=self._schema(schema)
        )
        statement = self.renderer.insert(spec, database)
        async with self.target.get_connection(database) as conn:
            affected = await self.executor.execute_write(conn, statement)
        return QueryResult(
            affected=affected, message=f"Inserted {affected} row(s) into {database}.{table}"
        )

    async def update(
        self,
        database: str,
        table: str,
        data: Optional[Mapping[str, Any]],
        where: Filters,
        *,
        schema: Optional[str] = None,
    ) -> QueryResult:
        """Run a capped UPDATE.

        Rows matching ``where`` are counted first; the UPDATE is only issued
        when the count is within MAX_UPDATE_LIMIT.
        """
        self.guardrails.check_database(database, "UPDATE")
        self.guardrails.check_writable("UPDATE")

        table = require_identifier(table, "table")
        values = self._values(data, "UPDATE")
        filters = parse_filters(where)
        predicates = self._required_predicates(filters, "UPDATE")
        spec = UpdateSpec(
            table=table, values=values, filters=filters, schema=self._schema(schema)
        )

        count_statement = self.renderer.count(spec.count_spec(), database, predicates)
        statement = self.renderer.update(spec, database, predicates)
        affected = await self._guarded_mutation(database, "UPDATE", count_statement, statement)
        return QueryResult(
            affected=affected, message=f"Updated {affected} row(s) in {database}.{table}"
        )

    async def delete(
        self,
        database: str,
        table: str,
        where: Filters,
        *,
        schema: Optional[str] = None,
    ) -> QueryResult:
        """Run a capped DELETE (see ``update`` for the preflight rules)."""
        self.guardrails.check_database(database, "DELETE")
        self.guardrails.check_writable("DELETE")

        table = require_identifier(table, "table")
        filters = parse_filters(where)
        predicates = self._required_predicates(filters, "DELETE")
        spec = DeleteSpec(table=table, filters=filters, schema=self._schema(schema))

        count_statement = self.renderer.count(spec.count_spec(), database, predicates)
        statement = self.renderer.delete(spec, database, predicates)
        affected = await self._guarded_mutation(database, "DELETE", count_statement, statement)
        return QueryResult(
            affected=affected, message=f"Deleted {affected} row(s) from {database}.{table}"
        )

    async def _guarded_mutation(
        self,
        database: str,
        operation: str,
        count_statement: RenderedStatement,
        statement: RenderedStatement,
    ) -> int:
        async with self.target.get_connection(database) as conn:
            if not self.guardrails.config.transactional_mutation_guard:
                await self.guardrails.preflight_mutation(
                    self.executor, conn, count_statement, operation
                )
                return await self.executor.execute_write(conn, statement)

            # RowLimitExceeded raised inside the block rolls the mutation back.
            async with conn.transaction():
                await self.guardrails.preflight_mutation(
                    self.executor, conn, count_statement, operation
                )
                affected = await self.executor.execute_write(conn, statement)
                self.guardrails.verify_row_count(operation, affected)
            return affected

    # ------------------------------------------------------------------
    # Raw SQL
    # ------------------------------------------------------------------

    async def raw(
        self, database: str, query: str, params: Optional[Sequence[Any]] = None
    ) -> QueryResult:
        """Run caller-authored SQL when ALLOW_RAW_QUERY is enabled.

        Row-returning statements come back as rows, everything else as an
        affected-row count. In read-only mode only non-mutating text passes.
        """
        self.guardrails.check_database(database, "RAW")
        self.guardrails.check_raw_enabled()
        if not query or not query.strip():
            raise ValidationError("query must not be empty")
        self.guardrails.check_raw_statement(query, self.dialect)

        statement = self.renderer.raw(RawSpec(query=query, params=tuple(params or ())))
        async with self.target.get_connection(database) as conn:
            if self.dialect is Dialect.MYSQL:
                await conn.use_database(database)
            if returns_rows(query, self.dialect):
                rows = await self.executor.fetch_rows(conn, statement)
                return QueryResult(rows=rows, message="Raw query successful")
            affected = await self.executor.execute_write(conn, statement)
        return QueryResult(affected=affected, message=f"Affected {affected} row(s)")

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_databases(self) -> List[str]:
        """Return the configured allowlist; no connection is made."""
        return list(self.allowlist)

    async def list_tables(self, database: str, *, schema: Optional[str] = None) -> List[str]:
        self.guardrails.check_database(database, "METADATA")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.list_tables(conn, database, schema)

    async def describe_table(
        self, database: str, table: str, *, schema: Optional[str] = None
    ) -> TableSchema:
        self.guardrails.check_database(database, "METADATA")
        table = require_name(table, "table")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.describe_table(conn, database, table, schema)

    async def list_sequences(
        self, database: str, *, schema: Optional[str] = None
    ) -> List[SequenceInfo]:
        self.guardrails.check_database(database, "METADATA")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.list_sequences(conn, database, schema)

    async def list_custom_types(
        self, database: str, *, schema: Optional[str] = None
    ) -> List[CustomTypeInfo]:
        self.guardrails.check_database(database, "METADATA")
        if not self.catalog.supports_custom_types:
            raise UnsupportedOperation("Custom types are only supported in PostgreSQL")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.list_custom_types(conn, database, schema)

    async def list_routines(
        self, database: str, *, schema: Optional[str] = None
    ) -> List[RoutineInfo]:
        self.guardrails.check_database(database, "METADATA")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.list_routines(conn, database, schema)

    async def get_routine_source(
        self, database: str, name: str, *, schema: Optional[str] = None
    ) -> List[RoutineSource]:
        self.guardrails.check_database(database, "METADATA")
        name = require_name(name, "routine")
        schema = self._schema(schema)
        async with self.target.get_connection(database) as conn:
            return await self.catalog.get_routine_source(conn, database, name, schema)

    # ------------------------------------------------------------------
    # Routines
    # ------------------------------------------------------------------

    async def execute_routine(
        self,
        database: str,
        name: str,
        params: Optional[Sequence[Any]] = None,
        *,
        schema: Optional[str] = None,
    ) -> QueryResult:
        """Invoke a function or stored procedure with positional parameters.

        The routine kind is resolved from the catalog first. Procedures are
        blocked in read-only mode; functions are always allowed.
        """
        self.guardrails.check_database(database, "EXECUTE")
        name = require_name(name, "routine")
        schema = self._schema(schema)

        async with self.target.get_connection(database) as conn:
            if self.dialect is Dialect.MYSQL:
                await conn.use_database(database)
            kind = await self.catalog.get_routine_kind(conn, database, name, schema)
            if kind is None:
                scope = self._scope(database, schema)
                raise NotFound(f"function or procedure '{name}' not found in {scope}")
            is_procedure = kind == "procedure"
            if is_procedure:
                self.guardrails.check_writable(
                    "PROCEDURE", "stored procedures are not allowed in read-only mode"
                )

            spec = RoutineCallSpec(
                name=name, schema=schema, params=tuple(params or ()), is_procedure=is_procedure
            )
            statement = self.renderer.routine_call(spec)
            if is_procedure:
                rows = await self.executor.fetch_rows(conn, statement)
                return QueryResult(rows=rows, message=f"Procedure {name} executed")
            value = await self.executor.fetch_value(conn, statement)
        return QueryResult(
            rows=[{"result": normalize_value(value)}], message=f"Function {name} executed"
        )
