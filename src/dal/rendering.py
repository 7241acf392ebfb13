"""Dialect adapters: statement specs + compiled predicates -> SQL text + params.

Each renderer collects bound values through a ``_ParamCollector`` that hands
out the placeholder for the value it just appended, so the Nth placeholder in
the text always binds the Nth parameter regardless of dialect.

Identifiers reaching this module have already been sanitized; the renderers
re-check them with the ``require_*`` helpers because a spec can be built
directly without going through the query service.
"""

from typing import Any, Dict, List, Optional, Sequence

from common.sql.dialect import DEFAULT_POSTGRES_SCHEMA, Dialect
from dal.errors import QueryBuildFailed, ValidationError
from dal.identifiers import require_identifier, require_name, require_order_by
from dal.mysql.quoting import qualified_table
from dal.models.statements import (
    CountSpec,
    DeleteSpec,
    InsertSpec,
    RawSpec,
    RenderedStatement,
    RoutineCallSpec,
    SelectSpec,
    UpdateSpec,
)
from dal.predicates import (
    Between,
    Comparison,
    Infix,
    Like,
    Membership,
    NullCheck,
    Predicate,
)


class _ParamCollector:
    def __init__(self, renderer: "StatementRenderer") -> None:
        self._renderer = renderer
        self.params: List[Any] = []

    def add(self, value: Any) -> str:
        self.params.append(value)
        return self._renderer.placeholder(len(self.params))


class StatementRenderer:
    """Dialect-independent statement assembly."""

    dialect: Dialect
    like_keyword_ci = "ILIKE"

    def placeholder(self, index: int) -> str:
        raise NotImplementedError

    def table_ref(self, database: str, table: str, schema: Optional[str]) -> str:
        raise NotImplementedError

    def routine_ref(self, name: str, schema: Optional[str]) -> str:
        raise NotImplementedError

    def render_predicate(self, predicate: Predicate, collector: _ParamCollector) -> str:
        column = predicate.column
        if isinstance(predicate, Comparison):
            return f"{column} {predicate.operator} {collector.add(predicate.value)}"
        if isinstance(predicate, Membership):
            placeholders = ", ".join(collector.add(value) for value in predicate.values)
            keyword = "NOT IN" if predicate.negated else "IN"
            return f"{column} {keyword} ({placeholders})"
        if isinstance(predicate, NullCheck):
            return f"{column} IS NOT NULL" if predicate.negated else f"{column} IS NULL"
        if isinstance(predicate, Like):
            keyword = self.like_keyword_ci if predicate.case_insensitive else "LIKE"
            return f"{column} {keyword} {collector.add(predicate.pattern)}"
        if isinstance(predicate, Between):
            low = collector.add(predicate.low)
            high = collector.add(predicate.high)
            return f"{column} BETWEEN {low} AND {high}"
        if isinstance(predicate, Infix):
            # Parenthesized so a loosely binding operator stays inside the AND chain.
            return f"({column} {predicate.operator} {collector.add(predicate.value)})"
        raise QueryBuildFailed(f"unsupported predicate node: {type(predicate).__name__}")

    def _where(self, predicates: Sequence[Predicate], collector: _ParamCollector) -> str:
        if not predicates:
            return ""
        return " WHERE " + " AND ".join(self.render_predicate(p, collector) for p in predicates)

    def select(
        self, spec: SelectSpec, database: str, predicates: Sequence[Predicate] = ()
    ) -> RenderedStatement:
        collector = _ParamCollector(self)
        if spec.columns:
            projection = ", ".join(require_identifier(c, "column") for c in spec.columns)
        else:
            projection = "*"
        sql = f"SELECT {projection} FROM {self.table_ref(database, spec.table, spec.schema)}"
        sql += self._where(predicates, collector)
        if spec.order_by:
            sql += " ORDER BY " + ", ".join(require_order_by(entry) for entry in spec.order_by)
        if spec.limit is not None:
            sql += f" LIMIT {collector.add(int(spec.limit))}"
        if spec.offset > 0:
            sql += f" OFFSET {collector.add(int(spec.offset))}"
        return RenderedStatement(sql, tuple(collector.params), kind="select")

    def count(
        self, spec: CountSpec, database: str, predicates: Sequence[Predicate] = ()
    ) -> RenderedStatement:
        collector = _ParamCollector(self)
        table = self.table_ref(database, spec.table, spec.schema)
        sql = f"SELECT COUNT(*) AS row_count FROM {table}"
        sql += self._where(predicates, collector)
        return RenderedStatement(sql, tuple(collector.params), kind="count")

    def insert(self, spec: InsertSpec, database: str) -> RenderedStatement:
        if not spec.values:
            raise QueryBuildFailed("INSERT requires at least one column value")
        collector = _ParamCollector(self)
        columns = ", ".join(require_name(column, "column") for column, _ in spec.values)
        placeholders = ", ".join(collector.add(value) for _, value in spec.values)
        sql = (
            f"INSERT INTO {self.table_ref(database, spec.table, spec.schema)} "
            f"({columns}) VALUES ({placeholders})"
        )
        return RenderedStatement(sql, tuple(collector.params), kind="insert")

    def update(
        self, spec: UpdateSpec, database: str, predicates: Sequence[Predicate]
    ) -> RenderedStatement:
        if not spec.values:
            raise QueryBuildFailed("UPDATE requires at least one column value")
        if not predicates:
            raise QueryBuildFailed("UPDATE without a WHERE clause cannot be rendered")
        collector = _ParamCollector(self)
        assignments = ", ".join(
            f"{require_name(column, 'column')} = {collector.add(value)}"
            for column, value in spec.values
        )
        sql = f"UPDATE {self.table_ref(database, spec.table, spec.schema)} SET {assignments}"
        sql += self._where(predicates, collector)
        return RenderedStatement(sql, tuple(collector.params), kind="update")

    def delete(
        self, spec: DeleteSpec, database: str, predicates: Sequence[Predicate]
    ) -> RenderedStatement:
        if not predicates:
            raise QueryBuildFailed("DELETE without a WHERE clause cannot be rendered")
        collector = _ParamCollector(self)
        sql = f"DELETE FROM {self.table_ref(database, spec.table, spec.schema)}"
        sql += self._where(predicates, collector)
        return RenderedStatement(sql, tuple(collector.params), kind="delete")

    def raw(self, spec: RawSpec) -> RenderedStatement:
        return RenderedStatement(spec.query, tuple(spec.params), kind="raw")

    def routine_call(self, spec: RoutineCallSpec) -> RenderedStatement:
        collector = _ParamCollector(self)
        placeholders = ", ".join(collector.add(value) for value in spec.params)
        target = self.routine_ref(spec.name, spec.schema)
        if spec.is_procedure:
            return RenderedStatement(
                f"CALL {target}({placeholders})", tuple(collector.params), kind="procedure"
            )
        return RenderedStatement(
            f"SELECT {target}({placeholders}) AS result", tuple(collector.params), kind="function"
        )


class PostgresRenderer(StatementRenderer):
    """``$n`` placeholders; tables are resolved against the connection's database."""

    dialect = Dialect.POSTGRES

    def placeholder(self, index: int) -> str:
        return f"${index}"

    def table_ref(self, database: str, table: str, schema: Optional[str]) -> str:
        table_name = require_identifier(table, "table")
        if schema:
            return f"{require_name(schema, 'schema')}.{table_name}"
        return table_name

    def routine_ref(self, name: str, schema: Optional[str]) -> str:
        schema_name = require_name(schema or DEFAULT_POSTGRES_SCHEMA, "schema")
        return f"{schema_name}.{require_name(name, 'routine')}"


class MysqlRenderer(StatementRenderer):
    """``?`` placeholders; tables are backtick-quoted and qualified by database."""

    dialect = Dialect.MYSQL
    like_keyword_ci = "LIKE"

    def placeholder(self, index: int) -> str:
        return "?"

    def table_ref(self, database: str, table: str, schema: Optional[str]) -> str:
        table_name = require_identifier(table, "table")
        if "." in table_name:
            raise ValidationError(
                f"invalid table identifier: {table!r} (MySQL tables are qualified by database)"
            )
        return qualified_table(database, table_name)

    def routine_ref(self, name: str, schema: Optional[str]) -> str:
        return require_name(name, "routine")


_RENDERERS: Dict[Dialect, StatementRenderer] = {
    Dialect.POSTGRES: PostgresRenderer(),
    Dialect.MYSQL: MysqlRenderer(),
}


def get_renderer(dialect: Dialect) -> StatementRenderer:
    """Return the stateless renderer for a dialect."""
    return _RENDERERS[dialect]
