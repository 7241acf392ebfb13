from typing import Any, Dict, List, Optional

from common.sql.dialect import DEFAULT_POSTGRES_SCHEMA
from dal.errors import NotFound
from dal.executor import StatementExecutor
from dal.models.catalog import (
    ColumnInfo,
    CustomTypeInfo,
    ForeignKeyInfo,
    IndexInfo,
    RoutineInfo,
    RoutineSource,
    SequenceInfo,
    TableSchema,
    format_column_type,
)
from dal.models.statements import RenderedStatement

_TABLES_SQL = "SELECT tablename FROM pg_tables WHERE schemaname = $1 ORDER BY tablename"

_COLUMNS_SQL = """
    SELECT
        column_name, data_type, is_nullable, column_default,
        character_maximum_length, numeric_precision, numeric_scale
    FROM information_schema.columns
    WHERE table_catalog = $1 AND table_schema = $2 AND table_name = $3
    ORDER BY ordinal_position
"""

_PRIMARY_KEY_SQL = """
    SELECT kcu.column_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    WHERE tc.constraint_type = 'PRIMARY KEY'
        AND tc.table_schema = $1
        AND tc.table_name = $2
"""

_FOREIGN_KEYS_SQL = """
    SELECT
        kcu.column_name,
        ccu.table_schema AS foreign_schema,
        ccu.table_name AS foreign_table,
        ccu.column_name AS foreign_column
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
        AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_schema = $1
        AND tc.table_name = $2
"""

_INDEXES_SQL = """
    SELECT indexname, indexdef
    FROM pg_indexes
    WHERE schemaname = $1 AND tablename = $2
    ORDER BY indexname
"""

_SEQUENCES_SQL = """
    SELECT sequence_name, data_type, start_value, minimum_value, maximum_value, increment
    FROM information_schema.sequences
    WHERE sequence_catalog = $1 AND sequence_schema = $2
    ORDER BY sequence_name
"""

_CUSTOM_TYPES_SQL = """
    SELECT
        t.oid::bigint AS type_oid,
        t.typname AS type_name,
        CASE t.typtype
            WHEN 'e' THEN 'enum'
            WHEN 'c' THEN 'composite'
            WHEN 'd' THEN 'domain'
        END AS type_category
    FROM pg_type t
    JOIN pg_namespace n ON n.oid = t.typnamespace
    WHERE n.nspname = $1 AND t.typtype IN ('e', 'c', 'd')
    ORDER BY t.typname
"""

_ENUM_LABELS_SQL = """
    SELECT enumlabel
    FROM pg_enum
    WHERE enumtypid = $1::oid
    ORDER BY enumsortorder
"""

_ROUTINES_SQL = """
    SELECT
        p.proname AS name,
        CASE p.prokind
            WHEN 'f' THEN 'function'
            WHEN 'p' THEN 'procedure'
            WHEN 'a' THEN 'aggregate'
            WHEN 'w' THEN 'window'
        END AS type,
        pg_catalog.pg_get_function_arguments(p.oid) AS arguments,
        pg_catalog.pg_get_function_result(p.oid) AS return_type,
        l.lanname AS language
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    JOIN pg_language l ON l.oid = p.prolang
    WHERE n.nspname = $1
    ORDER BY p.proname
"""

_ROUTINE_SOURCE_SQL = """
    SELECT
        p.proname AS name,
        CASE p.prokind
            WHEN 'f' THEN 'function'
            WHEN 'p' THEN 'procedure'
        END AS type,
        pg_catalog.pg_get_functiondef(p.oid) AS definition
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = $1 AND p.proname = $2 AND p.prokind IN ('f', 'p')
"""

_ROUTINE_KIND_SQL = """
    SELECT p.prokind
    FROM pg_proc p
    JOIN pg_namespace n ON n.oid = p.pronamespace
    WHERE n.nspname = $1 AND p.proname = $2
    LIMIT 1
"""


class PostgresCatalogIntrospector:
    """Catalog queries against pg_catalog and information_schema."""

    supports_custom_types = True

    def __init__(self, executor: StatementExecutor) -> None:
        self._executor = executor

    async def _rows(self, conn: Any, sql: str, *params: Any) -> List[Dict[str, Any]]:
        return await self._executor.fetch_rows(
            conn, RenderedStatement(sql, tuple(params), kind="catalog")
        )

    async def list_tables(self, conn: Any, database: str, schema: Optional[str]) -> List[str]:
        rows = await self._rows(conn, _TABLES_SQL, schema or DEFAULT_POSTGRES_SCHEMA)
        return [row["tablename"] for row in rows]

    async def describe_table(
        self, conn: Any, database: str, table: str, schema: Optional[str]
    ) -> TableSchema:
        schema = schema or DEFAULT_POSTGRES_SCHEMA
        column_rows = await self._rows(conn, _COLUMNS_SQL, database, schema, table)
        if not column_rows:
            raise NotFound(f"table '{schema}.{table}' not found in {database}")

        pk_rows = await self._rows(conn, _PRIMARY_KEY_SQL, schema, table)
        primary_keys = {row["column_name"] for row in pk_rows}
        fk_rows = await self._rows(conn, _FOREIGN_KEYS_SQL, schema, table)
        index_rows = await self._rows(conn, _INDEXES_SQL, schema, table)

        columns = [
            ColumnInfo(
                name=row["column_name"],
                type=format_column_type(row),
                nullable=row["is_nullable"] == "YES",
                default=row["column_default"],
                primary_key=row["column_name"] in primary_keys,
            )
            for row in column_rows
        ]
        foreign_keys = [
            ForeignKeyInfo(
                column=row["column_name"],
                foreign_schema=row["foreign_schema"],
                foreign_table=row["foreign_table"],
                foreign_column=row["foreign_column"],
            )
            for row in fk_rows
        ]
        indexes = [
            IndexInfo(
                name=row["indexname"],
                kind=_index_kind(row["indexname"], row["indexdef"]),
                definition=row["indexdef"],
            )
            for row in index_rows
        ]
        return TableSchema(
            database=database,
            schema=schema,
            table=table,
            columns=columns,
            foreign_keys=foreign_keys,
            indexes=indexes,
        )

    async def list_sequences(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[SequenceInfo]:
        rows = await self._rows(conn, _SEQUENCES_SQL, database, schema or DEFAULT_POSTGRES_SCHEMA)
        return [
            SequenceInfo(
                name=row["sequence_name"],
                data_type=row["data_type"],
                start_value=row["start_value"],
                minimum_value=row["minimum_value"],
                maximum_value=row["maximum_value"],
                increment=row["increment"],
            )
            for row in rows
        ]

    async def list_custom_types(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[CustomTypeInfo]:
        rows = await self._rows(conn, _CUSTOM_TYPES_SQL, schema or DEFAULT_POSTGRES_SCHEMA)
        types = []
        for row in rows:
            values: List[str] = []
            if row["type_category"] == "enum":
                label_rows = await self._rows(conn, _ENUM_LABELS_SQL, row["type_oid"])
                values = [label["enumlabel"] for label in label_rows]
            types.append(
                CustomTypeInfo(name=row["type_name"], category=row["type_category"], values=values)
            )
        return types

    async def list_routines(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[RoutineInfo]:
        rows = await self._rows(conn, _ROUTINES_SQL, schema or DEFAULT_POSTGRES_SCHEMA)
        return [
            RoutineInfo(
                name=row["name"],
                type=row["type"] or "other",
                arguments=row["arguments"],
                return_type=row["return_type"],
                language=row["language"],
            )
            for row in rows
        ]

    async def get_routine_source(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> List[RoutineSource]:
        schema = schema or DEFAULT_POSTGRES_SCHEMA
        rows = await self._rows(conn, _ROUTINE_SOURCE_SQL, schema, name)
        if not rows:
            raise NotFound(f"Function or procedure '{name}' not found in {schema}")
        return [
            RoutineSource(
                name=row["name"], type=row["type"], schema=schema, definition=row["definition"]
            )
            for row in rows
        ]

    async def get_routine_kind(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> Optional[str]:
        prokind = await self._executor.fetch_value(
            conn,
            RenderedStatement(
                _ROUTINE_KIND_SQL, (schema or DEFAULT_POSTGRES_SCHEMA, name), kind="catalog"
            ),
        )
        if prokind is None:
            return None
        return "procedure" if prokind == "p" else "function"


def _index_kind(name: str, definition: str) -> str:
    if name.endswith("_pkey"):
        return "PRIMARY"
    if "UNIQUE INDEX" in (definition or "").upper():
        return "UNIQUE"
    return "INDEX"
