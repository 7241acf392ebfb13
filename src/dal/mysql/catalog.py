from typing import Any, Dict, List, Optional

from dal.errors import NotFound, UnsupportedOperation
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
from dal.mysql.quoting import qualified_table

SOURCE_NOT_AVAILABLE = "Source code not available"

_TABLES_SQL = """
    SELECT TABLE_NAME AS table_name
    FROM information_schema.TABLES
    WHERE TABLE_SCHEMA = ?
    ORDER BY TABLE_NAME
"""

_COLUMNS_SQL = """
    SELECT
        COLUMN_NAME AS column_name,
        DATA_TYPE AS data_type,
        IS_NULLABLE AS is_nullable,
        COLUMN_DEFAULT AS column_default,
        COLUMN_KEY AS column_key,
        EXTRA AS extra,
        CHARACTER_MAXIMUM_LENGTH AS character_maximum_length,
        NUMERIC_PRECISION AS numeric_precision,
        NUMERIC_SCALE AS numeric_scale
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ?
    ORDER BY ORDINAL_POSITION
"""

_FOREIGN_KEYS_SQL = """
    SELECT
        COLUMN_NAME AS column_name,
        REFERENCED_TABLE_SCHEMA AS foreign_schema,
        REFERENCED_TABLE_NAME AS foreign_table,
        REFERENCED_COLUMN_NAME AS foreign_column
    FROM information_schema.KEY_COLUMN_USAGE
    WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? AND REFERENCED_TABLE_NAME IS NOT NULL
    ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION
"""

_SEQUENCES_SQL = """
    SELECT
        TABLE_NAME AS table_name,
        COLUMN_NAME AS column_name,
        DATA_TYPE AS data_type
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = ? AND EXTRA LIKE '%auto_increment%'
    ORDER BY TABLE_NAME
"""

_ROUTINES_SQL = """
    SELECT
        ROUTINE_NAME AS name,
        ROUTINE_TYPE AS type,
        DTD_IDENTIFIER AS return_type,
        CREATED AS created,
        LAST_ALTERED AS last_altered
    FROM information_schema.ROUTINES
    WHERE ROUTINE_SCHEMA = ?
    ORDER BY ROUTINE_NAME
"""

_ROUTINE_SOURCE_SQL = """
    SELECT
        ROUTINE_NAME AS name,
        ROUTINE_TYPE AS type,
        ROUTINE_DEFINITION AS definition
    FROM information_schema.ROUTINES
    WHERE ROUTINE_SCHEMA = ? AND ROUTINE_NAME = ?
"""

_ROUTINE_KIND_SQL = """
    SELECT ROUTINE_TYPE
    FROM information_schema.ROUTINES
    WHERE ROUTINE_SCHEMA = ? AND ROUTINE_NAME = ?
    LIMIT 1
"""


class MysqlCatalogIntrospector:
    """Catalog queries against MySQL's information_schema.

    MySQL has no schemas below the database, so ``schema`` arguments are
    ignored and every lookup is scoped by the database name.
    """

    supports_custom_types = False

    def __init__(self, executor: StatementExecutor) -> None:
        self._executor = executor

    async def _rows(self, conn: Any, sql: str, *params: Any) -> List[Dict[str, Any]]:
        return await self._executor.fetch_rows(
            conn, RenderedStatement(sql, tuple(params), kind="catalog")
        )

    async def list_tables(self, conn: Any, database: str, schema: Optional[str]) -> List[str]:
        rows = await self._rows(conn, _TABLES_SQL, database)
        return [row["table_name"] for row in rows]

    async def describe_table(
        self, conn: Any, database: str, table: str, schema: Optional[str]
    ) -> TableSchema:
        column_rows = await self._rows(conn, _COLUMNS_SQL, database, table)
        if not column_rows:
            raise NotFound(f"table '{table}' not found in {database}")
        fk_rows = await self._rows(conn, _FOREIGN_KEYS_SQL, database, table)
        index_rows = await self._rows(conn, f"SHOW INDEX FROM {qualified_table(database, table)}")

        columns = [
            ColumnInfo(
                name=row["column_name"],
                type=format_column_type(row),
                nullable=row["is_nullable"] == "YES",
                default=row["column_default"],
                primary_key=row["column_key"] == "PRI",
                key=row["column_key"] or None,
                extra=row["extra"] or None,
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
        return TableSchema(
            database=database,
            table=table,
            columns=columns,
            foreign_keys=foreign_keys,
            indexes=group_show_index_rows(index_rows),
        )

    async def list_sequences(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[SequenceInfo]:
        rows = await self._rows(conn, _SEQUENCES_SQL, database)
        return [
            SequenceInfo(
                name=f"{row['table_name']}.{row['column_name']}",
                data_type=row["data_type"],
                table=row["table_name"],
                column=row["column_name"],
            )
            for row in rows
        ]

    async def list_custom_types(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[CustomTypeInfo]:
        raise UnsupportedOperation("Custom types are only supported in PostgreSQL")

    async def list_routines(
        self, conn: Any, database: str, schema: Optional[str]
    ) -> List[RoutineInfo]:
        rows = await self._rows(conn, _ROUTINES_SQL, database)
        return [
            RoutineInfo(
                name=row["name"],
                type=str(row["type"]).lower(),
                return_type=row["return_type"],
                created=row["created"],
                last_altered=row["last_altered"],
            )
            for row in rows
        ]

    async def get_routine_source(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> List[RoutineSource]:
        rows = await self._rows(conn, _ROUTINE_SOURCE_SQL, database, name)
        if not rows:
            raise NotFound(f"Function or procedure '{name}' not found in {database}")
        return [
            RoutineSource(
                name=row["name"],
                type=str(row["type"]).lower(),
                schema=database,
                definition=row["definition"] or SOURCE_NOT_AVAILABLE,
            )
            for row in rows
        ]

    async def get_routine_kind(
        self, conn: Any, database: str, name: str, schema: Optional[str]
    ) -> Optional[str]:
        routine_type = await self._executor.fetch_value(
            conn, RenderedStatement(_ROUTINE_KIND_SQL, (database, name), kind="catalog")
        )
        if routine_type is None:
            return None
        return "procedure" if str(routine_type).upper() == "PROCEDURE" else "function"


def group_show_index_rows(rows: List[Dict[str, Any]]) -> List[IndexInfo]:
    """Fold ``SHOW INDEX`` output (one row per indexed column) into indexes."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for row in sorted(rows, key=lambda r: (r["Key_name"], int(r["Seq_in_index"]))):
        name = row["Key_name"]
        entry = grouped.setdefault(name, {"unique": str(row["Non_unique"]) == "0", "columns": []})
        entry["columns"].append(row["Column_name"])

    indexes = []
    for name, entry in grouped.items():
        if name == "PRIMARY":
            kind = "PRIMARY"
        elif entry["unique"]:
            kind = "UNIQUE"
        else:
            kind = "INDEX"
        indexes.append(IndexInfo(name=name, kind=kind, columns=entry["columns"]))
    return indexes
