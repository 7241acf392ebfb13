"""Pydantic models describing catalog (metadata) query results."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ColumnInfo(BaseModel):
    """Column definition as reported by information_schema."""

    name: str
    type: str = Field(..., description="Data type including length/precision when known")
    nullable: bool = True
    default: Optional[str] = None
    primary_key: bool = False
    key: Optional[str] = Field(None, description="MySQL COLUMN_KEY (PRI, UNI, MUL)")
    extra: Optional[str] = Field(None, description="MySQL EXTRA (e.g. auto_increment)")


class ForeignKeyInfo(BaseModel):
    column: str
    foreign_schema: Optional[str] = None
    foreign_table: str
    foreign_column: str


class IndexInfo(BaseModel):
    name: str
    kind: str = Field("INDEX", description="INDEX, UNIQUE or PRIMARY")
    definition: Optional[str] = None
    columns: List[str] = Field(default_factory=list)


class TableSchema(BaseModel):
    """Full description of one table."""

    database: str
    schema_name: Optional[str] = Field(None, alias="schema")
    table: str
    columns: List[ColumnInfo] = Field(default_factory=list)
    foreign_keys: List[ForeignKeyInfo] = Field(default_factory=list)
    indexes: List[IndexInfo] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class SequenceInfo(BaseModel):
    """A Postgres sequence, or a MySQL auto_increment column."""

    name: str
    data_type: Optional[str] = None
    table: Optional[str] = None
    column: Optional[str] = None
    start_value: Optional[str] = None
    minimum_value: Optional[str] = None
    maximum_value: Optional[str] = None
    increment: Optional[str] = None


class CustomTypeInfo(BaseModel):
    name: str
    category: str = Field(..., description="enum, composite or domain")
    values: List[str] = Field(default_factory=list, description="Enum labels in sort order")


class RoutineInfo(BaseModel):
    name: str
    type: str = Field(..., description="function, procedure, aggregate or window")
    arguments: Optional[str] = None
    return_type: Optional[str] = None
    language: Optional[str] = None
    created: Optional[str] = None
    last_altered: Optional[str] = None


class RoutineSource(BaseModel):
    name: str
    type: str
    schema_name: Optional[str] = Field(None, alias="schema")
    definition: str

    model_config = {"populate_by_name": True}


def format_column_type(row: Dict[str, Any]) -> str:
    """Append length or precision/scale to a data type when the catalog reports one.

    ``row`` is an information_schema.columns row with lowercase keys.
    """
    data_type = str(row["data_type"])
    max_length = row.get("character_maximum_length")
    precision = row.get("numeric_precision")
    scale = row.get("numeric_scale")
    if max_length is not None:
        return f"{data_type}({max_length})"
    if precision is not None and data_type.lower() in {"numeric", "decimal"}:
        if scale is not None:
            return f"{data_type}({precision},{scale})"
        return f"{data_type}({precision})"
    return data_type
