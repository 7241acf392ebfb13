"""Filter clause model accepted by SELECT/UPDATE/DELETE operations."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FilterClause(BaseModel):
    """One ``column <op> value`` predicate; clauses are AND-ed in order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    column: str = Field(..., description="Column name")
    op: str = Field(
        "=",
        validation_alias=AliasChoices("op", "operator"),
        description=(
            "Operator: =, !=, <>, <, >, <=, >=, LIKE, ILIKE, IN, NOT IN, BETWEEN, "
            "IS NULL, IS NOT NULL"
        ),
    )
    value: Any = Field(None, description="Value to compare; a list for IN/NOT IN/BETWEEN")
