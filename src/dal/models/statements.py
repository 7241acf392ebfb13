"""Immutable statement specifications handed to the dialect renderers.

Column/value maps are stored as tuples of pairs so declared insertion order is
preserved and the specs stay hashable.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from dal.models.filters import FilterClause

ColumnValues = Tuple[Tuple[str, Any], ...]


def column_values(values: Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]) -> ColumnValues:
    """Freeze a mapping (or sequence of pairs) into ordered column/value pairs."""
    items = values.items() if isinstance(values, Mapping) else values
    return tuple((column, value) for column, value in items)


@dataclass(frozen=True)
class SelectSpec:
    table: str
    schema: Optional[str] = None
    columns: Tuple[str, ...] = ()
    filters: Tuple[FilterClause, ...] = ()
    order_by: Tuple[str, ...] = ()
    # None renders no LIMIT; 0 is a real cap.
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class CountSpec:
    """``SELECT COUNT(*)`` over the same WHERE clause as a pending mutation."""

    table: str
    schema: Optional[str] = None
    filters: Tuple[FilterClause, ...] = ()


@dataclass(frozen=True)
class InsertSpec:
    table: str
    values: ColumnValues
    schema: Optional[str] = None


@dataclass(frozen=True)
class UpdateSpec:
    table: str
    values: ColumnValues
    filters: Tuple[FilterClause, ...]
    schema: Optional[str] = None

    def count_spec(self) -> CountSpec:
        return CountSpec(table=self.table, schema=self.schema, filters=self.filters)


@dataclass(frozen=True)
class DeleteSpec:
    table: str
    filters: Tuple[FilterClause, ...]
    schema: Optional[str] = None

    def count_spec(self) -> CountSpec:
        return CountSpec(table=self.table, schema=self.schema, filters=self.filters)


@dataclass(frozen=True)
class RawSpec:
    """Caller-authored SQL, passed through unmodified."""

    query: str
    params: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class RoutineCallSpec:
    name: str
    schema: Optional[str] = None
    params: Tuple[Any, ...] = ()
    is_procedure: bool = False


StatementSpec = Union[
    SelectSpec, CountSpec, InsertSpec, UpdateSpec, DeleteSpec, RawSpec, RoutineCallSpec
]


@dataclass(frozen=True)
class RenderedStatement:
    """Concrete SQL text plus its positional parameters.

    The Nth placeholder in ``sql`` binds ``params[N-1]``.
    """

    sql: str
    params: Tuple[Any, ...] = field(default_factory=tuple)
    kind: str = "query"
