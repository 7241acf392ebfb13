"""Filter clause compilation into dialect-neutral predicate nodes.

The compiler validates operators and values; the renderers in
``dal.rendering`` turn the resulting nodes into SQL text with the active
dialect's placeholders. Clauses are AND-ed in the order given.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from dal.errors import ValidationError
from dal.identifiers import identifier_path
from dal.models.filters import FilterClause

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = {">", ">=", "<", "<="}

# Symbolic operators such as @>, ~* or && and word operators such as NOT LIKE or
# SIMILAR TO. Comment openers and the MySQL logical-OR spellings (|| and XOR)
# are rejected separately.
_SYMBOL_OPERATOR_RE = re.compile(r"[<>=!~@#&|^*+%/-]{1,3}")
_WORD_OPERATOR_RE = re.compile(r"[A-Z]+(?: [A-Z]+){0,2}")
_FORBIDDEN_OPERATOR_TOKENS = ("--", "/*", "*/", "||")
_FORBIDDEN_WORD_OPERATORS = {
    "AND",
    "OR",
    "XOR",
    "UNION",
    "SELECT",
    "FROM",
    "WHERE",
    "INTO",
    "LIMIT",
    "OFFSET",
}


@dataclass(frozen=True)
class Comparison:
    column: str
    operator: str
    value: Any


@dataclass(frozen=True)
class Membership:
    column: str
    values: Tuple[Any, ...]
    negated: bool = False


@dataclass(frozen=True)
class NullCheck:
    column: str
    negated: bool = False


@dataclass(frozen=True)
class Like:
    column: str
    pattern: Any
    case_insensitive: bool = False


@dataclass(frozen=True)
class Between:
    column: str
    low: Any
    high: Any


@dataclass(frozen=True)
class Infix:
    """Pass-through ``column <operator> ?`` for operators outside the fixed table."""

    column: str
    operator: str
    value: Any


Predicate = Union[Comparison, Membership, NullCheck, Like, Between, Infix]


def normalize_operator(op: str) -> str:
    """Uppercase an operator and collapse internal whitespace."""
    return " ".join(str(op or "").upper().split())


def _as_values(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _validate_fallback_operator(op: str) -> str:
    if any(token in op for token in _FORBIDDEN_OPERATOR_TOKENS):
        raise ValidationError(f"unsupported filter operator: {op!r}")
    if _SYMBOL_OPERATOR_RE.fullmatch(op):
        return op
    words = op.split()
    if (
        _WORD_OPERATOR_RE.fullmatch(op)
        and op != "NOT"
        and not set(words) & _FORBIDDEN_WORD_OPERATORS
    ):
        return op
    raise ValidationError(f"unsupported filter operator: {op!r}")


def compile_clause(column: str, op: str, value: Any) -> Predicate:
    """Compile one already-sanitized clause."""
    if op == "=":
        if value is None:
            return NullCheck(column)
        if isinstance(value, (list, tuple)):
            return compile_clause(column, "IN", value)
        return Comparison(column, "=", value)
    if op in ("!=", "<>"):
        if value is None:
            return NullCheck(column, negated=True)
        if isinstance(value, (list, tuple)):
            return compile_clause(column, "NOT IN", value)
        return Comparison(column, "<>", value)
    if op in COMPARISON_OPERATORS:
        return Comparison(column, op, value)
    if op in ("LIKE", "ILIKE"):
        return Like(column, value, case_insensitive=op == "ILIKE")
    if op in ("IN", "NOT IN"):
        values = _as_values(value)
        if not values:
            raise ValidationError(f"{op} filter on {column!r} requires at least one value")
        return Membership(column, values, negated=op == "NOT IN")
    if op == "IS NULL":
        return NullCheck(column)
    if op == "IS NOT NULL":
        return NullCheck(column, negated=True)
    if op == "BETWEEN":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValidationError(
                f"BETWEEN filter on {column!r} requires a two-element [low, high] value"
            )
        return Between(column, value[0], value[1])
    if not op:
        raise ValidationError(f"missing operator for filter on {column!r}")
    return Infix(column, _validate_fallback_operator(op), value)


def _parse_clause(raw: Any) -> FilterClause:
    if isinstance(raw, FilterClause):
        return raw
    try:
        return FilterClause.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"malformed filter clause: {raw!r}") from exc


def parse_filters(filters: Iterable[Union[FilterClause, dict]] | None) -> Tuple[FilterClause, ...]:
    """Validate raw filter dicts into ``FilterClause`` models, keeping order."""
    return tuple(_parse_clause(raw) for raw in filters or ())


def compile_filters(
    filters: Iterable[Union[FilterClause, dict]] | None, strict: bool = False
) -> List[Predicate]:
    """Compile filter clauses into predicate nodes.

    Clauses whose column fails sanitization are dropped, or rejected with
    ``ValidationError`` when ``strict`` is set.
    """
    predicates: List[Predicate] = []
    for raw in filters or ():
        clause = _parse_clause(raw)
        column = identifier_path(clause.column)
        if column is None:
            if strict:
                raise ValidationError(f"invalid filter column: {clause.column!r}")
            logger.info("Dropping filter with invalid column %r", clause.column)
            continue
        predicates.append(compile_clause(column, normalize_operator(clause.op), clause.value))
    return predicates


def bound_values(predicate: Predicate) -> Sequence[Any]:
    """Return the parameter values a predicate binds, in placeholder order."""
    if isinstance(predicate, (Comparison, Infix)):
        return (predicate.value,)
    if isinstance(predicate, Like):
        return (predicate.pattern,)
    if isinstance(predicate, Membership):
        return predicate.values
    if isinstance(predicate, Between):
        return (predicate.low, predicate.high)
    return ()
