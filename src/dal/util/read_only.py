"""Statement classification helpers for raw SQL text."""

import re

import sqlglot
from sqlglot import exp

from common.sql.dialect import Dialect

ALLOWED_STATEMENT_TYPES = {"select", "union", "intersect", "except", "with"}

_ROW_RETURNING_PREFIX = {"SELECT", "WITH", "SHOW", "EXPLAIN", "DESCRIBE", "DESC", "VALUES", "TABLE"}
_INTROSPECTION_KEYWORDS = {"SHOW", "EXPLAIN", "DESCRIBE", "DESC"}
_SQL_COMMENT_RE = re.compile(r"(--[^\n]*|/\*.*?\*/)", flags=re.DOTALL)
_RETURNING_RE = re.compile(r"\bRETURNING\b", flags=re.IGNORECASE)
_MUTATION_KEYWORD_RE = re.compile(
    r"\b(?:INSERT|UPDATE|DELETE|MERGE|CREATE|DROP|ALTER|TRUNCATE|CALL)\b",
    flags=re.IGNORECASE,
)
_FORBIDDEN_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Drop,
    exp.Alter,
    exp.Create,
    exp.Command,
    exp.Grant,
    exp.Merge,
    exp.TruncateTable,
)


def strip_sql_comments(sql: str) -> str:
    """Remove line and block comments and surrounding whitespace."""
    return _SQL_COMMENT_RE.sub(" ", sql).strip()


def leading_keyword(sql: str) -> str:
    """Return the first keyword of a statement, uppercased ("" when empty)."""
    stripped = strip_sql_comments(sql).lstrip("(")
    if not stripped:
        return ""
    return stripped.split(maxsplit=1)[0].upper().rstrip(";")


def is_mutating_sql(sql: str, dialect: Dialect) -> bool:
    """Best-effort detection of mutating SQL statements.

    Multi-statement payloads, unparsable text and anything other than a plain
    query are treated as mutating.
    """
    if not isinstance(sql, str) or not sql.strip():
        return True

    stripped = strip_sql_comments(sql)
    try:
        expressions = sqlglot.parse(stripped, read=dialect.sqlglot_name)
    except Exception:
        expressions = None

    if expressions:
        expressions = [expression for expression in expressions if expression is not None]
        if len(expressions) != 1:
            return True
        expression = expressions[0]
        if expression.key not in ALLOWED_STATEMENT_TYPES:
            return _introspection_mutates(stripped)
        return any(isinstance(node, _FORBIDDEN_NODES) for node in expression.walk())

    # Fallback lexical guard for parser failures.
    first_token = leading_keyword(stripped)
    if not first_token:
        return True
    if first_token in _INTROSPECTION_KEYWORDS:
        return _introspection_mutates(stripped)
    return first_token not in _ROW_RETURNING_PREFIX


def _introspection_mutates(stripped: str) -> bool:
    keyword = leading_keyword(stripped)
    if keyword == "EXPLAIN":
        # EXPLAIN ANALYZE runs the explained statement.
        return bool(_MUTATION_KEYWORD_RE.search(stripped))
    return keyword not in _INTROSPECTION_KEYWORDS


def returns_rows(sql: str, dialect: Dialect) -> bool:
    """Return True when a raw statement should be run as a row-returning query."""
    keyword = leading_keyword(sql)
    if keyword in _ROW_RETURNING_PREFIX:
        return True
    if dialect is Dialect.POSTGRES and keyword in {"INSERT", "UPDATE", "DELETE"}:
        return bool(_RETURNING_RE.search(strip_sql_comments(sql)))
    return False
