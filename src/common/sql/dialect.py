"""Shared utilities for SQL dialect handling.

Canonical dialect IDs (internal, lowercase):
- "postgres" - PostgreSQL
- "mysql" - MySQL / MariaDB

User-Facing Aliases (case-insensitive):
- PostgreSQL: "postgresql", "postgres", "pg"
- MySQL: "mysql", "mariadb"

Example:
    >>> normalize_dialect("PostgreSQL")
    <Dialect.POSTGRES: 'postgres'>
    >>> normalize_dialect("MariaDB").value
    'mysql'
"""

from enum import Enum
from typing import Optional, Union

DEFAULT_POSTGRES_SCHEMA = "public"


class Dialect(str, Enum):
    """SQL dialects supported by the query layer."""

    POSTGRES = "postgres"
    MYSQL = "mysql"

    @property
    def default_port(self) -> int:
        """Return the conventional server port for this dialect."""
        return 5432 if self is Dialect.POSTGRES else 3306

    @property
    def sqlglot_name(self) -> str:
        """Return the dialect name understood by sqlglot."""
        return self.value


DIALECT_ALIASES: dict[str, Dialect] = {
    # PostgreSQL aliases
    "postgresql": Dialect.POSTGRES,
    "postgres": Dialect.POSTGRES,
    "pg": Dialect.POSTGRES,
    # MySQL aliases
    "mysql": Dialect.MYSQL,
    "mariadb": Dialect.MYSQL,
}


def normalize_dialect(value: Optional[Union[str, Dialect]]) -> Dialect:
    """Normalize a dialect value to its canonical form.

    Args:
        value: Raw dialect value (e.g., "PostgreSQL", "pg", "MariaDB").

    Returns:
        The canonical Dialect.

    Raises:
        ValueError: If the value does not name a supported dialect.
    """
    if isinstance(value, Dialect):
        return value
    normalized = (value or "").strip().lower()
    dialect = DIALECT_ALIASES.get(normalized)
    if dialect is None:
        supported = ", ".join(sorted({d.value for d in Dialect}))
        raise ValueError(f"Unsupported database type: '{value}'. Supported: {supported}.")
    return dialect
