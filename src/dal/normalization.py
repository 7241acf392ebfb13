"""Result normalization: driver rows -> ordered dicts of JSON-safe values."""

import datetime
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping


def normalize_value(value: Any) -> Any:
    """Convert a single driver value to a JSON-safe scalar.

    Binary values (MySQL text columns often arrive as bytes) are decoded as
    UTF-8 with replacement characters, so a row never fails to serialize.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(item) for item in value]
    return str(value)


def normalize_row(row: Any) -> Dict[str, Any]:
    """Normalize one row, keeping the driver's column order.

    Accepts ``asyncpg.Record`` (mapping-like with ``items()``) and dict rows.
    """
    items = row.items() if hasattr(row, "items") else dict(row).items()
    return {str(column): normalize_value(value) for column, value in items}


def normalize_rows(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    return [normalize_row(row) for row in rows or ()]


def column_names(rows: List[Dict[str, Any]]) -> List[str]:
    """Column names of a normalized result, in order (empty for no rows)."""
    return list(rows[0].keys()) if rows else []
