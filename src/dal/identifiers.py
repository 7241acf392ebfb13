"""Identifier sanitization for caller-supplied table, column and order-by tokens.

Identifiers are never bound as parameters, so they are restricted to a
conservative character set before they are spliced into SQL text: ASCII
letters, digits, underscore, space and dot.

``sanitize_identifier`` is the character-set gate. The ``require_*`` helpers
add the structural shape each call site needs on top of it, so a token made
only of safe characters still cannot smuggle extra keywords into a statement
(``users UNION SELECT ...``).
"""

import re
from typing import Optional

from dal.errors import ValidationError

_SAFE_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_ .]+")
_NAME = r"[A-Za-z0-9_]+"
_IDENTIFIER_PATH_RE = re.compile(rf"{_NAME}(?:\.{_NAME}){{0,2}}")
_ORDER_BY_RE = re.compile(
    rf"(?P<column>{_NAME}(?:\.{_NAME}){{0,2}})"
    r"(?:\s+(?P<direction>ASC|DESC))?"
    r"(?:\s+NULLS\s+(?P<nulls>FIRST|LAST))?",
    flags=re.IGNORECASE,
)


def sanitize_identifier(token: str) -> str:
    """Return the trimmed token, or "" when it contains anything unsafe."""
    if not isinstance(token, str):
        return ""
    trimmed = token.strip()
    if not trimmed or not _SAFE_IDENTIFIER_RE.fullmatch(trimmed):
        return ""
    return trimmed


def identifier_path(token: str) -> Optional[str]:
    """Return ``name`` / ``a.b`` / ``a.b.c`` when the token has that shape, else None."""
    sanitized = sanitize_identifier(token)
    if sanitized and _IDENTIFIER_PATH_RE.fullmatch(sanitized):
        return sanitized
    return None


def require_identifier(token: str, kind: str) -> str:
    """Return a sanitized dotted identifier or raise ``ValidationError`` naming ``kind``."""
    path = identifier_path(token)
    if path is None:
        raise ValidationError(f"invalid {kind} identifier: {token!r}")
    return path


def require_name(token: str, kind: str) -> str:
    """Like ``require_identifier`` but for single, undotted names.

    Used for tokens the renderer quotes or qualifies itself (database, schema
    and routine names).
    """
    path = require_identifier(token, kind)
    if "." in path:
        raise ValidationError(f"invalid {kind} identifier: {token!r}")
    return path


def require_order_by(token: str) -> str:
    """Normalize an ORDER BY entry to ``column [ASC|DESC] [NULLS FIRST|LAST]``."""
    sanitized = sanitize_identifier(token)
    match = _ORDER_BY_RE.fullmatch(" ".join(sanitized.split())) if sanitized else None
    if match is None:
        raise ValidationError(f"invalid order_by identifier: {token!r}")
    parts = [match.group("column")]
    if match.group("direction"):
        parts.append(match.group("direction").upper())
    if match.group("nulls"):
        parts.append(f"NULLS {match.group('nulls').upper()}")
    return " ".join(parts)
