from typing import Any, List, Optional, Sequence, Tuple


def translate_qmark_params(
    sql: str, params: Sequence[Any]
) -> Tuple[str, Optional[List[Any]]]:
    """Translate ``?`` placeholders to the ``%s`` format style aiomysql expects.

    ``?`` inside quoted strings, quoted identifiers and comments is left alone.
    Literal ``%`` characters are doubled so the driver's ``%`` formatting
    reproduces them. When there are no params the SQL is returned unchanged
    with ``None`` so the driver skips formatting entirely.

    Raises:
        ValueError: If the placeholder count does not match the param count.
    """
    if not params:
        if _placeholder_count(sql):
            raise ValueError("MySQL query has ? placeholders but no params were supplied.")
        return sql, None

    out: List[str] = []
    count = 0
    for chunk, is_code in _split_sql(sql):
        if not is_code:
            out.append(chunk.replace("%", "%%"))
            continue
        for char in chunk:
            if char == "?":
                out.append("%s")
                count += 1
            elif char == "%":
                out.append("%%")
            else:
                out.append(char)

    if count != len(params):
        raise ValueError(
            f"Placeholder/parameter mismatch: {count} placeholder(s) for {len(params)} param(s)."
        )
    return "".join(out), list(params)


def _placeholder_count(sql: str) -> int:
    return sum(chunk.count("?") for chunk, is_code in _split_sql(sql) if is_code)


def _split_sql(sql: str) -> List[Tuple[str, bool]]:
    """Split SQL into (chunk, is_code) pieces; quoted text and comments are not code."""
    pieces: List[Tuple[str, bool]] = []
    i = 0
    start = 0
    length = len(sql)
    while i < length:
        char = sql[i]
        end = None
        if char in ("'", '"', "`"):
            end = _quoted_end(sql, i, char)
        elif sql.startswith("--", i) or char == "#":
            newline = sql.find("\n", i)
            end = length if newline == -1 else newline
        elif sql.startswith("/*", i):
            close = sql.find("*/", i + 2)
            end = length if close == -1 else close + 2
        if end is None:
            i += 1
            continue
        if start < i:
            pieces.append((sql[start:i], True))
        pieces.append((sql[i:end], False))
        i = start = end
    if start < length:
        pieces.append((sql[start:], True))
    return pieces


def _quoted_end(sql: str, start: int, quote: str) -> int:
    i = start + 1
    while i < len(sql):
        char = sql[i]
        if char == "\\" and quote != "`":
            i += 2
            continue
        if char == quote:
            if i + 1 < len(sql) and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)
