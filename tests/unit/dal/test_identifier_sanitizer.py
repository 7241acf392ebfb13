"""Tests for identifier sanitization and the structural require_* helpers."""

import pytest

from dal.errors import ValidationError
from dal.identifiers import (
    identifier_path,
    require_identifier,
    require_name,
    require_order_by,
    sanitize_identifier,
)


@pytest.mark.parametrize(
    "token,expected",
    [
        ("users", "users"),
        ("  users  ", "users"),
        ("public.users", "public.users"),
        ("created_at DESC", "created_at DESC"),
        ("Col_9", "Col_9"),
    ],
)
def test_sanitize_accepts_safe_tokens(token, expected):
    assert sanitize_identifier(token) == expected


@pytest.mark.parametrize(
    "token",
    [
        "",
        "   ",
        "users;",
        "users--",
        "a'b",
        'a"b',
        "a`b",
        "a/b",
        "a*b",
        "a\x00b",
        "a\tb",
        "naïve",
        "count(*)",
    ],
)
def test_sanitize_rejects_unsafe_tokens(token):
    assert sanitize_identifier(token) == ""


def test_sanitize_rejects_non_strings():
    assert sanitize_identifier(None) == ""  # type: ignore[arg-type]
    assert sanitize_identifier(42) == ""  # type: ignore[arg-type]


def test_identifier_path_limits_dotted_depth():
    assert identifier_path("a.b.c") == "a.b.c"
    assert identifier_path("a.b.c.d") is None
    assert identifier_path("a..b") is None
    assert identifier_path("users UNION SELECT") is None


def test_require_identifier_names_kind_in_error():
    with pytest.raises(ValidationError, match="invalid table identifier"):
        require_identifier("users; DROP TABLE users", "table")


def test_require_name_rejects_dotted_names():
    assert require_name("public", "schema") == "public"
    with pytest.raises(ValidationError, match="invalid schema identifier"):
        require_name("public.users", "schema")


@pytest.mark.parametrize(
    "token,expected",
    [
        ("id", "id"),
        ("id desc", "id DESC"),
        ("  created_at   ASC ", "created_at ASC"),
        ("t.score DESC NULLS last", "t.score DESC NULLS LAST"),
        ("name nulls first", "name NULLS FIRST"),
    ],
)
def test_require_order_by_normalizes_entries(token, expected):
    assert require_order_by(token) == expected


@pytest.mark.parametrize("token", ["id DESC LIMIT 1", "id; --", "id UNION SELECT 1", ""])
def test_require_order_by_rejects_extra_keywords(token):
    with pytest.raises(ValidationError):
        require_order_by(token)


def test_sanitize_is_idempotent_property():
    pytest.importorskip("hypothesis")
    from hypothesis import given
    from hypothesis import strategies as st

    @given(st.text(max_size=40))
    def check(token):
        once = sanitize_identifier(token)
        assert sanitize_identifier(once) == once
        if once:
            assert all(ch.isascii() and (ch.isalnum() or ch in "_ .") for ch in once)

    check()
