import pytest

from common.config.env import get_env_bool, get_env_float, get_env_int, get_env_list, get_env_str
from common.sql.dialect import Dialect, normalize_dialect


def test_blank_values_count_as_unset(monkeypatch):
    monkeypatch.setenv("SOME_VALUE", "   ")
    assert get_env_str("SOME_VALUE", "fallback") == "fallback"
    assert get_env_int("SOME_VALUE", 3) == 3
    assert get_env_bool("SOME_VALUE", True) is True
    assert get_env_list("SOME_VALUE", ["x"]) == ["x"]


def test_required_values_raise(monkeypatch):
    monkeypatch.delenv("MISSING_VALUE", raising=False)
    with pytest.raises(KeyError, match="MISSING_VALUE"):
        get_env_str("MISSING_VALUE", required=True)


def test_numeric_parsing_falls_back_on_garbage(monkeypatch):
    monkeypatch.setenv("SOME_INT", " 42 ")
    assert get_env_int("SOME_INT") == 42
    monkeypatch.setenv("SOME_INT", "4x2")
    assert get_env_int("SOME_INT", 7) == 7
    monkeypatch.setenv("SOME_FLOAT", "2.5")
    assert get_env_float("SOME_FLOAT") == 2.5


@pytest.mark.parametrize(
    "raw,expected", [("TRUE", True), ("on", True), ("0", False), ("No", False)]
)
def test_bool_parsing(monkeypatch, raw, expected):
    monkeypatch.setenv("SOME_FLAG", raw)
    assert get_env_bool("SOME_FLAG") is expected


def test_bool_parsing_is_strict(monkeypatch):
    monkeypatch.setenv("SOME_FLAG", "enabled")
    with pytest.raises(ValueError):
        get_env_bool("SOME_FLAG", False)


def test_list_parsing_drops_empties(monkeypatch):
    monkeypatch.setenv("SOME_LIST", "a, b,,c ")
    assert get_env_list("SOME_LIST") == ["a", "b", "c"]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres", Dialect.POSTGRES),
        ("PostgreSQL", Dialect.POSTGRES),
        (" pg ", Dialect.POSTGRES),
        ("mysql", Dialect.MYSQL),
        ("MariaDB", Dialect.MYSQL),
        (Dialect.MYSQL, Dialect.MYSQL),
    ],
)
def test_normalize_dialect(raw, expected):
    assert normalize_dialect(raw) is expected


@pytest.mark.parametrize("raw", ["sqlite", "", None])
def test_normalize_dialect_rejects_unknown(raw):
    with pytest.raises(ValueError, match="Unsupported database type"):
        normalize_dialect(raw)


def test_dialect_properties():
    assert Dialect.POSTGRES.default_port == 5432
    assert Dialect.MYSQL.default_port == 3306
    assert Dialect.MYSQL.sqlglot_name == "mysql"
