"""Tests for guardrail configuration and policy checks."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from common.sql.dialect import Dialect
from dal.errors import AccessDenied, RawQueryDisabled, ReadOnlyViolation, RowLimitExceeded
from dal.guardrails import GuardrailConfig, GuardrailEngine
from dal.models.statements import RenderedStatement


def _engine(**overrides):
    return GuardrailEngine(GuardrailConfig(**overrides), ("appdb", "analytics"))


def test_config_defaults():
    config = GuardrailConfig.from_env()
    assert config.read_only is False
    assert config.allow_raw_query is False
    assert config.max_select_limit == 1000
    assert config.max_update_limit == 1
    assert config.max_delete_limit == 1
    assert config.strict_filter_columns is False
    assert config.transactional_mutation_guard is False


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("DB_READONLY", "true")
    monkeypatch.setenv("ALLOW_RAW_QUERY", "1")
    monkeypatch.setenv("MAX_SELECT_LIMIT", "50")
    monkeypatch.setenv("MAX_UPDATE_LIMIT", "5")
    monkeypatch.setenv("MAX_DELETE_LIMIT", "")
    monkeypatch.setenv("MUTATION_GUARD_TRANSACTION", "yes")
    config = GuardrailConfig.from_env()
    assert config.read_only is True
    assert config.allow_raw_query is True
    assert config.max_select_limit == 50
    assert config.max_update_limit == 5
    assert config.max_delete_limit == 1
    assert config.transactional_mutation_guard is True


def test_invalid_limits_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("MAX_SELECT_LIMIT", "lots")
    monkeypatch.setenv("MAX_UPDATE_LIMIT", "-3")
    config = GuardrailConfig.from_env()
    assert config.max_select_limit == 1000
    assert config.max_update_limit == 1


def test_unparsable_boolean_is_rejected(monkeypatch):
    monkeypatch.setenv("DB_READONLY", "maybe")
    with pytest.raises(ValueError, match="DB_READONLY"):
        GuardrailConfig.from_env()


def test_config_is_frozen():
    config = GuardrailConfig()
    with pytest.raises(Exception):
        config.read_only = True  # type: ignore[misc]


def test_check_database_requires_exact_member():
    engine = _engine()
    assert engine.check_database("appdb") == "appdb"
    for name in ("APPDB", "appdb ", "other", ""):
        with pytest.raises(AccessDenied) as exc_info:
            engine.check_database(name)
        assert "not allowed" in str(exc_info.value)


def test_check_writable_only_blocks_in_read_only_mode():
    _engine().check_writable("INSERT")
    with pytest.raises(ReadOnlyViolation, match="INSERT operations are not allowed"):
        _engine(read_only=True).check_writable("INSERT")


def test_raw_gate():
    with pytest.raises(RawQueryDisabled, match="ALLOW_RAW_QUERY=true"):
        _engine().check_raw_enabled()
    _engine(allow_raw_query=True).check_raw_enabled()


@pytest.mark.parametrize(
    "sql",
    [
        "DELETE FROM users",
        "SELECT 1; DROP TABLE users",
        "CREATE TABLE t (id int)",
        "EXPLAIN ANALYZE DELETE FROM users",
    ],
)
def test_raw_statement_blocks_mutations_in_read_only_mode(sql):
    engine = _engine(read_only=True, allow_raw_query=True)
    with pytest.raises(ReadOnlyViolation, match="Only SELECT queries are allowed"):
        engine.check_raw_statement(sql, Dialect.POSTGRES)


@pytest.mark.parametrize(
    "sql",
    ["SELECT * FROM users", "  -- note\nSELECT 1", "WITH a AS (SELECT 1) SELECT * FROM a"],
)
def test_raw_statement_allows_reads_in_read_only_mode(sql):
    _engine(read_only=True, allow_raw_query=True).check_raw_statement(sql, Dialect.MYSQL)


def test_raw_statement_is_not_analyzed_when_writable():
    _engine(allow_raw_query=True).check_raw_statement("DROP TABLE users", Dialect.POSTGRES)


@pytest.mark.parametrize(
    "requested,expected",
    [(None, 100), (0, 100), (-5, 100), (1, 1), (100, 100), (101, 100), (42, 42)],
)
def test_clamp_select_limit(requested, expected):
    assert _engine(max_select_limit=100).clamp_select_limit(requested) == expected


@pytest.mark.asyncio
async def test_preflight_within_cap_returns_count():
    executor = MagicMock()
    executor.fetch_value = AsyncMock(return_value=2)
    engine = _engine(max_update_limit=2)
    statement = RenderedStatement("SELECT COUNT(*) AS row_count FROM t WHERE id = $1", (1,))

    assert await engine.preflight_mutation(executor, object(), statement, "UPDATE") == 2


@pytest.mark.asyncio
async def test_preflight_over_cap_raises_with_counts():
    executor = MagicMock()
    executor.fetch_value = AsyncMock(return_value=3)
    engine = _engine(max_delete_limit=1)

    with pytest.raises(RowLimitExceeded) as exc_info:
        await engine.preflight_mutation(executor, object(), RenderedStatement("x"), "DELETE")

    err = exc_info.value
    assert (err.operation, err.matched, err.limit) == ("DELETE", 3, 1)
    assert "exceeds the maximum limit of 1" in err.message


@pytest.mark.asyncio
async def test_preflight_treats_null_count_as_zero():
    executor = MagicMock()
    executor.fetch_value = AsyncMock(return_value=None)
    assert await _engine().preflight_mutation(executor, None, RenderedStatement("x"), "UPDATE") == 0


def test_rejections_are_counted():
    with patch("dal.guardrails.dal_metrics.add_counter") as mock_add_counter:
        with pytest.raises(AccessDenied):
            _engine().check_database("nope", "SELECT")

    mock_add_counter.assert_called_once()
    assert mock_add_counter.call_args.args[0] == "dal.guardrail.rejections_total"
    assert mock_add_counter.call_args.kwargs["attributes"] == {
        "reason": "access_denied",
        "operation": "SELECT",
    }
