from decimal import Decimal

import pytest

from common.sql.dialect import Dialect
from dal.errors import NotFound, ReadOnlyViolation, ValidationError
from dal.executor import StatementExecutor
from dal.guardrails import GuardrailConfig, GuardrailEngine
from dal.mysql.catalog import MysqlCatalogIntrospector
from dal.postgres.catalog import PostgresCatalogIntrospector
from dal.query_service import GuardedQueryService
from tests._support.fake_db import FakeConnection, FakeTarget


def _postgres(conn, **config):
    executor = StatementExecutor(Dialect.POSTGRES)
    return GuardedQueryService(
        Dialect.POSTGRES,
        FakeTarget(conn),
        PostgresCatalogIntrospector(executor),
        executor,
        GuardrailEngine(GuardrailConfig(**config), ("appdb",)),
    )


def _mysql(conn, **config):
    executor = StatementExecutor(Dialect.MYSQL)
    return GuardedQueryService(
        Dialect.MYSQL,
        FakeTarget(conn),
        MysqlCatalogIntrospector(executor),
        executor,
        GuardrailEngine(GuardrailConfig(**config), ("shop",)),
    )


@pytest.mark.asyncio
async def test_postgres_function_returns_single_result_row():
    conn = FakeConnection(values=["f", 42])
    service = _postgres(conn)

    result = await service.execute_routine("appdb", "add_numbers", [40, 2])

    assert conn.calls[1] == ("fetchval", "SELECT public.add_numbers($1, $2) AS result", (40, 2))
    assert result.rows == [{"result": 42}]
    assert result.message == "Function add_numbers executed"


@pytest.mark.asyncio
async def test_postgres_procedure_uses_call_with_schema():
    conn = FakeConnection(values=["p"], rows=[[]])
    service = _postgres(conn)

    result = await service.execute_routine("appdb", "archive", ["2024-01-01"], schema="ops")

    assert conn.calls[0][2] == ("ops", "archive")
    assert conn.calls[1] == ("fetch", "CALL ops.archive($1)", ("2024-01-01",))
    assert result.message == "Procedure archive executed"


@pytest.mark.asyncio
async def test_functions_run_in_read_only_mode_but_procedures_do_not():
    conn = FakeConnection(values=["f", "ok", "p"])
    service = _postgres(conn, read_only=True)

    result = await service.execute_routine("appdb", "status_text")
    assert result.rows == [{"result": "ok"}]

    with pytest.raises(ReadOnlyViolation, match="stored procedures"):
        await service.execute_routine("appdb", "purge")

    assert not any(sql.startswith("CALL") for sql in conn.statements)


@pytest.mark.asyncio
async def test_unknown_routine_is_not_found():
    conn = FakeConnection(values=[None])
    with pytest.raises(NotFound, match="'ghost' not found in public"):
        await _postgres(conn).execute_routine("appdb", "ghost")
    assert len(conn.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["f(); DROP TABLE x", "schema.f", ""])
async def test_routine_names_must_be_plain_identifiers(name):
    conn = FakeConnection()
    with pytest.raises(ValidationError):
        await _postgres(conn).execute_routine("appdb", name)
    assert conn.calls == []


@pytest.mark.asyncio
async def test_mysql_routines_switch_database_and_use_bare_names():
    conn = FakeConnection(database="shop", values=["PROCEDURE"], rows=[[{"done": 1}]])
    service = _mysql(conn)

    result = await service.execute_routine("shop", "refresh_totals", [1, "x"])

    assert conn.used_databases == ["shop"]
    assert conn.calls[-1] == ("fetch", "CALL refresh_totals(?, ?)", (1, "x"))
    assert result.rows == [{"done": 1}]


@pytest.mark.asyncio
async def test_mysql_function_without_params():
    conn = FakeConnection(database="shop", values=["FUNCTION", 7])
    result = await _mysql(conn).execute_routine("shop", "seven")
    assert conn.calls[-1] == ("fetchval", "SELECT seven() AS result", ())
    assert result.rows == [{"result": 7}]


@pytest.mark.asyncio
async def test_function_results_are_normalized():
    conn = FakeConnection(values=["f", Decimal("1.50")])
    result = await _postgres(conn).execute_routine("appdb", "price")
    assert result.rows == [{"result": "1.50"}]
