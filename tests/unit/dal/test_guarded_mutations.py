import pytest

from common.sql.dialect import Dialect
from dal.errors import RowLimitExceeded
from dal.executor import StatementExecutor
from dal.guardrails import GuardrailConfig, GuardrailEngine
from dal.mysql.catalog import MysqlCatalogIntrospector
from dal.postgres.catalog import PostgresCatalogIntrospector
from dal.query_service import GuardedQueryService
from tests._support.fake_db import FakeConnection, FakeTarget


def _service(conn, dialect=Dialect.POSTGRES, allowlist=("appdb",), **config):
    executor = StatementExecutor(dialect)
    catalog = (
        PostgresCatalogIntrospector(executor)
        if dialect is Dialect.POSTGRES
        else MysqlCatalogIntrospector(executor)
    )
    return GuardedQueryService(
        dialect,
        FakeTarget(conn),
        catalog,
        executor,
        GuardrailEngine(GuardrailConfig(**config), allowlist),
    )


@pytest.mark.asyncio
async def test_update_counts_with_the_same_where_clause_before_writing():
    conn = FakeConnection(values=[1], statuses=["UPDATE 1"])
    service = _service(conn)

    result = await service.update(
        "appdb",
        "users",
        {"name": "bo"},
        [{"column": "id", "op": "=", "value": 7}, {"column": "deleted_at", "op": "IS NULL"}],
    )

    assert conn.calls == [
        (
            "fetchval",
            "SELECT COUNT(*) AS row_count FROM users WHERE id = $1 AND deleted_at IS NULL",
            (7,),
        ),
        ("execute", "UPDATE users SET name = $1 WHERE id = $2 AND deleted_at IS NULL", ("bo", 7)),
    ]
    assert result.affected == 1
    assert result.message == "Updated 1 row(s) in appdb.users"


@pytest.mark.asyncio
async def test_delete_over_cap_is_never_issued():
    conn = FakeConnection(values=[3])
    service = _service(conn, max_delete_limit=2)

    with pytest.raises(RowLimitExceeded) as excinfo:
        await service.delete("appdb", "users", [{"column": "age", "op": ">", "value": 60}])

    assert excinfo.value.matched == 3
    assert excinfo.value.limit == 2
    assert [method for method, _, _ in conn.calls] == ["fetchval"]


@pytest.mark.asyncio
async def test_default_caps_allow_exactly_one_row():
    conn = FakeConnection(values=[1, 2], statuses=["DELETE 1"])
    service = _service(conn)

    deleted = await service.delete("appdb", "users", [{"column": "id", "value": 1}])
    assert deleted.message == "Deleted 1 row(s) from appdb.users"

    with pytest.raises(RowLimitExceeded, match="UPDATE"):
        await service.update("appdb", "users", {"a": 1}, [{"column": "team", "value": "x"}])


@pytest.mark.asyncio
async def test_zero_cap_rejects_any_match():
    conn = FakeConnection(values=[1])
    service = _service(conn, max_update_limit=0)

    with pytest.raises(RowLimitExceeded):
        await service.update("appdb", "users", {"a": 1}, [{"column": "id", "value": 1}])


@pytest.mark.asyncio
async def test_zero_matches_still_runs_the_mutation():
    conn = FakeConnection(values=[0], statuses=["DELETE 0"])
    service = _service(conn)

    result = await service.delete("appdb", "users", [{"column": "id", "value": 404}])

    assert result.affected == 0
    assert conn.calls[-1][0] == "execute"


@pytest.mark.asyncio
async def test_transactional_guard_rolls_back_when_affected_exceeds_cap():
    # The count passes but a concurrent writer grew the matching set.
    conn = FakeConnection(values=[1], statuses=["DELETE 2"])
    service = _service(conn, transactional_mutation_guard=True)

    with pytest.raises(RowLimitExceeded):
        await service.delete("appdb", "users", [{"column": "team", "value": "x"}])

    assert conn.transactions == 1
    assert conn.rolled_back == 1


@pytest.mark.asyncio
async def test_transactional_guard_commits_within_cap():
    conn = FakeConnection(values=[1], statuses=["UPDATE 1"])
    service = _service(conn, transactional_mutation_guard=True)

    result = await service.update("appdb", "users", {"a": 2}, [{"column": "id", "value": 1}])

    assert result.affected == 1
    assert conn.transactions == 1
    assert conn.rolled_back == 0


@pytest.mark.asyncio
async def test_mysql_mutations_use_qmark_placeholders_and_qualified_tables():
    conn = FakeConnection(database="shop", values=[1], statuses=["DELETE 1"])
    service = _service(conn, Dialect.MYSQL, allowlist=("shop",))

    await service.delete("shop", "items", [{"column": "sku", "op": "IN", "value": ["a", "b"]}])

    assert conn.calls == [
        (
            "fetchval",
            "SELECT COUNT(*) AS row_count FROM `shop`.`items` WHERE sku IN (?, ?)",
            ("a", "b"),
        ),
        ("execute", "DELETE FROM `shop`.`items` WHERE sku IN (?, ?)", ("a", "b")),
    ]
