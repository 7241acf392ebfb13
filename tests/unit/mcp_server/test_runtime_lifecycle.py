import pytest

from common.sql.dialect import Dialect
from dal.config import DatabaseSettings
from dal.executor import StatementExecutor
from dal.factory import build_query_service
from dal.guardrails import GuardrailConfig, GuardrailEngine
from dal.mysql.query_target import MysqlQueryTarget
from dal.postgres.catalog import PostgresCatalogIntrospector
from dal.postgres.query_target import PostgresQueryTarget
from dal.query_service import GuardedQueryService
from mcp_server.runtime import QueryRuntime
from tests._support.fake_db import FakeTarget


def _fake_service(settings, guardrail_config):
    executor = StatementExecutor(settings.dialect)
    return GuardedQueryService(
        settings.dialect,
        FakeTarget(),
        PostgresCatalogIntrospector(executor),
        executor,
        GuardrailEngine(guardrail_config, settings.allowlist),
    )


@pytest.fixture
def fake_builder(monkeypatch):
    built = []

    def build(settings, guardrail_config):
        service = _fake_service(settings, guardrail_config)
        built.append(service)
        return service

    monkeypatch.setattr("mcp_server.runtime.build_query_service", build)
    return built


def test_get_service_before_init_raises():
    QueryRuntime.set_service(None)
    with pytest.raises(RuntimeError, match="not initialized"):
        QueryRuntime.get_service()
    assert QueryRuntime.get_provider() is None


@pytest.mark.asyncio
async def test_init_opens_target_once_and_close_releases_it(fake_builder):
    QueryRuntime.set_service(None)
    settings = DatabaseSettings(allowlist=("appdb",))

    first = await QueryRuntime.init(settings, GuardrailConfig())
    second = await QueryRuntime.init(settings, GuardrailConfig())

    assert first is second
    assert len(fake_builder) == 1
    assert first.target.initialized is True
    assert QueryRuntime.get_provider() == "postgres"

    await QueryRuntime.close()

    assert first.target.closed is True
    with pytest.raises(RuntimeError):
        QueryRuntime.get_service()


@pytest.mark.asyncio
async def test_init_reads_environment_when_not_given_settings(fake_builder, monkeypatch):
    QueryRuntime.set_service(None)
    monkeypatch.setenv("DB_NAME", "appdb,analytics")
    monkeypatch.setenv("DB_READONLY", "true")

    service = await QueryRuntime.init()

    assert service.list_databases() == ["appdb", "analytics"]
    assert service.guardrails.config.read_only is True


@pytest.mark.asyncio
async def test_failed_target_init_leaves_runtime_empty(monkeypatch):
    QueryRuntime.set_service(None)

    class BrokenTarget(FakeTarget):
        async def init(self):
            raise ConnectionRefusedError("db down")

    def build(settings, guardrail_config):
        service = _fake_service(settings, guardrail_config)
        service.target = BrokenTarget()
        return service

    monkeypatch.setattr("mcp_server.runtime.build_query_service", build)

    with pytest.raises(ConnectionRefusedError):
        await QueryRuntime.init(DatabaseSettings(allowlist=("appdb",)), GuardrailConfig())

    assert QueryRuntime.get_provider() is None


@pytest.mark.asyncio
async def test_invalid_guardrail_env_fails_startup(fake_builder, monkeypatch):
    QueryRuntime.set_service(None)
    monkeypatch.setenv("DB_READONLY", "sometimes")

    with pytest.raises(ValueError):
        await QueryRuntime.init(DatabaseSettings(allowlist=("appdb",)))

    assert fake_builder == []


@pytest.mark.parametrize(
    "dialect,target_cls",
    [(Dialect.POSTGRES, PostgresQueryTarget), (Dialect.MYSQL, MysqlQueryTarget)],
)
def test_factory_selects_target_by_dialect(dialect, target_cls):
    settings = DatabaseSettings(dialect=dialect, allowlist=("appdb",))

    service = build_query_service(settings, GuardrailConfig(max_select_limit=5))

    assert isinstance(service.target, target_cls)
    assert service.provider == dialect.value
    assert service.guardrails.clamp_select_limit(50) == 5
