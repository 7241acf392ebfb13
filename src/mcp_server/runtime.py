"""Process-level holder for the guarded query service.

FastMCP tool handlers are plain functions with JSON-schema friendly
signatures, so the service built during the server lifespan is published
here and looked up by each handler.
"""

import logging
from typing import Optional

from dal.config import DatabaseSettings, load_settings_from_env
from dal.factory import build_query_service
from dal.guardrails import GuardrailConfig
from dal.query_service import GuardedQueryService

logger = logging.getLogger(__name__)


class QueryRuntime:
    """Owns the single ``GuardedQueryService`` of the running server."""

    _service: Optional[GuardedQueryService] = None

    @classmethod
    async def init(
        cls,
        settings: Optional[DatabaseSettings] = None,
        guardrail_config: Optional[GuardrailConfig] = None,
    ) -> GuardedQueryService:
        """Build the service from the environment and open the primary pool.

        Failure to open the primary pool propagates: the server must not start
        without a working connection.
        """
        if cls._service is not None:
            return cls._service

        settings = settings or load_settings_from_env()
        guardrail_config = guardrail_config or GuardrailConfig.from_env()
        service = build_query_service(settings, guardrail_config)
        await service.target.init()

        logger.info(
            "Connected to %s at %s:%s (databases: %s)",
            settings.dialect.value,
            settings.host,
            settings.port,
            ", ".join(settings.allowlist),
        )
        logger.info(
            "Guardrails: read_only=%s allow_raw_query=%s max_select=%d max_update=%d "
            "max_delete=%d strict_filter_columns=%s transactional_guard=%s",
            guardrail_config.read_only,
            guardrail_config.allow_raw_query,
            guardrail_config.max_select_limit,
            guardrail_config.max_update_limit,
            guardrail_config.max_delete_limit,
            guardrail_config.strict_filter_columns,
            guardrail_config.transactional_mutation_guard,
        )
        cls._service = service
        return service

    @classmethod
    async def close(cls) -> None:
        service, cls._service = cls._service, None
        if service is not None:
            await service.target.close()

    @classmethod
    def set_service(cls, service: Optional[GuardedQueryService]) -> None:
        """Install (or clear) a pre-built service."""
        cls._service = service

    @classmethod
    def get_service(cls) -> GuardedQueryService:
        if cls._service is None:
            raise RuntimeError("Query service not initialized. Call QueryRuntime.init().")
        return cls._service

    @classmethod
    def get_provider(cls) -> Optional[str]:
        """Return the active dialect name, or None before initialization."""
        return cls._service.provider if cls._service is not None else None
