"""Connection settings for the configured database server."""

import logging
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.config.env import get_env_float, get_env_int, get_env_list, get_env_str
from common.sql.dialect import Dialect, normalize_dialect
from dal.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_STATEMENT_TIMEOUT_SECONDS = 30.0


def parse_allowlist(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated database list, trimming and dropping duplicates.

    Order is kept; the first entry is the primary database.
    """
    names = []
    for part in (raw or "").split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


class DatabaseSettings(BaseModel):
    """Immutable server connection settings."""

    model_config = ConfigDict(frozen=True)

    dialect: Dialect = Dialect.POSTGRES
    host: str = "localhost"
    port: int = Field(5432, gt=0)
    user: str = "postgres"
    password: str = Field("", repr=False)
    allowlist: Tuple[str, ...] = ("postgres",)
    pool_min_size: int = Field(1, ge=0)
    pool_max_size: int = Field(10, ge=1)
    statement_timeout_seconds: float = Field(DEFAULT_STATEMENT_TIMEOUT_SECONDS, ge=0)

    @field_validator("allowlist")
    @classmethod
    def _require_databases(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("at least one database name is required")
        return value

    @property
    def primary_database(self) -> str:
        """Database the startup connection is opened against."""
        return self.allowlist[0]


def load_settings_from_env() -> DatabaseSettings:
    """Build ``DatabaseSettings`` from DB_* environment variables.

    Raises:
        ValidationError: When DB_TYPE names an unsupported dialect.
    """
    try:
        dialect = normalize_dialect(get_env_str("DB_TYPE", Dialect.POSTGRES.value))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    names = get_env_list("DB_NAME", ["postgres"]) or ["postgres"]
    allowlist = parse_allowlist(",".join(names))
    if len(allowlist) != len(names):
        logger.warning("Duplicate entries in DB_NAME were ignored: %s", names)

    return DatabaseSettings(
        dialect=dialect,
        host=get_env_str("DB_HOST", "localhost"),
        port=get_env_int("DB_PORT", dialect.default_port),
        user=get_env_str("DB_USER", "postgres"),
        password=get_env_str("DB_PASSWORD", ""),
        allowlist=allowlist,
        pool_min_size=get_env_int("DB_POOL_MIN_SIZE", 1),
        pool_max_size=get_env_int("DB_POOL_MAX_SIZE", 10),
        statement_timeout_seconds=get_env_float(
            "DB_STATEMENT_TIMEOUT_SECONDS", DEFAULT_STATEMENT_TIMEOUT_SECONDS
        ),
    )
