"""
Centralized settings for widetable.

``WidetableSettings`` is read from ``WIDETABLE_*`` environment variables and
an optional ``.env`` file. Only the values the mapping layer itself needs
live here: logging, the default debug mode of a keyspace, the schema catalog
query used for table introspection, and connection parameters for the
bundled cassandra adapter.

Examples:
    >>> import os
    >>> os.environ["WIDETABLE_TABLES_COLUMN"] = "table_name"
    >>> get_settings(_force_reload=True).tables_column
    'table_name'

Tags:
    settings, configuration, pydantic, environment, widetable
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TABLES_QUERY = (
    "SELECT columnfamily_name FROM system.schema_columnfamilies WHERE keyspace_name = ?"
)
DEFAULT_TABLES_COLUMN = "columnfamily_name"


class WidetableSettings(BaseSettings):
    """widetable configuration.

    All fields can be set via ``WIDETABLE_*`` environment variables (e.g.
    ``WIDETABLE_LOG_LEVEL=DEBUG``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="WIDETABLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")
    debug: bool = Field(default=False, description="Log every statement a keyspace issues")

    # ── Schema catalog ───────────────────────────────────────────
    tables_query: str = Field(
        default=DEFAULT_TABLES_QUERY,
        description="Catalog query listing tables; takes the keyspace name as its only parameter",
    )
    tables_column: str = Field(
        default=DEFAULT_TABLES_COLUMN,
        description="Column of the catalog query holding the table name",
    )

    # ── Cluster ──────────────────────────────────────────────────
    hosts: list[str] = Field(default=["127.0.0.1"])
    port: int = Field(default=9042)
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    keyspace: str = Field(default="")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return fmt


_settings_cache: dict[str, WidetableSettings] = {}


def get_settings(*, _force_reload: bool = False) -> WidetableSettings:
    """Load, validate, and cache a :class:`WidetableSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = WidetableSettings()
    _settings_cache["default"] = settings
    return settings


__all__ = [
    "DEFAULT_TABLES_COLUMN",
    "DEFAULT_TABLES_QUERY",
    "WidetableSettings",
    "get_settings",
]
