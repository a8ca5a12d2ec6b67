"""Configuration DuckDB."""

from activity_store.data.infrastructure.database.duckdb_config import (
    MANIFEST_CONFIG,
    DuckDBConfig,
    get_attach_sql,
)

__all__ = ["MANIFEST_CONFIG", "DuckDBConfig", "get_attach_sql"]
