"""Accès bas niveau à DuckDB."""

from activity_store.db.connection import get_connection, transaction

__all__ = ["get_connection", "transaction"]
