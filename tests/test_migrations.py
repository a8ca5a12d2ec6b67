"""Tests du schéma versionné du store."""

from __future__ import annotations

from pathlib import Path

from activity_store.data.sync.migrations import (
    SCHEMA_VERSION,
    STORE_TABLES,
    ensure_store_schema,
    get_schema_version,
    get_table_columns,
    table_exists,
)
from activity_store.data.sync.store import ActivityStore
from activity_store.db.connection import get_connection


class TestEnsureStoreSchema:
    """Tests pour ensure_store_schema."""

    def test_creates_schema_on_empty_db(self, tmp_path: Path) -> None:
        with get_connection(tmp_path / "store.duckdb") as conn:
            assert ensure_store_schema(conn) is True
            for table_name in STORE_TABLES:
                assert table_exists(conn, table_name), table_name
            assert get_schema_version(conn) == SCHEMA_VERSION

    def test_matching_version_keeps_data(self, tmp_path: Path) -> None:
        db_path = tmp_path / "store.duckdb"
        with get_connection(db_path) as conn:
            ensure_store_schema(conn)
            conn.execute(
                "INSERT INTO member (member_id, platform_id, display_name) VALUES ('1', 3, 'A')"
            )

        with get_connection(db_path) as conn:
            assert ensure_store_schema(conn) is False
            assert conn.execute("SELECT COUNT(*) FROM member").fetchone()[0] == 1

    def test_version_mismatch_recreates_store(self, tmp_path: Path) -> None:
        """Une version différente efface toutes les données locales."""
        db_path = tmp_path / "store.duckdb"
        with get_connection(db_path) as conn:
            ensure_store_schema(conn)
            conn.execute(
                "INSERT INTO member (member_id, platform_id, display_name) VALUES ('1', 3, 'A')"
            )
            conn.execute("UPDATE schema_version SET version = ?", [SCHEMA_VERSION + 1])

        with get_connection(db_path) as conn:
            assert ensure_store_schema(conn) is True
            assert conn.execute("SELECT COUNT(*) FROM member").fetchone()[0] == 0
            assert get_schema_version(conn) == SCHEMA_VERSION

    def test_foreign_tables_are_replaced(self, tmp_path: Path) -> None:
        """Une base sans marqueur de version est recréée avec le schéma courant."""
        db_path = tmp_path / "store.duckdb"
        with get_connection(db_path) as conn:
            conn.execute("CREATE TABLE member (legacy VARCHAR)")

        with get_connection(db_path) as conn:
            assert ensure_store_schema(conn) is True
            assert "member_id" in get_table_columns(conn, "member")
            assert "legacy" not in get_table_columns(conn, "member")

    def test_sequences_restart_after_recreate(self, tmp_path: Path) -> None:
        db_path = tmp_path / "store.duckdb"
        with get_connection(db_path) as conn:
            ensure_store_schema(conn)
            conn.execute(
                "INSERT INTO member (member_id, platform_id, display_name) VALUES ('1', 3, 'A')"
            )
            conn.execute("DELETE FROM schema_version")

        with get_connection(db_path) as conn:
            ensure_store_schema(conn)
            row_id = conn.execute(
                "INSERT INTO member (member_id, platform_id, display_name) "
                "VALUES ('2', 3, 'B') RETURNING id"
            ).fetchone()[0]
            assert row_id == 1


class TestStoreOpening:
    """Le store vérifie le schéma à la première utilisation."""

    def test_store_initializes_schema_lazily(self, store_path: Path) -> None:
        store = ActivityStore(store_path, optimize_on_commit=False)
        try:
            assert not store_path.exists()
            assert store.count_activities() == 0
            assert store_path.exists()
        finally:
            store.close()
