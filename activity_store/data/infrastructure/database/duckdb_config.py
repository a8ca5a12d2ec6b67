"""Réglages d'exécution DuckDB du store et du manifest.

Deux profils : celui du store (512MB par défaut) et celui du lecteur de
manifest (MANIFEST_CONFIG, 256MB). Les variables
ACTIVITY_STORE_DUCKDB_MEMORY_LIMIT et ACTIVITY_STORE_DUCKDB_THREADS
priment sur les valeurs passées au constructeur.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import duckdb

STORE_MEMORY_LIMIT = "512MB"
MANIFEST_MEMORY_LIMIT = "256MB"

ENV_MEMORY_LIMIT = "ACTIVITY_STORE_DUCKDB_MEMORY_LIMIT"
ENV_THREADS = "ACTIVITY_STORE_DUCKDB_THREADS"


@dataclass
class DuckDBConfig:
    """Limite mémoire et nombre de threads d'une connexion.

    threads à None laisse DuckDB choisir.
    """

    memory_limit: str = STORE_MEMORY_LIMIT
    threads: int | None = None

    def __post_init__(self) -> None:
        self.memory_limit = os.environ.get(ENV_MEMORY_LIMIT) or self.memory_limit
        raw_threads = os.environ.get(ENV_THREADS, "").strip()
        if raw_threads.isdigit() and int(raw_threads) > 0:
            self.threads = int(raw_threads)

    def apply(self, conn: duckdb.DuckDBPyConnection) -> None:
        conn.execute(f"SET memory_limit = '{self.memory_limit}'")
        if self.threads is not None:
            conn.execute(f"SET threads = {int(self.threads)}")


MANIFEST_CONFIG = DuckDBConfig(memory_limit=MANIFEST_MEMORY_LIMIT)


def get_attach_sql(
    db_path: str,
    alias: str,
    *,
    read_only: bool = True,
    db_type: str | None = None,
) -> str:
    """Commande ATTACH pour une base externe (manifest SQLite ou DuckDB).

    Le chemin est échappé pour SQL ; db_type ajoute l'option TYPE
    (ex: "SQLITE", qui requiert l'extension sqlite de DuckDB).
    """
    quoted_path = "'" + db_path.replace("'", "''") + "'"
    flags = (["READ_ONLY"] if read_only else []) + ([f"TYPE {db_type}"] if db_type else [])
    suffix = f" ({', '.join(flags)})" if flags else ""
    return f"ATTACH {quoted_path} AS {alias}{suffix}"
