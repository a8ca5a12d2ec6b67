"""Gestion des connexions et des transactions DuckDB.

Une seule connexion en lecture/écriture est ouverte par session ; les
transactions sont le seul mécanisme de contrôle de concurrence.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import duckdb

    from activity_store.data.infrastructure.database.duckdb_config import DuckDBConfig

logger = logging.getLogger(__name__)


def open_connection(
    db_path: Path | str,
    *,
    read_only: bool = False,
    config: DuckDBConfig | None = None,
) -> duckdb.DuckDBPyConnection:
    """Ouvre une connexion DuckDB configurée.

    Le dossier parent est créé si nécessaire (hors lecture seule).

    Args:
        db_path: Chemin vers le fichier .duckdb (ou ":memory:").
        read_only: Ouvrir en lecture seule.
        config: Configuration DuckDB à appliquer (optionnelle).

    Returns:
        Connexion DuckDB ouverte.
    """
    import duckdb

    db_str = str(db_path)
    if db_str != ":memory:" and not read_only:
        Path(db_str).parent.mkdir(parents=True, exist_ok=True)

    conn = duckdb.connect(db_str, read_only=read_only)
    if config is not None:
        config.apply(conn)
    return conn


@contextmanager
def get_connection(
    db_path: Path | str,
    *,
    read_only: bool = False,
    config: DuckDBConfig | None = None,
) -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """Context manager pour obtenir une connexion DuckDB.

    Args:
        db_path: Chemin vers le fichier .duckdb.
        read_only: Ouvrir en lecture seule.
        config: Configuration DuckDB à appliquer (optionnelle).

    Yields:
        Connexion DuckDB ouverte, fermée en sortie.

    Exemple:
        with get_connection("activity_store.duckdb") as con:
            con.execute("SELECT COUNT(*) FROM activity")
    """
    con = open_connection(db_path, read_only=read_only, config=config)
    try:
        yield con
    finally:
        con.close()


@contextmanager
def transaction(
    conn: duckdb.DuckDBPyConnection,
) -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """Portée transactionnelle : commit en sortie normale, rollback sur exception.

    L'exception d'origine est toujours propagée après le rollback.

    Args:
        conn: Connexion DuckDB ouverte (hors transaction).

    Yields:
        La même connexion, dans une transaction ouverte.
    """
    conn.begin()
    try:
        yield conn
    except BaseException:
        conn.rollback()
        logger.debug("Transaction annulée (rollback)")
        raise
    else:
        conn.commit()
