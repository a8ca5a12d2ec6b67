"""Schéma DuckDB du store d'activités et gestion de version.

Le schéma est versionné par un marqueur unique (table schema_version).
À l'ouverture, si le marqueur est absent ou différent de SCHEMA_VERSION,
toutes les tables du store sont supprimées puis recréées : il n'existe
pas de migration colonne par colonne et les données locales sont perdues.
Elles seront reconstruites par la synchronisation suivante.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import duckdb

logger = logging.getLogger(__name__)

# Version courante du schéma : à incrémenter à chaque changement de DDL
SCHEMA_VERSION = 1

# Tables du store, dans l'ordre de suppression
STORE_TABLES: tuple[str, ...] = (
    "activity_queue",
    "weapon_result",
    "medal_result",
    "character_activity_stats",
    "team_result",
    "activity_mode",
    "activity",
    "player_character",
    "member",
    "schema_version",
)

# Séquences des identifiants de lignes
STORE_SEQUENCES: tuple[str, ...] = (
    "seq_member_id",
    "seq_character_id",
    "seq_activity_id",
    "seq_team_result_id",
    "seq_stats_id",
)


STORE_SCHEMA_DDL = """
CREATE SEQUENCE seq_member_id START 1;
CREATE SEQUENCE seq_character_id START 1;
CREATE SEQUENCE seq_activity_id START 1;
CREATE SEQUENCE seq_team_result_id START 1;
CREATE SEQUENCE seq_stats_id START 1;

-- Joueur (Actor) : le nom affiché est écrasé à chaque upsert
CREATE TABLE member (
    id INTEGER PRIMARY KEY DEFAULT nextval('seq_member_id'),
    member_id VARCHAR NOT NULL UNIQUE,
    platform_id INTEGER NOT NULL,
    display_name VARCHAR
);

-- Personnage (Roster Entry) : insertion ignorée si déjà présent
CREATE TABLE player_character (
    id INTEGER PRIMARY KEY DEFAULT nextval('seq_character_id'),
    character_id VARCHAR NOT NULL,
    member_row_id INTEGER NOT NULL,
    class_type INTEGER NOT NULL,
    UNIQUE (character_id, member_row_id)
);

-- Activité (Event) : period en UTC sans fuseau
CREATE TABLE activity (
    id INTEGER PRIMARY KEY DEFAULT nextval('seq_activity_id'),
    activity_id BIGINT NOT NULL UNIQUE,
    period TIMESTAMP NOT NULL,
    mode INTEGER NOT NULL,
    platform INTEGER NOT NULL,
    director_activity_hash BIGINT NOT NULL,
    reference_id BIGINT NOT NULL
);
CREATE INDEX idx_activity_period ON activity(period);

-- Tags de mode d'une activité
CREATE TABLE activity_mode (
    activity_row_id INTEGER NOT NULL,
    mode INTEGER NOT NULL,
    PRIMARY KEY (activity_row_id, mode)
);
CREATE INDEX idx_activity_mode_mode ON activity_mode(mode);

-- Résultat d'équipe : id conserve l'ordre d'insertion
CREATE TABLE team_result (
    id INTEGER PRIMARY KEY DEFAULT nextval('seq_team_result_id'),
    activity_row_id INTEGER NOT NULL,
    team_id INTEGER NOT NULL,
    score INTEGER NOT NULL,
    standing INTEGER NOT NULL
);
CREATE INDEX idx_team_result_activity ON team_result(activity_row_id);

-- Résultat d'un personnage pour une activité
CREATE TABLE character_activity_stats (
    id INTEGER PRIMARY KEY DEFAULT nextval('seq_stats_id'),
    character_row_id INTEGER NOT NULL,
    activity_row_id INTEGER NOT NULL,
    assists INTEGER NOT NULL,
    score INTEGER NOT NULL,
    kills INTEGER NOT NULL,
    deaths INTEGER NOT NULL,
    average_score_per_kill DOUBLE NOT NULL,
    average_score_per_life DOUBLE NOT NULL,
    completed BOOLEAN NOT NULL,
    opponents_defeated INTEGER NOT NULL,
    activity_duration_seconds INTEGER NOT NULL,
    standing INTEGER NOT NULL,
    team INTEGER NOT NULL,
    completion_reason INTEGER NOT NULL,
    start_seconds INTEGER NOT NULL,
    time_played_seconds INTEGER NOT NULL,
    player_count INTEGER NOT NULL,
    team_score INTEGER NOT NULL,
    precision_kills INTEGER NOT NULL,
    weapon_kills_ability INTEGER NOT NULL,
    weapon_kills_grenade INTEGER NOT NULL,
    weapon_kills_melee INTEGER NOT NULL,
    weapon_kills_super INTEGER NOT NULL,
    all_medals_earned INTEGER NOT NULL,
    light_level INTEGER NOT NULL,
    UNIQUE (character_row_id, activity_row_id)
);
CREATE INDEX idx_stats_activity ON character_activity_stats(activity_row_id);

-- Médailles (clé = statId du manifest)
CREATE TABLE medal_result (
    stats_row_id INTEGER NOT NULL,
    reference_id VARCHAR NOT NULL,
    count INTEGER NOT NULL
);
CREATE INDEX idx_medal_result_stats ON medal_result(stats_row_id);

-- Armes (référence = hash d'objet)
CREATE TABLE weapon_result (
    stats_row_id INTEGER NOT NULL,
    reference_id BIGINT NOT NULL,
    kills INTEGER NOT NULL,
    precision_kills INTEGER NOT NULL,
    kills_precision_kills_ratio DOUBLE NOT NULL
);
CREATE INDEX idx_weapon_result_stats ON weapon_result(stats_row_id);

-- File des activités découvertes mais pas encore insérées
CREATE TABLE activity_queue (
    activity_id BIGINT NOT NULL,
    character_row_id INTEGER NOT NULL,
    PRIMARY KEY (activity_id, character_row_id)
);

CREATE TABLE schema_version (
    version INTEGER NOT NULL
);
"""


def table_exists(conn: duckdb.DuckDBPyConnection, table_name: str) -> bool:
    """Vérifie si une table existe dans le schéma main.

    Args:
        conn: Connexion DuckDB.
        table_name: Nom de la table.

    Returns:
        True si la table existe.
    """
    result = conn.execute(
        "SELECT COUNT(*) FROM information_schema.tables "
        "WHERE table_schema = 'main' AND table_name = ?",
        [table_name],
    ).fetchone()
    return bool(result and result[0] > 0)


def get_table_columns(conn: duckdb.DuckDBPyConnection, table_name: str) -> set[str]:
    """Retourne l'ensemble des noms de colonnes d'une table.

    Args:
        conn: Connexion DuckDB.
        table_name: Nom de la table.

    Returns:
        Ensemble des noms de colonnes (vide si la table n'existe pas).
    """
    cols = conn.execute(
        "SELECT column_name FROM information_schema.columns "
        "WHERE table_schema = 'main' AND table_name = ?",
        [table_name],
    ).fetchall()
    return {r[0] for r in cols}


def get_schema_version(conn: duckdb.DuckDBPyConnection) -> int | None:
    """Lit le marqueur de version du schéma.

    Returns:
        La version enregistrée, ou None si la table est absente ou vide.
    """
    if not table_exists(conn, "schema_version"):
        return None
    row = conn.execute("SELECT max(version) FROM schema_version").fetchone()
    return row[0] if row else None


def drop_store_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Supprime toutes les tables et séquences du store."""
    for table_name in STORE_TABLES:
        conn.execute(f"DROP TABLE IF EXISTS {table_name}")
    for sequence_name in STORE_SEQUENCES:
        conn.execute(f"DROP SEQUENCE IF EXISTS {sequence_name}")


def create_store_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Crée toutes les tables du store et écrit le marqueur de version.

    Le marqueur est écrit en dernier : un schéma incomplet sera recréé
    à l'ouverture suivante.
    """
    for stmt in STORE_SCHEMA_DDL.split(";"):
        stmt = stmt.strip()
        if stmt:
            conn.execute(stmt)
    conn.execute("INSERT INTO schema_version (version) VALUES (?)", [SCHEMA_VERSION])


def ensure_store_schema(conn: duckdb.DuckDBPyConnection) -> bool:
    """S'assure que le schéma est à la version courante.

    Args:
        conn: Connexion DuckDB en lecture/écriture.

    Returns:
        True si le schéma a été (re)créé.
    """
    import duckdb

    try:
        version = get_schema_version(conn)
    except duckdb.Error as e:
        logger.warning(f"Lecture de la version du schéma impossible: {e}")
        version = None

    if version == SCHEMA_VERSION:
        return False

    if version is None:
        logger.info(f"Création du schéma du store (version {SCHEMA_VERSION})")
    else:
        logger.warning(
            f"Version du schéma {version} != {SCHEMA_VERSION} : "
            "recréation complète du store (données locales supprimées)"
        )

    drop_store_schema(conn)
    create_store_schema(conn)
    return True
