"""Accès au store DuckDB des activités.

ActivityStore possède l'unique connexion en lecture/écriture de la session.
Chaque opération d'écriture composite (une activité, une page de file)
s'exécute dans sa propre transaction : elle est appliquée entièrement ou
pas du tout.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import duckdb

from activity_store.data.domain.models.activity import PostGameCarnageReport
from activity_store.data.domain.refdata import Mode, excluded_mode_for
from activity_store.data.infrastructure.database.duckdb_config import DuckDBConfig
from activity_store.data.sync.batch_insert import (
    ACTIVITY_MODE_COLUMNS,
    MEDAL_RESULT_COLUMNS,
    TEAM_RESULT_COLUMNS,
    WEAPON_RESULT_COLUMNS,
    batch_insert_rows,
)
from activity_store.data.sync.migrations import ensure_store_schema
from activity_store.data.sync.models import CharacterActivityStatsRow
from activity_store.data.sync.transformers import (
    transform_activity,
    transform_entry,
    transform_modes,
    transform_team_results,
)
from activity_store.db.connection import open_connection, transaction
from activity_store.errors import ActivityInsertError, QueueUpdateError

logger = logging.getLogger(__name__)

# Colonnes de character_activity_stats renseignées depuis CharacterActivityStatsRow
STATS_COLUMNS = [
    "assists",
    "score",
    "kills",
    "deaths",
    "average_score_per_kill",
    "average_score_per_life",
    "completed",
    "opponents_defeated",
    "activity_duration_seconds",
    "standing",
    "team",
    "completion_reason",
    "start_seconds",
    "time_played_seconds",
    "player_count",
    "team_score",
    "precision_kills",
    "weapon_kills_ability",
    "weapon_kills_grenade",
    "weapon_kills_melee",
    "weapon_kills_super",
    "all_medals_earned",
    "light_level",
]


class ActivityStore:
    """Store DuckDB des activités synchronisées.

    La connexion est ouverte à la première utilisation ; le schéma est
    vérifié (et recréé si sa version diffère) à ce moment-là.

    Usage:
        with ActivityStore("data/activity_store.duckdb") as store:
            member_row_id = store.insert_member("4611686018467260757", 3, "Guardian")
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        config: DuckDBConfig | None = None,
        optimize_on_commit: bool = True,
    ) -> None:
        """
        Args:
            db_path: Chemin vers le fichier .duckdb (ou ":memory:").
            config: Configuration DuckDB appliquée à la connexion.
            optimize_on_commit: Émettre un CHECKPOINT après chaque activité insérée.
        """
        self._db_path = str(db_path)
        self._config = config
        self._optimize_on_commit = optimize_on_commit
        self._connection: duckdb.DuckDBPyConnection | None = None

    @property
    def db_path(self) -> str:
        return self._db_path

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Retourne la connexion (ouverte et schéma vérifié à la demande)."""
        if self._connection is None:
            self._connection = open_connection(self._db_path, config=self._config)
            if ensure_store_schema(self._connection):
                logger.info(f"Schéma du store initialisé: {self._db_path}")
        return self._connection

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._get_connection()

    def query(self, sql: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
        """Exécute une requête et retourne les lignes sous forme de dicts."""
        result = self.connection.execute(sql, params or [])
        columns = [desc[0] for desc in result.description]
        return [dict(zip(columns, row, strict=False)) for row in result.fetchall()]

    def optimize(self) -> None:
        """Indication de compaction best-effort (CHECKPOINT)."""
        if not self._optimize_on_commit:
            return
        try:
            self.connection.execute("CHECKPOINT")
        except duckdb.Error as e:
            logger.debug(f"CHECKPOINT ignoré: {e}")

    # =========================================================================
    # Joueurs et personnages
    # =========================================================================

    def insert_member(self, member_id: str, platform: int, display_name: str) -> int:
        """Upsert d'un joueur : le nom affiché est écrasé (dernière écriture gagne).

        Returns:
            Identifiant de ligne du joueur.
        """
        return self._upsert_member(self.connection, member_id, platform, display_name)

    def insert_character(self, character_id: str, class_type: int, member_row_id: int) -> int:
        """Insère un personnage s'il n'existe pas encore.

        Returns:
            Identifiant de ligne du personnage.
        """
        return self._insert_character(self.connection, character_id, class_type, member_row_id)

    def get_member_row_id(self, member_id: str) -> int | None:
        row = self.connection.execute(
            "SELECT id FROM member WHERE member_id = ?", [member_id]
        ).fetchone()
        return row[0] if row else None

    def get_character_row_id(self, character_id: str, member_row_id: int) -> int | None:
        row = self.connection.execute(
            "SELECT id FROM player_character WHERE character_id = ? AND member_row_id = ?",
            [character_id, member_row_id],
        ).fetchone()
        return row[0] if row else None

    @staticmethod
    def _upsert_member(
        conn: duckdb.DuckDBPyConnection, member_id: str, platform: int, display_name: str
    ) -> int:
        conn.execute(
            """INSERT INTO member (member_id, platform_id, display_name)
               VALUES (?, ?, ?)
               ON CONFLICT (member_id) DO UPDATE SET display_name = excluded.display_name""",
            [member_id, int(platform), display_name],
        )
        return conn.execute("SELECT id FROM member WHERE member_id = ?", [member_id]).fetchone()[0]

    @staticmethod
    def _insert_character(
        conn: duckdb.DuckDBPyConnection, character_id: str, class_type: int, member_row_id: int
    ) -> int:
        conn.execute(
            """INSERT INTO player_character (character_id, member_row_id, class_type)
               VALUES (?, ?, ?)
               ON CONFLICT (character_id, member_row_id) DO NOTHING""",
            [character_id, member_row_id, int(class_type)],
        )
        return conn.execute(
            "SELECT id FROM player_character WHERE character_id = ? AND member_row_id = ?",
            [character_id, member_row_id],
        ).fetchone()[0]

    # =========================================================================
    # Activités
    # =========================================================================

    def count_activities(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM activity").fetchone()[0]

    def get_max_activity_id(self, character_row_id: int, mode: Mode) -> int:
        """Plus grand activity_id stocké pour ce personnage et ce mode.

        Pour un mode public, les activités taguées PRIVATE_MATCHES_ALL sont
        exclues afin que les deux périmètres progressent indépendamment.

        Returns:
            L'identifiant, ou 0 si aucune activité ne correspond.
        """
        row = self.connection.execute(
            """
            SELECT MAX(a.activity_id)
            FROM activity a
            JOIN character_activity_stats s ON s.activity_row_id = a.id
            WHERE s.character_row_id = ?
              AND EXISTS (
                  SELECT 1 FROM activity_mode m WHERE m.activity_row_id = a.id AND m.mode = ?
              )
              AND NOT EXISTS (
                  SELECT 1 FROM activity_mode m WHERE m.activity_row_id = a.id AND m.mode = ?
              )
            """,
            [character_row_id, int(mode), excluded_mode_for(mode)],
        ).fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    def insert_activity(self, pgcr: PostGameCarnageReport, character_row_id: int) -> bool:
        """Insère une activité complète et retire son entrée de file.

        Tout est écrit dans une seule transaction : activité, tags de mode,
        équipes, puis pour chaque joueur l'upsert du joueur et du personnage,
        ses stats, médailles et armes. Une activité déjà présente n'est pas
        réécrite (seule l'entrée de file est retirée).

        Args:
            pgcr: Détail validé de l'activité.
            character_row_id: Personnage dont l'entrée de file est retirée.

        Returns:
            True si l'activité a été insérée, False si elle existait déjà.

        Raises:
            ActivityInsertError: Si une écriture échoue (rien n'est conservé).
        """
        activity_id = pgcr.instance_id
        conn = self.connection
        try:
            with transaction(conn):
                inserted = self._insert_activity_rows(conn, pgcr)
                conn.execute(
                    "DELETE FROM activity_queue WHERE activity_id = ? AND character_row_id = ?",
                    [activity_id, character_row_id],
                )
        except (duckdb.Error, ValueError, TypeError) as e:
            raise ActivityInsertError(activity_id, e) from e

        if inserted:
            self.optimize()
        else:
            logger.debug(f"Activité {activity_id} déjà présente")
        return inserted

    def _insert_activity_rows(
        self, conn: duckdb.DuckDBPyConnection, pgcr: PostGameCarnageReport
    ) -> bool:
        activity = transform_activity(pgcr)
        existing = conn.execute(
            "SELECT id FROM activity WHERE activity_id = ?", [activity.activity_id]
        ).fetchone()
        if existing is not None:
            return False

        activity_row_id = conn.execute(
            """INSERT INTO activity (
                   activity_id, period, mode, platform, director_activity_hash, reference_id
               ) VALUES (?, ?, ?, ?, ?, ?)
               RETURNING id""",
            [
                activity.activity_id,
                activity.period,
                activity.mode,
                activity.platform,
                activity.director_activity_hash,
                activity.reference_id,
            ],
        ).fetchone()[0]

        parent = {"activity_row_id": activity_row_id}
        batch_insert_rows(
            conn, "team_result", transform_team_results(pgcr), TEAM_RESULT_COLUMNS, extra=parent
        )
        batch_insert_rows(
            conn,
            "activity_mode",
            [{"mode": mode} for mode in transform_modes(pgcr)],
            ACTIVITY_MODE_COLUMNS,
            extra=parent,
        )

        for entry in pgcr.entries:
            rows = transform_entry(entry)
            member_row_id = self._upsert_member(conn, rows.member_id, rows.platform, rows.display_name)
            entry_character_row_id = self._insert_character(
                conn, rows.character_id, rows.class_type, member_row_id
            )
            stats_row_id = self._insert_stats(conn, entry_character_row_id, activity_row_id, rows.stats)

            stats_parent = {"stats_row_id": stats_row_id}
            batch_insert_rows(conn, "medal_result", rows.medals, MEDAL_RESULT_COLUMNS, extra=stats_parent)
            batch_insert_rows(
                conn, "weapon_result", rows.weapons, WEAPON_RESULT_COLUMNS, extra=stats_parent
            )

        return True

    @staticmethod
    def _insert_stats(
        conn: duckdb.DuckDBPyConnection,
        character_row_id: int,
        activity_row_id: int,
        stats: CharacterActivityStatsRow,
    ) -> int:
        columns = ["character_row_id", "activity_row_id", *STATS_COLUMNS]
        values = [character_row_id, activity_row_id, *(getattr(stats, c) for c in STATS_COLUMNS)]
        placeholders = ", ".join(["?"] * len(columns))
        return conn.execute(
            f"INSERT INTO character_activity_stats ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING id",
            values,
        ).fetchone()[0]

    # =========================================================================
    # File d'attente
    # =========================================================================

    def add_to_queue(self, character_row_id: int, activity_ids: Iterable[int]) -> int:
        """Ajoute une page d'identifiants à la file, en une seule transaction.

        Les activités déjà stockées et les doublons de file sont ignorés.

        Returns:
            Nombre d'identifiants effectivement considérés pour la file.

        Raises:
            QueueUpdateError: Si une écriture échoue (la page entière est annulée).
        """
        conn = self.connection
        queued = 0
        try:
            with transaction(conn):
                for activity_id in activity_ids:
                    stored = conn.execute(
                        "SELECT 1 FROM activity WHERE activity_id = ?", [activity_id]
                    ).fetchone()
                    if stored is not None:
                        continue
                    conn.execute(
                        """INSERT INTO activity_queue (activity_id, character_row_id)
                           VALUES (?, ?)
                           ON CONFLICT DO NOTHING""",
                        [activity_id, character_row_id],
                    )
                    queued += 1
        except duckdb.Error as e:
            raise QueueUpdateError(
                f"Alimentation de la file annulée (personnage {character_row_id}): {e}"
            ) from e
        return queued

    def get_queued_activity_ids(self, character_row_id: int) -> list[int]:
        """Identifiants en file pour ce personnage, du plus ancien au plus récent."""
        rows = self.connection.execute(
            "SELECT activity_id FROM activity_queue WHERE character_row_id = ? ORDER BY activity_id",
            [character_row_id],
        ).fetchall()
        return [r[0] for r in rows]

    def count_queued(self, character_row_id: int | None = None) -> int:
        """Nombre d'entrées en file (pour un personnage ou au total)."""
        if character_row_id is None:
            return self.connection.execute("SELECT COUNT(*) FROM activity_queue").fetchone()[0]
        return self.connection.execute(
            "SELECT COUNT(*) FROM activity_queue WHERE character_row_id = ?", [character_row_id]
        ).fetchone()[0]

    # =========================================================================
    # Cycle de vie
    # =========================================================================

    def close(self) -> None:
        """Ferme la connexion DuckDB."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> ActivityStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
