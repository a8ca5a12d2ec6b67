"""Insertions batch DuckDB.

Les lignes filles d'une activité (équipes, médailles, armes) sont insérées
via `executemany` plutôt qu'en boucle. Le typage est centralisé dans
CAST_PLAN.

Contrairement à une insertion best-effort, toute erreur est propagée :
l'appelant est dans une transaction et doit pouvoir l'annuler en entier.

Usage :
    from activity_store.data.sync.batch_insert import batch_insert_rows

    batch_insert_rows(conn, "medal_result", medal_rows, MEDAL_RESULT_COLUMNS,
                      extra={"stats_row_id": stats_row_id})
"""

from __future__ import annotations

import logging
import math
from dataclasses import fields, is_dataclass
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Plan de cast
# =============================================================================

# Mapping colonne → type DuckDB attendu, appliqué à l'ingestion
CAST_PLAN: dict[str, dict[str, str]] = {
    "team_result": {
        "activity_row_id": "INTEGER",
        "team_id": "INTEGER",
        "score": "INTEGER",
        "standing": "INTEGER",
    },
    "activity_mode": {
        "activity_row_id": "INTEGER",
        "mode": "INTEGER",
    },
    "medal_result": {
        "stats_row_id": "INTEGER",
        "reference_id": "VARCHAR",
        "count": "INTEGER",
    },
    "weapon_result": {
        "stats_row_id": "INTEGER",
        "reference_id": "BIGINT",
        "kills": "INTEGER",
        "precision_kills": "INTEGER",
        "kills_precision_kills_ratio": "DOUBLE",
    },
}

# Colonnes insérées par table
TEAM_RESULT_COLUMNS = ["activity_row_id", "team_id", "score", "standing"]
ACTIVITY_MODE_COLUMNS = ["activity_row_id", "mode"]
MEDAL_RESULT_COLUMNS = ["stats_row_id", "reference_id", "count"]
WEAPON_RESULT_COLUMNS = [
    "stats_row_id",
    "reference_id",
    "kills",
    "precision_kills",
    "kills_precision_kills_ratio",
]


# =============================================================================
# Fonctions de conversion de type Python
# =============================================================================


def _coerce_value(value: Any, duckdb_type: str) -> Any:
    """Convertit une valeur vers le type du plan (VARCHAR, DOUBLE, INTEGER ou BIGINT).

    Returns:
        Valeur convertie, None si absente, NaN/inf ou inconvertible.
    """
    if value is None:
        return None

    try:
        if duckdb_type == "VARCHAR":
            text = str(value)
            return text or None

        number = value if isinstance(value, int) else float(value)
    except (TypeError, ValueError):
        return None

    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return None
    if duckdb_type == "DOUBLE":
        return float(number)
    return int(number)


def coerce_row_types(row_dict: dict[str, Any], table_name: str) -> dict[str, Any]:
    """Applique le plan de cast à un dictionnaire de row.

    Args:
        row_dict: Dictionnaire colonne→valeur.
        table_name: Nom de la table cible.

    Returns:
        Dictionnaire avec les types corrigés.
    """
    plan = CAST_PLAN.get(table_name, {})
    if not plan:
        return row_dict

    return {col: _coerce_value(val, plan[col]) if col in plan else val for col, val in row_dict.items()}


def _row_to_dict(row: Any, columns: list[str]) -> dict[str, Any]:
    if is_dataclass(row) and not isinstance(row, type):
        return {f.name: getattr(row, f.name, None) for f in fields(row)}
    if isinstance(row, dict):
        return dict(row)
    return {col: getattr(row, col, None) for col in columns}


# =============================================================================
# Insertion batch
# =============================================================================


def batch_insert_rows(
    conn: Any,
    table_name: str,
    rows: list[Any],
    columns: list[str],
    *,
    extra: dict[str, Any] | None = None,
) -> int:
    """Insère des rows en batch via executemany.

    Args:
        conn: Connexion DuckDB.
        table_name: Nom de la table.
        rows: Liste de dataclass ou dicts.
        columns: Liste des colonnes à insérer.
        extra: Valeurs communes ajoutées à chaque row (ex: clé parente).

    Returns:
        Nombre de rows envoyées.

    Raises:
        duckdb.Error: Propagée telle quelle (la transaction appelante l'annule).
    """
    if not rows:
        return 0

    values_list: list[tuple] = []
    for row in rows:
        row_dict = _row_to_dict(row, columns)
        if extra:
            row_dict.update(extra)
        row_dict = coerce_row_types(row_dict, table_name)
        values_list.append(tuple(row_dict.get(col) for col in columns))

    placeholders = ", ".join(["?"] * len(columns))
    col_list = ", ".join(columns)
    sql = f"INSERT INTO {table_name} ({col_list}) VALUES ({placeholders})"

    conn.executemany(sql, values_list)
    logger.debug(f"{len(values_list)} row(s) insérée(s) dans {table_name}")
    return len(values_list)
