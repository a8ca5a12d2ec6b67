"""Conversion des résultats DuckDB en DataFrames Polars.

La conversion passe par fetchall() : aucune dépendance Arrow n'est requise.

Usage dans les repositories :
    from activity_store.data.repositories._polars_bridge import result_to_polars

    result = conn.execute("SELECT ...")
    df = result_to_polars(result)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl

if TYPE_CHECKING:
    import duckdb


def result_to_polars(
    result: duckdb.DuckDBPyConnection,
    *,
    schema: dict[str, pl.DataType] | None = None,
) -> pl.DataFrame:
    """Convertit le résultat courant d'une requête DuckDB en DataFrame Polars.

    Args:
        result: Connexion (ou curseur) après conn.execute(...).
        schema: Types Polars à appliquer (utilisés aussi pour un résultat vide).

    Returns:
        DataFrame Polars, avec les colonnes de la requête même si vide.
    """
    columns = [desc[0] for desc in result.description]
    rows = result.fetchall()
    if not rows:
        if schema is not None:
            return pl.DataFrame(schema=schema)
        return pl.DataFrame(schema=dict.fromkeys(columns, pl.Null))
    return pl.DataFrame(rows, schema=schema or columns, orient="row")
