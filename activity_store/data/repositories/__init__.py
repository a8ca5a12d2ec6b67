"""Repositories de lecture du store.

- activity_repo.py : ActivityRepository (récupération et projection)
- _polars_bridge.py : conversion des résultats DuckDB en DataFrames Polars
"""

from activity_store.data.repositories.activity_repo import (
    TEAM_NAMES,
    ActivityRepository,
    performances_to_polars,
)

__all__ = ["TEAM_NAMES", "ActivityRepository", "performances_to_polars"]
