"""Module de synchronisation API → DuckDB.

Ce module gère le pipeline de synchronisation piloté par file :
API Bungie → validation Pydantic → file d'attente → DuckDB

Architecture:
- api_client.py : contrat ActivityAPI et client aiohttp avec retry
- transformers.py : transformation PGCR → rows DuckDB
- store.py : accès transactionnel au store (ActivityStore)
- engine.py : orchestrateur ActivitySyncEngine
- migrations.py : schéma versionné
- models.py : SyncResult et rows

Usage:
    from activity_store.data.sync import ActivityStore, ActivitySyncEngine, BungieAPIClient

    with ActivityStore("activity_store.duckdb") as store:
        async with BungieAPIClient() as client:
            engine = ActivitySyncEngine(store, client)
            result = await engine.sync("4611686018467260757", Platform.STEAM)
            print(result.to_message())
"""

from activity_store.data.sync.api_client import (
    ActivityAPI,
    BungieAPIClient,
    get_api_key_from_env,
    request_with_retries,
)
from activity_store.data.sync.engine import ActivitySyncEngine
from activity_store.data.sync.migrations import SCHEMA_VERSION, ensure_store_schema
from activity_store.data.sync.models import SyncResult
from activity_store.data.sync.store import ActivityStore

__all__ = [
    "SCHEMA_VERSION",
    "ActivityAPI",
    "ActivityStore",
    "ActivitySyncEngine",
    "BungieAPIClient",
    "SyncResult",
    "ensure_store_schema",
    "get_api_key_from_env",
    "request_with_retries",
]
