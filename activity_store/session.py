"""Session du store d'activités.

Une session possède la connexion au store et le cache de définitions ; elle
construit le moteur de synchronisation et le repository qui les partagent.
Aucun état global : deux sessions sont totalement indépendantes.

Usage:
    async with BungieAPIClient() as client:
        with ActivityStoreSession(StoreConfig(), api=client) as session:
            result = await session.engine.sync(member_id, Platform.STEAM)
            activity = await session.repository.retrieve_last_activity(
                member_id, Platform.STEAM, CharacterClassSelection.ALL, Mode.ALL_PVP
            )
"""

from __future__ import annotations

import logging

from activity_store.config import StoreConfig
from activity_store.data.manifest.resolver import ManifestResolver
from activity_store.data.repositories.activity_repo import ActivityRepository
from activity_store.data.sync.api_client import ActivityAPI
from activity_store.data.sync.engine import ActivitySyncEngine
from activity_store.data.sync.store import ActivityStore

logger = logging.getLogger(__name__)


class ActivityStoreSession:
    """Regroupe store, manifest, moteur et repository d'une session."""

    def __init__(self, config: StoreConfig | None = None, *, api: ActivityAPI | None = None) -> None:
        """
        Args:
            config: Configuration (défauts + environnement si None).
            api: Collaborateur distant (requis pour le moteur de sync).
        """
        self.config = config or StoreConfig()
        self._api = api
        self._store: ActivityStore | None = None
        self._manifest: ManifestResolver | None = None
        self._engine: ActivitySyncEngine | None = None
        self._repository: ActivityRepository | None = None

    @property
    def store(self) -> ActivityStore:
        if self._store is None:
            self._store = ActivityStore(
                self.config.store_path,
                config=self.config.duckdb,
                optimize_on_commit=self.config.optimize_on_commit,
            )
        return self._store

    @property
    def manifest(self) -> ManifestResolver:
        """Cache de définitions, ouvert à la première utilisation.

        Raises:
            ManifestNotFoundError: Si le fichier du manifest est absent.
        """
        if self._manifest is None:
            self._manifest = ManifestResolver(self.config.resolved_manifest_path)
        return self._manifest

    @property
    def engine(self) -> ActivitySyncEngine:
        if self._engine is None:
            if self._api is None:
                raise RuntimeError("Client API requis pour la synchronisation.")
            self._engine = ActivitySyncEngine(
                self.store, self._api, batch_size=self.config.pgcr_batch_size
            )
        return self._engine

    @property
    def repository(self) -> ActivityRepository:
        if self._repository is None:
            self._repository = ActivityRepository(self.store, self.manifest, api=self._api)
        return self._repository

    def close(self) -> None:
        """Ferme le store et le manifest."""
        if self._manifest is not None:
            self._manifest.close()
            self._manifest = None
        if self._store is not None:
            self._store.close()
            self._store = None
        self._engine = None
        self._repository = None
        logger.debug("Session fermée")

    def __enter__(self) -> ActivityStoreSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
