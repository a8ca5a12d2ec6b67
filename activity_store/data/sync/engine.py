"""Moteur de synchronisation API → DuckDB.

Ce module orchestre la synchronisation incrémentale pilotée par file :

1. Découverte : pour chaque périmètre (parties privées, puis PvP public),
   les activités plus récentes que la dernière stockée sont ajoutées à la
   file d'attente du personnage.
2. Vidage : les activités en file sont récupérées par lots concurrents
   (PGCR) puis insérées une par une, chacune dans sa propre transaction.

Une activité dont la récupération ou l'insertion échoue reste en file et
sera retentée au prochain sync.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from activity_store.config import DEFAULT_PGCR_BATCH_SIZE
from activity_store.data.domain.models.activity import PostGameCarnageReport
from activity_store.data.domain.models.player import CharacterInfo
from activity_store.data.domain.refdata import (
    EXCLUDED_DIRECTOR_ACTIVITY_HASHES,
    SYNC_SCOPES,
    Mode,
    Platform,
)
from activity_store.data.sync.api_client import ActivityAPI
from activity_store.data.sync.models import SyncResult
from activity_store.data.sync.store import ActivityStore
from activity_store.errors import ActivityInsertError, ActivityStoreError

logger = logging.getLogger(__name__)

# Nombre de passes découverte + vidage par personnage
SYNC_PASSES = 2


def _chunks(items: list[int], size: int) -> list[list[int]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class ActivitySyncEngine:
    """Moteur de synchronisation API → store DuckDB.

    Un seul flux asyncio : les récupérations sont concurrentes à
    l'intérieur d'un lot, toutes les écritures sont séquentielles sur
    l'unique connexion du store.
    """

    def __init__(
        self,
        store: ActivityStore,
        api: ActivityAPI,
        *,
        batch_size: int = DEFAULT_PGCR_BATCH_SIZE,
    ) -> None:
        """
        Args:
            store: Store DuckDB (connexion de la session).
            api: Collaborateur distant.
            batch_size: Nombre de PGCR récupérés en parallèle par lot.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size doit être >= 1 (reçu {batch_size})")
        self._store = store
        self._api = api
        self._batch_size = batch_size

    # =========================================================================
    # Synchronisation complète
    # =========================================================================

    async def sync(self, member_id: str, platform: Platform) -> SyncResult:
        """Synchronise toutes les activités Crucible d'un joueur.

        Pour chaque personnage : deux passes découverte (privé puis public)
        suivies d'un vidage de la file.

        Args:
            member_id: Identifiant du compte.
            platform: Plateforme du compte.

        Returns:
            SyncResult (total_synced, total_in_queue, erreurs non fatales).

        Raises:
            ApiError: Si le roster du joueur ne peut pas être récupéré.
        """
        result = SyncResult(started_at=datetime.now(timezone.utc))
        start_time = time.time()

        player = await self._api.fetch_roster(member_id, platform)
        member_row_id = self._store.insert_member(member_id, int(platform), player.display_name)
        logger.info(f"Sync de {player.display_name or member_id}: {len(player.characters)} personnage(s)")

        for character in player.characters:
            character_row_id = self._store.insert_character(
                character.character_id, int(character.class_type), member_row_id
            )
            for _ in range(SYNC_PASSES):
                result.errors.extend(
                    await self.update_activity_queue(
                        member_id, platform, character, character_row_id
                    )
                )
                result = result + await self.sync_activities(character_row_id)

            result.total_in_queue += self._store.count_queued(character_row_id)

        result.finished_at = datetime.now(timezone.utc)
        result.duration_seconds = time.time() - start_time
        logger.info(result.to_message())
        return result

    # =========================================================================
    # Découverte
    # =========================================================================

    async def update_activity_queue(
        self,
        member_id: str,
        platform: Platform,
        character: CharacterInfo,
        character_row_id: int,
    ) -> list[str]:
        """Alimente la file pour chaque périmètre (privé puis public).

        Un échec (API ou transaction) n'interrompt que son périmètre.

        Returns:
            Messages d'erreur des périmètres en échec.
        """
        errors: list[str] = []
        for mode in SYNC_SCOPES:
            try:
                await self._update_activity_queue(
                    member_id, platform, character.character_id, character_row_id, mode
                )
            except ActivityStoreError as e:
                message = f"Découverte {mode.name} ({character.character_id}): {e}"
                logger.warning(message)
                errors.append(message)
        return errors

    async def _update_activity_queue(
        self,
        member_id: str,
        platform: Platform,
        character_id: str,
        character_row_id: int,
        mode: Mode,
    ) -> int:
        since_id = self._store.get_max_activity_id(character_row_id, mode)
        logger.debug(f"[{mode.name}] personnage {character_id}: depuis {since_id}")

        activities = await self._api.fetch_events_since(
            member_id, character_id, platform, mode, since_id
        )
        if not activities:
            logger.debug(f"[{mode.name}] aucune nouvelle activité")
            return 0

        # Du plus ancien au plus récent
        activity_ids = [
            a.activity_details.instance_id
            for a in reversed(activities)
            if a.activity_details.director_activity_hash not in EXCLUDED_DIRECTOR_ACTIVITY_HASHES
        ]
        queued = self._store.add_to_queue(character_row_id, activity_ids)
        logger.info(f"[{mode.name}] {queued} nouvelle(s) activité(s) en file")
        return queued

    # =========================================================================
    # Vidage
    # =========================================================================

    async def sync_activities(self, character_row_id: int) -> SyncResult:
        """Vide la file d'un personnage par lots concurrents.

        Chaque lot est terminé avant de lancer le suivant. Un échec de
        récupération ou d'insertion laisse l'activité en file.

        Returns:
            SyncResult (total_synced, total_available, erreurs).
        """
        result = SyncResult()
        activity_ids = self._store.get_queued_activity_ids(character_row_id)
        if not activity_ids:
            return result

        result.total_available = len(activity_ids)
        logger.info(f"{len(activity_ids)} activité(s) à synchroniser")

        for batch in _chunks(activity_ids, self._batch_size):
            details = await asyncio.gather(
                *(self._api.fetch_event_detail(activity_id) for activity_id in batch),
                return_exceptions=True,
            )
            for activity_id, detail in zip(batch, details, strict=True):
                if isinstance(detail, BaseException):
                    logger.warning(f"Récupération du PGCR {activity_id} échouée: {detail}")
                    continue
                if detail is None:
                    logger.warning(f"PGCR {activity_id} : réponse vide")
                    continue
                if self._insert(detail, activity_id, character_row_id, result):
                    result.total_synced += 1

            logger.info(f"{result.total_synced} sur {result.total_available} synchronisée(s)")

        return result

    def _insert(
        self,
        detail: PostGameCarnageReport,
        activity_id: int,
        character_row_id: int,
        result: SyncResult,
    ) -> bool:
        if detail.instance_id != activity_id:
            logger.warning(
                f"PGCR {activity_id} : identifiant inattendu {detail.instance_id}, ignoré"
            )
            return False
        try:
            self._store.insert_activity(detail, character_row_id)
        except ActivityInsertError as e:
            logger.warning(str(e))
            result.errors.append(str(e))
            return False
        return True
