"""Client API Bungie asynchrone.

Ce module fournit :
- ActivityAPI : contrat attendu par le moteur de synchronisation et les repositories
- BungieAPIClient : implémentation aiohttp de ce contrat
- request_with_retries : retry avec backoff exponentiel

Usage:
    async with BungieAPIClient() as client:
        player = await client.fetch_roster("4611686018467260757", Platform.STEAM)
        pgcr = await client.fetch_event_detail(12345678901)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from aiohttp import ClientError, ClientResponseError, ClientSession, ClientTimeout
from pydantic import ValidationError

from activity_store.data.domain.models.activity import ActivitySummary, PostGameCarnageReport
from activity_store.data.domain.models.player import CharacterInfo, CharacterSnapshot, PlayerInfo
from activity_store.data.domain.refdata import Mode, Platform
from activity_store.errors import ApiError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration et helpers
# =============================================================================

API_BASE_URL = "https://www.bungie.net/Platform"
STATS_BASE_URL = "https://stats.bungie.net/Platform"

# Nombre maximum d'activités par page d'historique (limite de l'API)
ACTIVITY_PAGE_SIZE = 250

# Nombre maximum d'activités retournées par fetch_events_since
DEFAULT_MAX_ACTIVITIES = 1000

# Composants du profil : Profiles (100) et Characters (200)
PROFILE_COMPONENTS = "100,200"

# ErrorCode Bungie indiquant un succès
BUNGIE_SUCCESS = 1

# ErrorCode Bungie : historique indisponible pour ce personnage (supprimé, privé)
BUNGIE_NO_HISTORY_CODES = frozenset({1665, 1601})


def _load_dotenv_if_present() -> None:
    """Charge les fichiers .env.local et .env si présents."""
    repo_root = Path(__file__).resolve().parent.parent.parent.parent

    for name in (".env.local", ".env"):
        dotenv_path = repo_root / name
        if not dotenv_path.exists():
            continue
        try:
            content = dotenv_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug(f"Lecture de {dotenv_path} impossible: {e}")
            continue

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if not key:
                continue
            if os.environ.get(key) is None:
                os.environ[key] = value


def get_api_key_from_env() -> str:
    """Récupère la clé API Bungie depuis l'environnement.

    Raises:
        ValueError: Si DESTINY_API_KEY est absente.

    Returns:
        La clé API.
    """
    _load_dotenv_if_present()
    api_key = (os.environ.get("DESTINY_API_KEY") or "").strip()
    if not api_key:
        raise ValueError(
            "Clé API Bungie manquante. Définir DESTINY_API_KEY "
            "(https://www.bungie.net/en/Application)."
        )
    return api_key


async def request_with_retries(
    coro_factory: Callable[[], Any],
    *,
    tries: int = 4,
    base_sleep: float = 0.8,
) -> Any:
    """Exécute une coroutine avec retry et backoff exponentiel.

    Args:
        coro_factory: Factory qui retourne la coroutine à exécuter.
        tries: Nombre maximum de tentatives.
        base_sleep: Délai de base entre les tentatives (secondes).

    Returns:
        Résultat de la coroutine.

    Raises:
        ApiError: Dernière erreur après épuisement des tentatives, ou
            immédiatement pour 401/403, 400/404/410 et les corps non JSON.
    """
    last_err: Exception | None = None

    for i in range(tries):
        try:
            return await coro_factory()
        except ClientResponseError as e:
            # Clé invalide : inutile de retry
            if e.status in (401, 403):
                raise ApiError(
                    "Requête non autorisée (401/403). Clé API probablement invalide.",
                    status=e.status,
                ) from e
            # Ressource absente : pas de retry
            if e.status in (400, 404, 410):
                raise ApiError(f"Requête refusée ({e.status}): {e.message}", status=e.status) from e
            last_err = e
        except (ClientError, asyncio.TimeoutError) as e:
            last_err = e
        except ValueError as e:
            # Corps non JSON (page de maintenance HTML, réponse tronquée)
            raise ApiError(f"Réponse illisible de l'API: {e}") from e

        if i < tries - 1:
            await asyncio.sleep(base_sleep * (2**i))

    assert last_err is not None
    raise ApiError(f"Échec après {tries} tentatives: {last_err}") from last_err


def _unwrap_envelope(payload: Any) -> Any:
    """Extrait Response d'une enveloppe Bungie, ApiError si ErrorCode != 1."""
    if not isinstance(payload, dict):
        raise ApiError("Réponse inattendue de l'API (pas un objet JSON)")
    error_code = payload.get("ErrorCode", BUNGIE_SUCCESS)
    if error_code != BUNGIE_SUCCESS:
        raise ApiError(
            f"{payload.get('ErrorStatus', 'Erreur')}: {payload.get('Message', '')}",
            error_code=error_code,
        )
    return payload.get("Response")


# =============================================================================
# Contrat
# =============================================================================


class ActivityAPI(Protocol):
    """Contrat du collaborateur distant utilisé par le moteur de sync."""

    async def fetch_roster(self, member_id: str, platform: Platform) -> PlayerInfo: ...

    async def fetch_event_detail(self, instance_id: int) -> PostGameCarnageReport | None: ...

    async def fetch_events_since(
        self,
        member_id: str,
        character_id: str,
        platform: Platform,
        mode: Mode,
        since_id: int,
    ) -> list[ActivitySummary] | None: ...

    async def fetch_characters(self, member_id: str, platform: Platform) -> CharacterSnapshot | None: ...


# =============================================================================
# BungieAPIClient
# =============================================================================


class BungieAPIClient:
    """Client API Bungie asynchrone (aiohttp).

    Usage:
        async with BungieAPIClient() as client:
            history = await client.fetch_events_since(member, character, platform, Mode.ALL_PVP, 0)
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        timeout_seconds: float = 45.0,
        max_activities: int = DEFAULT_MAX_ACTIVITIES,
        tries: int = 4,
    ) -> None:
        """
        Args:
            api_key: Clé API (sinon DESTINY_API_KEY).
            timeout_seconds: Timeout total par requête.
            max_activities: Nombre maximum d'activités retournées par fetch_events_since.
            tries: Nombre de tentatives par requête.
        """
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._max_activities = max_activities
        self._tries = tries
        self._session: ClientSession | None = None

    async def __aenter__(self) -> BungieAPIClient:
        """Initialise la session HTTP."""
        if self._api_key is None:
            self._api_key = get_api_key_from_env()
        self._session = ClientSession(
            timeout=ClientTimeout(total=self._timeout_seconds),
            headers={"X-API-Key": self._api_key},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ferme la session."""
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("Client non initialisé. Utiliser 'async with'.")
        return self._session

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET avec retry, retourne le champ Response de l'enveloppe."""

        async def _fetch():
            async with self.session.get(url, params=params) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)

        payload = await request_with_retries(_fetch, tries=self._tries)
        return _unwrap_envelope(payload)

    # =========================================================================
    # Opérations
    # =========================================================================

    async def fetch_roster(self, member_id: str, platform: Platform) -> PlayerInfo:
        """Profil du joueur : nom affiché et personnages.

        Raises:
            ApiError: Si le profil est inaccessible ou invalide.
        """
        response = await self._get_json(
            f"{API_BASE_URL}/Destiny2/{int(platform)}/Profile/{member_id}/",
            params={"components": PROFILE_COMPONENTS},
        )
        response = response or {}
        user_info = ((response.get("profile") or {}).get("data") or {}).get("userInfo") or {}
        characters_data = ((response.get("characters") or {}).get("data")) or {}

        try:
            characters = [CharacterInfo.model_validate(c) for c in characters_data.values()]
        except ValidationError as e:
            raise ApiError(f"Personnages invalides pour {member_id}: {e}") from e

        global_name = user_info.get("bungieGlobalDisplayName")
        global_code = user_info.get("bungieGlobalDisplayNameCode")
        if global_name and global_code is not None:
            display_name = f"{global_name}#{int(global_code):04d}"
        else:
            display_name = global_name or user_info.get("displayName") or ""

        return PlayerInfo(
            member_id=member_id,
            platform=platform,
            display_name=display_name,
            characters=characters,
        )

    async def fetch_characters(self, member_id: str, platform: Platform) -> CharacterSnapshot | None:
        """Personnages du joueur, None si le profil n'en expose aucun."""
        player = await self.fetch_roster(member_id, platform)
        if not player.characters:
            return None
        return player.snapshot

    async def fetch_event_detail(self, instance_id: int) -> PostGameCarnageReport | None:
        """Post Game Carnage Report d'une activité.

        Returns:
            Le détail validé, ou None si l'API retourne une réponse vide.

        Raises:
            ApiError: Transport, statut ou payload invalide.
        """
        response = await self._get_json(
            f"{STATS_BASE_URL}/Destiny2/Stats/PostGameCarnageReport/{instance_id}/"
        )
        if not response:
            return None
        try:
            return PostGameCarnageReport.model_validate(response)
        except ValidationError as e:
            raise ApiError(f"PGCR {instance_id} invalide: {e}") from e

    async def fetch_events_since(
        self,
        member_id: str,
        character_id: str,
        platform: Platform,
        mode: Mode,
        since_id: int,
    ) -> list[ActivitySummary] | None:
        """Activités plus récentes que since_id, de la plus récente à la plus ancienne.

        Les pages d'historique sont parcourues jusqu'à rencontrer since_id (ou
        la fin de l'historique). Au-delà de max_activities, seules les plus
        anciennes sont conservées : le sync suivant reprendra à partir d'elles.

        Returns:
            Liste des activités, ou None si aucune activité nouvelle.
        """
        url = (
            f"{API_BASE_URL}/Destiny2/{int(platform)}/Account/{member_id}"
            f"/Character/{character_id}/Stats/Activities/"
        )
        collected: list[ActivitySummary] = []
        page = 0

        while True:
            try:
                response = await self._get_json(
                    url,
                    params={"mode": int(mode), "count": ACTIVITY_PAGE_SIZE, "page": page},
                )
            except ApiError as e:
                if e.error_code in BUNGIE_NO_HISTORY_CODES:
                    logger.info(f"Historique indisponible pour le personnage {character_id}: {e}")
                    break
                raise

            raw_activities = (response or {}).get("activities") or []
            if not raw_activities:
                break

            try:
                activities = [ActivitySummary.model_validate(a) for a in raw_activities]
            except ValidationError as e:
                raise ApiError(f"Historique invalide pour {character_id}: {e}") from e

            reached_since = False
            for activity in activities:
                if activity.activity_details.instance_id <= since_id:
                    reached_since = True
                    break
                collected.append(activity)

            if reached_since or len(raw_activities) < ACTIVITY_PAGE_SIZE:
                break
            page += 1

        if not collected:
            return None

        if len(collected) > self._max_activities:
            logger.info(
                f"{len(collected)} activités trouvées, limitées aux {self._max_activities} plus anciennes"
            )
            collected = collected[-self._max_activities :]

        return collected
