"""Fixtures communes pour les tests.

Ce fichier contient :
- des fabriques de payloads API (PGCR, historique, profil) au format camelCase
- FakeActivityAPI, un collaborateur distant en mémoire
- un constructeur de manifest DuckDB minimal
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import duckdb
import pytest

from activity_store.data.domain.models.activity import ActivitySummary, PostGameCarnageReport
from activity_store.data.domain.models.player import CharacterInfo, CharacterSnapshot, PlayerInfo
from activity_store.data.domain.refdata import CharacterClass, Mode, Platform
from activity_store.data.sync.store import ActivityStore

MEMBER_ID = "4611686018467260757"
CHARACTER_ID = "2305843009260517953"
OTHER_MEMBER_ID = "4611686018429999999"
OTHER_CHARACTER_ID = "2305843009270000001"

TITAN_HASH = 3655393761
HUNTER_HASH = 671679327

BASE_PERIOD = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)

# Carte (activité) et objets référencés par les payloads de test
MAP_REFERENCE_ID = 2693136600
WEAPON_HASH = 3089417789
HIGH_BIT_WEAPON_HASH = 4294967295


# =============================================================================
# Fabriques de payloads
# =============================================================================


def stat(value: float) -> dict[str, Any]:
    """Valeur de stat au format API."""
    return {"basic": {"value": float(value), "displayValue": str(value)}}


def make_entry(
    member_id: str = MEMBER_ID,
    character_id: str = CHARACTER_ID,
    *,
    display_name: str = "Guardian",
    code: int | None = 1234,
    class_hash: int = TITAN_HASH,
    team: int = 17,
    standing: int = 0,
    kills: int = 10,
    deaths: int = 5,
    assists: int = 3,
    medals: dict[str, int] | None = None,
    weapons: list[tuple[int, int, int]] | None = None,
) -> dict[str, Any]:
    """Entrée joueur d'un PGCR."""
    extended_values = {
        "precisionKills": stat(4),
        "weaponKillsGrenade": stat(1),
        "weaponKillsMelee": stat(2),
        "weaponKillsSuper": stat(0),
        "weaponKillsAbility": stat(1),
        "allMedalsEarned": stat(sum((medals or {}).values())),
    }
    for key, count in (medals or {}).items():
        extended_values[key] = stat(count)

    return {
        "standing": standing,
        "score": stat(kills * 100),
        "characterId": character_id,
        "player": {
            "destinyUserInfo": {
                "membershipId": member_id,
                "membershipType": int(Platform.STEAM),
                "displayName": display_name,
                "bungieGlobalDisplayName": display_name,
                "bungieGlobalDisplayNameCode": code,
            },
            "classHash": class_hash,
            "lightLevel": 1810,
            "characterClass": "Titan",
        },
        "values": {
            "assists": stat(assists),
            "score": stat(kills * 100),
            "kills": stat(kills),
            "deaths": stat(deaths),
            "averageScorePerKill": stat(100),
            "averageScorePerLife": stat(150),
            "completed": stat(1),
            "opponentsDefeated": stat(kills + assists),
            "activityDurationSeconds": stat(600),
            "standing": stat(standing),
            "team": stat(team),
            "completionReason": stat(0),
            "startSeconds": stat(0),
            "timePlayedSeconds": stat(590),
            "playerCount": stat(12),
            "teamScore": stat(150),
        },
        "extended": {
            "weapons": [
                {
                    "referenceId": reference_id,
                    "values": {
                        "uniqueWeaponKills": stat(weapon_kills),
                        "uniqueWeaponPrecisionKills": stat(precision),
                        "uniqueWeaponKillsPrecisionKills": stat(
                            precision / weapon_kills if weapon_kills else 0
                        ),
                    },
                }
                for reference_id, weapon_kills, precision in (weapons or [])
            ],
            "values": extended_values,
        },
    }


def make_pgcr(
    instance_id: int,
    *,
    period: datetime | None = None,
    mode: Mode = Mode.CONTROL,
    modes: list[int] | None = None,
    director_activity_hash: int = 1111,
    reference_id: int = MAP_REFERENCE_ID,
    entries: list[dict[str, Any]] | None = None,
    teams: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Payload PGCR complet (réponse de PostGameCarnageReport)."""
    if modes is None:
        modes = [int(mode), int(Mode.ALL_PVP)]
    if entries is None:
        entries = [make_entry()]
    if teams is None:
        teams = [make_team(17, 150, 0), make_team(16, 120, 1)]
    return {
        "period": (period or BASE_PERIOD + timedelta(minutes=instance_id % 10_000)).isoformat(),
        "activityDetails": {
            "referenceId": reference_id,
            "directorActivityHash": director_activity_hash,
            "instanceId": str(instance_id),
            "mode": int(mode),
            "modes": modes,
            "isPrivate": Mode.PRIVATE_MATCHES_ALL in modes,
            "membershipType": int(Platform.STEAM),
        },
        "entries": entries,
        "teams": teams,
    }


def make_team(team_id: int, score: int, standing: int) -> dict[str, Any]:
    return {
        "teamId": team_id,
        "standing": stat(standing),
        "score": stat(score),
        "teamName": f"Team {team_id}",
    }


def make_summary(
    instance_id: int,
    *,
    director_activity_hash: int = 1111,
    mode: Mode = Mode.CONTROL,
) -> ActivitySummary:
    """Entrée d'historique validée."""
    return ActivitySummary.model_validate(
        {
            "period": (BASE_PERIOD + timedelta(minutes=instance_id % 10_000)).isoformat(),
            "activityDetails": {
                "referenceId": MAP_REFERENCE_ID,
                "directorActivityHash": director_activity_hash,
                "instanceId": str(instance_id),
                "mode": int(mode),
                "modes": [int(mode)],
            },
            "values": {"kills": stat(5)},
        }
    )


# =============================================================================
# Collaborateur distant en mémoire
# =============================================================================


class FakeActivityAPI:
    """Implémentation en mémoire du contrat ActivityAPI.

    Attributes:
        histories: (character_id, mode) → ids d'activités, du plus récent au plus ancien.
        details: activity_id → payload PGCR (dict), None ou exception à lever.
        director_hashes: activity_id → directorActivityHash de l'historique.
        history_errors: (character_id, mode) → exception à lever.
        since_calls: (character_id, mode, since_id) reçus.
        max_in_flight: plus grand nombre de fetch_event_detail simultanés.
    """

    def __init__(self, characters: list[CharacterInfo] | None = None, display_name: str = "Guardian#1234"):
        self.characters = characters if characters is not None else [
            CharacterInfo(
                character_id=CHARACTER_ID,
                class_type=CharacterClass.TITAN,
                date_last_played=BASE_PERIOD,
            )
        ]
        self.display_name = display_name
        self.histories: dict[tuple[str, Mode], list[int]] = {}
        self.details: dict[int, Any] = {}
        self.director_hashes: dict[int, int] = {}
        self.history_errors: dict[tuple[str, Mode], Exception] = {}
        self.since_calls: list[tuple[str, Mode, int]] = []
        self.detail_calls: list[int] = []
        self._in_flight = 0
        self.max_in_flight = 0

    async def fetch_roster(self, member_id: str, platform: Platform) -> PlayerInfo:
        return PlayerInfo(
            member_id=member_id,
            platform=platform,
            display_name=self.display_name,
            characters=self.characters,
        )

    async def fetch_characters(self, member_id: str, platform: Platform) -> CharacterSnapshot | None:
        if not self.characters:
            return None
        return CharacterSnapshot(characters=self.characters)

    async def fetch_events_since(
        self,
        member_id: str,
        character_id: str,
        platform: Platform,
        mode: Mode,
        since_id: int,
    ) -> list[ActivitySummary] | None:
        self.since_calls.append((character_id, mode, since_id))
        if (character_id, mode) in self.history_errors:
            raise self.history_errors[(character_id, mode)]
        ids = [i for i in self.histories.get((character_id, mode), []) if i > since_id]
        if not ids:
            return None
        return [
            make_summary(i, director_activity_hash=self.director_hashes.get(i, 1111), mode=mode)
            for i in ids
        ]

    async def fetch_event_detail(self, instance_id: int) -> PostGameCarnageReport | None:
        self.detail_calls.append(instance_id)
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            await asyncio.sleep(0)
            detail = self.details.get(instance_id)
            if isinstance(detail, Exception):
                raise detail
            if detail is None:
                return None
            return PostGameCarnageReport.model_validate(detail)
        finally:
            self._in_flight -= 1


@pytest.fixture
def fake_api() -> FakeActivityAPI:
    return FakeActivityAPI()


# =============================================================================
# Store
# =============================================================================


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "activity_store.duckdb"


@pytest.fixture
def store(store_path: Path):
    """Store DuckDB temporaire (sans CHECKPOINT après insertion)."""
    s = ActivityStore(store_path, optimize_on_commit=False)
    yield s
    s.close()


@pytest.fixture
def insert_pgcr(store: ActivityStore) -> Callable[..., PostGameCarnageReport]:
    """Insère un PGCR (payload dict) pour un personnage déjà présent dans le store."""

    def _insert(payload: dict[str, Any], *, member_id: str = MEMBER_ID, character_id: str = CHARACTER_ID):
        member_row_id = store.insert_member(member_id, int(Platform.STEAM), "Guardian#1234")
        character_row_id = store.insert_character(character_id, int(CharacterClass.TITAN), member_row_id)
        pgcr = PostGameCarnageReport.model_validate(payload)
        store.insert_activity(pgcr, character_row_id)
        return pgcr

    return _insert


# =============================================================================
# Manifest
# =============================================================================

MANIFEST_ID_TABLES = (
    "DestinyActivityDefinition",
    "DestinyInventoryItemDefinition",
    "DestinyDestinationDefinition",
    "DestinyPlaceDefinition",
    "DestinyActivityTypeDefinition",
)


def _signed(hash_value: int) -> int:
    return hash_value - 2**32 if hash_value & 0x80000000 else hash_value


def build_manifest(
    path: Path,
    *,
    definitions: dict[str, list[dict[str, Any]]] | None = None,
    medals: list[dict[str, Any]] | None = None,
) -> Path:
    """Crée un manifest DuckDB (tables id/json et table des stats historiques key/json).

    Args:
        path: Fichier .duckdb à créer.
        definitions: Nom de table → définitions JSON (doivent contenir "hash").
        medals: Définitions de stats historiques (doivent contenir "statId").
    """
    conn = duckdb.connect(str(path))
    try:
        for table_name in MANIFEST_ID_TABLES:
            conn.execute(f'CREATE TABLE "{table_name}" (id BIGINT, "json" VARCHAR)')
        conn.execute('CREATE TABLE "DestinyHistoricalStatsDefinition" ("key" VARCHAR, "json" VARCHAR)')

        for table_name, rows in (definitions or {}).items():
            for row in rows:
                conn.execute(
                    f'INSERT INTO "{table_name}" VALUES (?, ?)',
                    [_signed(row["hash"]), json.dumps(row)],
                )
        for row in medals or []:
            conn.execute(
                'INSERT INTO "DestinyHistoricalStatsDefinition" VALUES (?, ?)',
                [row["statId"], json.dumps(row)],
            )
    finally:
        conn.close()
    return path


DEFAULT_DEFINITIONS: dict[str, list[dict[str, Any]]] = {
    "DestinyActivityDefinition": [
        {
            "hash": MAP_REFERENCE_ID,
            "displayProperties": {"name": "Javelin-4", "description": "Warsat", "hasIcon": False},
            "pgcrImage": "/img/theme/destiny/bgs/pgcrs/javelin.jpg",
            "destinationHash": 1234,
        }
    ],
    "DestinyInventoryItemDefinition": [
        {
            "hash": WEAPON_HASH,
            "displayProperties": {"name": "Ace of Spades", "description": "Hand cannon"},
            "itemType": 3,
            "itemSubType": 11,
        },
        {
            "hash": HIGH_BIT_WEAPON_HASH,
            "displayProperties": {"name": "Max Hash", "description": ""},
            "itemType": 3,
            "itemSubType": 6,
        },
    ],
}

DEFAULT_MEDALS: list[dict[str, Any]] = [
    {
        "statId": "medalMatchMostDamage",
        "statName": "Most Damage",
        "statDescription": "Dealt the most damage",
        "iconImage": "/common/destiny2_content/icons/medal.png",
        "weight": 1,
    }
]


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    return build_manifest(
        tmp_path / "manifest.duckdb", definitions=DEFAULT_DEFINITIONS, medals=DEFAULT_MEDALS
    )
