"""
Repository de récupération des activités.
(Activity retrieval repository)

HOW IT WORKS:
Les activités sont lues depuis le store DuckDB puis projetées en objets de
rapport (CrucibleActivity, PlayerActivityPerformance) :
1. En-tête d'activité, nom de carte résolu via le manifest
2. Équipes dans l'ordre d'insertion, nommées Alpha, Bravo, ...
3. Performances des joueurs groupées par équipe, avec armes et médailles

Les sélections par classe de personnage interrogent l'API (personnages du
joueur) pour résoudre l'identifiant du personnage.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any

import polars as pl

from activity_store.data.domain.models.report import (
    ActivityDetail,
    CrucibleActivity,
    ExtendedStats,
    Item,
    Medal,
    MedalStat,
    Player,
    PlayerActivityPerformance,
    PlayerPerformance,
    PlayerStats,
    Team,
    WeaponStat,
)
from activity_store.data.domain.refdata import (
    NO_TEAMS_INDEX,
    CharacterClass,
    CharacterClassSelection,
    CompletionReason,
    ItemSubType,
    ItemType,
    Mode,
    Platform,
    Standing,
    excluded_mode_for,
)
from activity_store.data.manifest.resolver import ManifestResolver
from activity_store.data.repositories._polars_bridge import result_to_polars
from activity_store.data.sync.api_client import ActivityAPI
from activity_store.data.sync.store import ActivityStore
from activity_store.data.sync.transformers import (
    EXTENDED_ALL_MEDALS_EARNED,
    EXTENDED_PRECISION_KILLS,
    EXTENDED_WEAPON_KILLS_ABILITY,
    EXTENDED_WEAPON_KILLS_GRENADE,
    EXTENDED_WEAPON_KILLS_MELEE,
    EXTENDED_WEAPON_KILLS_SUPER,
    from_utc_naive,
    to_utc_naive,
)
from activity_store.errors import ActivityNotFoundError, CharacterNotFoundError, NoCharactersError

logger = logging.getLogger(__name__)

# Noms d'équipe attribués dans l'ordre d'insertion
TEAM_NAMES: tuple[str, ...] = ("Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot")

UNKNOWN_NAME = "Unknown"

# Compteurs étendus déjà recopiés dans les stats : ce ne sont pas des médailles
NON_MEDAL_KEYS = frozenset(
    {
        EXTENDED_PRECISION_KILLS,
        EXTENDED_WEAPON_KILLS_ABILITY,
        EXTENDED_WEAPON_KILLS_GRENADE,
        EXTENDED_WEAPON_KILLS_MELEE,
        EXTENDED_WEAPON_KILLS_SUPER,
        EXTENDED_ALL_MEDALS_EARNED,
    }
)

_PERFORMANCE_SELECT = """
    SELECT s.*, c.character_id, c.class_type, m.member_id, m.platform_id, m.display_name
    FROM character_activity_stats s
    JOIN player_character c ON c.id = s.character_row_id
    JOIN member m ON m.id = c.member_row_id
"""

_MODE_FILTER = """
    EXISTS (SELECT 1 FROM activity_mode am WHERE am.activity_row_id = a.id AND am.mode = ?)
    AND NOT EXISTS (SELECT 1 FROM activity_mode am WHERE am.activity_row_id = a.id AND am.mode = ?)
"""

# Schéma de l'export tabulaire des performances
PERFORMANCE_FRAME_SCHEMA: dict[str, pl.DataType] = {
    "activity_id": pl.Int64,
    "period": pl.Datetime,
    "mode": pl.Int64,
    "reference_id": pl.Int64,
    "character_id": pl.Utf8,
    "class_type": pl.Int64,
    "standing": pl.Int64,
    "kills": pl.Int64,
    "deaths": pl.Int64,
    "assists": pl.Int64,
    "score": pl.Int64,
    "opponents_defeated": pl.Int64,
    "time_played_seconds": pl.Int64,
    "precision_kills": pl.Int64,
}


class ActivityRepository:
    """
    Récupération et projection des activités du store.
    (Retrieval and projection of stored activities)

    Usage:
        repo = ActivityRepository(store, manifest, api=client)
        activity = await repo.retrieve_last_activity(member_id, Platform.STEAM,
                                                     CharacterClassSelection.ALL, Mode.ALL_PVP)
    """

    def __init__(
        self,
        store: ActivityStore,
        manifest: ManifestResolver,
        *,
        api: ActivityAPI | None = None,
    ) -> None:
        """
        Args:
            store: Store DuckDB de la session.
            manifest: Cache de définitions de la session.
            api: Collaborateur distant (requis pour les sélections par classe).
        """
        self._store = store
        self._manifest = manifest
        self._api = api

    # =========================================================================
    # Récupération
    # =========================================================================

    def retrieve_activity_by_index(self, index: int) -> CrucibleActivity:
        """Activité par identifiant de ligne du store.

        Raises:
            ActivityNotFoundError: Si aucune activité n'a cet index.
        """
        rows = self._store.query("SELECT * FROM activity WHERE id = ?", [index])
        if not rows:
            raise ActivityNotFoundError(f"index {index}")
        return self.populate_activity_data(rows[0])

    async def retrieve_last_activity(
        self,
        member_id: str,
        platform: Platform,
        character_selection: CharacterClassSelection,
        mode: Mode,
    ) -> CrucibleActivity:
        """Activité la plus récente d'un joueur (ou d'un personnage) pour un mode.

        Raises:
            ActivityNotFoundError: Si aucune activité ne correspond.
            NoCharactersError, CharacterNotFoundError: Sélection de personnage impossible.
        """
        where, params = await self._selection_filter(member_id, platform, character_selection)
        sql = f"""
            SELECT a.*
            FROM activity a
            JOIN character_activity_stats s ON s.activity_row_id = a.id
            JOIN player_character c ON c.id = s.character_row_id
            JOIN member m ON m.id = c.member_row_id
            WHERE {where} AND {_MODE_FILTER}
            ORDER BY a.period DESC
            LIMIT 1
        """
        rows = self._store.query(sql, [*params, int(mode), excluded_mode_for(mode)])
        if not rows:
            raise ActivityNotFoundError(f"joueur {member_id}, mode {mode.name}")
        return self.populate_activity_data(rows[0])

    async def retrieve_activities_since(
        self,
        member_id: str,
        character_selection: CharacterClassSelection,
        platform: Platform,
        mode: Mode,
        start: datetime,
        end: datetime,
    ) -> list[PlayerActivityPerformance] | None:
        """Performances d'un joueur dans une période, de la plus récente à la plus ancienne.

        Args:
            member_id: Identifiant du compte.
            character_selection: Personnage(s) considéré(s).
            platform: Plateforme du compte.
            mode: Mode d'activité.
            start: Début de période (exclu).
            end: Fin de période (exclue).

        Returns:
            Liste des performances, ou None si aucune activité ne correspond.
        """
        where, params = await self._selection_filter(member_id, platform, character_selection)
        sql = f"""
            {_PERFORMANCE_SELECT}
            JOIN activity a ON a.id = s.activity_row_id
            WHERE {where} AND {_MODE_FILTER}
              AND a.period > ? AND a.period < ?
            ORDER BY a.period DESC
        """
        stats_rows = self._store.query(
            sql,
            [*params, int(mode), excluded_mode_for(mode), to_utc_naive(start), to_utc_naive(end)],
        )
        if not stats_rows:
            return None

        activity_rows = self._load_activity_rows({r["activity_row_id"] for r in stats_rows})
        performances = self._build_performances(stats_rows)
        return [
            PlayerActivityPerformance(
                activity_detail=self._build_activity_detail(activity_rows[r["activity_row_id"]]),
                performance=performance,
            )
            for r, performance in zip(stats_rows, performances, strict=True)
        ]

    # =========================================================================
    # Projection
    # =========================================================================

    def populate_activity_data(self, activity_row: dict[str, Any]) -> CrucibleActivity:
        """Construit la vue complète d'une activité à partir de sa ligne.

        Les équipes sont nommées dans l'ordre d'insertion. Sans équipe, une
        équipe synthétique (NO_TEAMS_INDEX) regroupe tous les joueurs.
        """
        activity_row_id = activity_row["id"]
        details = self._build_activity_detail(activity_row)

        team_rows = self._store.query(
            "SELECT team_id, score, standing FROM team_result WHERE activity_row_id = ? ORDER BY id",
            [activity_row_id],
        )
        teams: dict[int, Team] = {}
        for position, team_row in enumerate(team_rows):
            teams[team_row["team_id"]] = Team(
                id=team_row["team_id"],
                standing=Standing.from_value(team_row["standing"]),
                score=team_row["score"],
                display_name=TEAM_NAMES[position] if position < len(TEAM_NAMES) else "",
            )

        has_teams = bool(teams)
        if not has_teams:
            teams[NO_TEAMS_INDEX] = Team(
                id=NO_TEAMS_INDEX,
                standing=Standing.UNKNOWN,
                score=0,
                display_name=TEAM_NAMES[0],
            )

        stats_rows = self._store.query(
            f"{_PERFORMANCE_SELECT} WHERE s.activity_row_id = ? ORDER BY s.id",
            [activity_row_id],
        )
        for performance in self._build_performances(stats_rows):
            team_id = performance.stats.team if has_teams else NO_TEAMS_INDEX
            team = teams.get(team_id)
            if team is None:
                logger.warning(
                    f"Activité {details.id} : équipe {team_id} inconnue pour "
                    f"{performance.player.display_name}, performance ignorée"
                )
                continue
            team.player_performances.append(performance)

        return CrucibleActivity(details=details, teams=teams)

    def _build_activity_detail(self, row: dict[str, Any]) -> ActivityDetail:
        definition = self._manifest.get_activity_definition(row["reference_id"])
        map_name = UNKNOWN_NAME
        if definition is not None and definition.display_properties.name:
            map_name = definition.display_properties.name

        return ActivityDetail(
            index_id=row["id"],
            id=row["activity_id"],
            period=from_utc_naive(row["period"]),
            map_name=map_name,
            mode=Mode.from_id(row["mode"]),
            platform=Platform.from_id(row["platform"]),
            director_activity_hash=row["director_activity_hash"],
            reference_id=row["reference_id"],
        )

    def _load_activity_rows(self, activity_row_ids: set[int]) -> dict[int, dict[str, Any]]:
        rows = self._store.query(
            "SELECT * FROM activity WHERE list_contains(?, id)",
            [sorted(activity_row_ids)],
        )
        return {r["id"]: r for r in rows}

    def _build_performances(self, stats_rows: list[dict[str, Any]]) -> list[PlayerPerformance]:
        """Performances (joueur, stats, armes, médailles) d'une liste de lignes de stats."""
        stats_ids = [r["id"] for r in stats_rows]
        weapons = self._load_weapon_stats(stats_ids)
        medals = self._load_medal_stats(stats_ids)

        performances = []
        for row in stats_rows:
            player = Player(
                member_id=row["member_id"],
                character_id=row["character_id"],
                platform=Platform.from_id(row["platform_id"]),
                display_name=row["display_name"] or "",
                class_type=CharacterClass.from_id(row["class_type"]),
                light_level=row["light_level"],
            )
            extended = ExtendedStats(
                precision_kills=row["precision_kills"],
                weapon_kills_ability=row["weapon_kills_ability"],
                weapon_kills_grenade=row["weapon_kills_grenade"],
                weapon_kills_melee=row["weapon_kills_melee"],
                weapon_kills_super=row["weapon_kills_super"],
                all_medals_earned=row["all_medals_earned"],
                weapons=weapons.get(row["id"], []),
                medals=medals.get(row["id"], []),
            )
            stats = PlayerStats(
                assists=row["assists"],
                score=row["score"],
                kills=row["kills"],
                deaths=row["deaths"],
                average_score_per_kill=row["average_score_per_kill"],
                average_score_per_life=row["average_score_per_life"],
                completed=bool(row["completed"]),
                opponents_defeated=row["opponents_defeated"],
                activity_duration_seconds=row["activity_duration_seconds"],
                standing=Standing.from_value(row["standing"]),
                team=row["team"],
                completion_reason=CompletionReason.from_value(row["completion_reason"]),
                start_seconds=row["start_seconds"],
                time_played_seconds=row["time_played_seconds"],
                player_count=row["player_count"],
                team_score=row["team_score"],
                extended=extended,
            )
            performances.append(PlayerPerformance(player=player, stats=stats))
        return performances

    def _load_weapon_stats(self, stats_ids: list[int]) -> dict[int, list[WeaponStat]]:
        result: dict[int, list[WeaponStat]] = defaultdict(list)
        if not stats_ids:
            return result
        rows = self._store.query(
            "SELECT * FROM weapon_result WHERE list_contains(?, stats_row_id) ORDER BY kills DESC",
            [stats_ids],
        )
        for row in rows:
            result[row["stats_row_id"]].append(
                WeaponStat(
                    weapon=self._resolve_item(row["reference_id"]),
                    kills=row["kills"],
                    precision_kills=row["precision_kills"],
                    precision_kills_percent=row["kills_precision_kills_ratio"],
                )
            )
        return result

    def _load_medal_stats(self, stats_ids: list[int]) -> dict[int, list[MedalStat]]:
        result: dict[int, list[MedalStat]] = defaultdict(list)
        if not stats_ids:
            return result
        rows = self._store.query(
            'SELECT * FROM medal_result WHERE list_contains(?, stats_row_id) ORDER BY "count" DESC',
            [stats_ids],
        )
        for row in rows:
            if row["reference_id"] in NON_MEDAL_KEYS:
                continue
            result[row["stats_row_id"]].append(
                MedalStat(medal=self._resolve_medal(row["reference_id"]), count=row["count"])
            )
        return result

    def _resolve_item(self, reference_id: int) -> Item:
        definition = self._manifest.get_inventory_item_definition(reference_id)
        if definition is None:
            return Item(
                id=reference_id,
                name=UNKNOWN_NAME,
                description="",
                item_type=ItemType.UNKNOWN,
                item_sub_type=ItemSubType.UNKNOWN,
            )
        return Item(
            id=reference_id,
            name=definition.display_properties.name or UNKNOWN_NAME,
            description=definition.display_properties.description,
            item_type=ItemType.from_id(definition.item_type),
            item_sub_type=ItemSubType.from_id(definition.item_sub_type),
        )

    def _resolve_medal(self, reference_id: str) -> Medal:
        definition = self._manifest.get_historical_stats_definition(reference_id)
        if definition is None:
            return Medal(id=reference_id, name=UNKNOWN_NAME, description="")
        return Medal(
            id=reference_id,
            name=definition.stat_name or UNKNOWN_NAME,
            description=definition.stat_description,
            icon_image_path=definition.icon_image,
            tier_hash=definition.medal_tier_hash,
        )

    # =========================================================================
    # Sélection du personnage
    # =========================================================================

    async def _selection_filter(
        self,
        member_id: str,
        platform: Platform,
        character_selection: CharacterClassSelection,
    ) -> tuple[str, list[Any]]:
        """Clause WHERE (alias m et c) restreignant au joueur ou au personnage."""
        if character_selection == CharacterClassSelection.ALL:
            return "m.member_id = ?", [member_id]

        character_id = await self.retrieve_character_id(member_id, platform, character_selection)
        return "m.member_id = ? AND c.character_id = ?", [member_id, character_id]

    async def retrieve_character_id(
        self,
        member_id: str,
        platform: Platform,
        character_selection: CharacterClassSelection,
    ) -> str:
        """Résout l'identifiant du personnage sélectionné via l'API.

        Raises:
            NoCharactersError: Si le joueur n'a aucun personnage.
            CharacterNotFoundError: Si aucun personnage ne correspond à la sélection.
        """
        if self._api is None:
            raise RuntimeError("Client API requis pour sélectionner un personnage par classe.")

        snapshot = await self._api.fetch_characters(member_id, platform)
        if snapshot is None or snapshot.is_empty():
            raise NoCharactersError(member_id)

        if character_selection == CharacterClassSelection.LAST_ACTIVE:
            character = snapshot.get_last_active()
        else:
            character = snapshot.get_by_class(character_selection.to_character_class())

        if character is None:
            raise CharacterNotFoundError(character_selection.value)
        return character.character_id

    # =========================================================================
    # Export Polars
    # =========================================================================

    def load_performances_frame(
        self,
        member_id: str,
        mode: Mode = Mode.ALL_PVP,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> pl.DataFrame:
        """Performances d'un joueur sous forme de DataFrame, avec ratios dérivés.

        Args:
            member_id: Identifiant du compte.
            mode: Mode d'activité (les parties privées sont exclues d'un mode public).
            start: Début de période (inclus, optionnel).
            end: Fin de période (exclue, optionnelle).

        Returns:
            DataFrame trié par date décroissante, colonnes efficiency et kd incluses.
        """
        conditions = ["m.member_id = ?", _MODE_FILTER]
        params: list[Any] = [member_id, int(mode), excluded_mode_for(mode)]
        if start is not None:
            conditions.append("a.period >= ?")
            params.append(to_utc_naive(start))
        if end is not None:
            conditions.append("a.period < ?")
            params.append(to_utc_naive(end))

        result = self._store.connection.execute(
            f"""
            SELECT a.activity_id, a.period, a.mode, a.reference_id,
                   c.character_id, c.class_type, s.standing,
                   s.kills, s.deaths, s.assists, s.score, s.opponents_defeated,
                   s.time_played_seconds, s.precision_kills
            FROM character_activity_stats s
            JOIN player_character c ON c.id = s.character_row_id
            JOIN member m ON m.id = c.member_row_id
            JOIN activity a ON a.id = s.activity_row_id
            WHERE {" AND ".join(conditions)}
            ORDER BY a.period DESC
            """,
            params,
        )
        df = result_to_polars(result, schema=PERFORMANCE_FRAME_SCHEMA)

        deaths_or_one = pl.when(pl.col("deaths") == 0).then(1).otherwise(pl.col("deaths"))
        return df.with_columns(
            ((pl.col("kills") + pl.col("assists")) / deaths_or_one).alias("efficiency"),
            (pl.col("kills") / deaths_or_one).alias("kills_deaths_ratio"),
            (pl.col("standing") == int(Standing.VICTORY)).alias("is_victory"),
        )


def performances_to_polars(performances: list[PlayerActivityPerformance]) -> pl.DataFrame:
    """Export tabulaire d'une liste de performances (une ligne par activité)."""
    records = [
        {
            "activity_id": p.activity_detail.id,
            "period": p.activity_detail.period,
            "map_name": p.activity_detail.map_name,
            "mode": p.activity_detail.mode.name,
            "character_id": p.performance.player.character_id,
            "class_type": p.performance.player.class_type.name,
            "standing": p.performance.stats.standing.name,
            "kills": p.performance.stats.kills,
            "deaths": p.performance.stats.deaths,
            "assists": p.performance.stats.assists,
            "efficiency": p.performance.stats.efficiency,
            "kills_deaths_ratio": p.performance.stats.kills_deaths_ratio,
        }
        for p in performances
    ]
    return pl.DataFrame(records)
