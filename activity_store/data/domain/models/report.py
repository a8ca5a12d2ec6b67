"""Objets de rapport produits par la couche de récupération.

Ces dataclasses sont des vues jointes (activité, équipes, joueurs, armes,
médailles) construites à partir du store et du manifest. Elles ne sont
jamais écrites en base.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from activity_store.data.domain.refdata import (
    CharacterClass,
    CompletionReason,
    ItemSubType,
    ItemType,
    Mode,
    Platform,
    Standing,
)


def calculate_efficiency(kills: int, deaths: int, assists: int) -> float:
    """(kills + assists) / deaths, ou kills + assists sans mort."""
    total = kills + assists
    if deaths == 0:
        return float(total)
    return total / deaths


def calculate_kills_deaths_ratio(kills: int, deaths: int) -> float:
    """kills / deaths, ou kills sans mort."""
    if deaths == 0:
        return float(kills)
    return kills / deaths


def calculate_kills_deaths_assists(kills: int, deaths: int, assists: int) -> float:
    """(kills + assists / 2) / deaths, ou le numérateur sans mort."""
    total = kills + assists / 2
    if deaths == 0:
        return float(total)
    return total / deaths


# =============================================================================
# Objets du manifest
# =============================================================================


@dataclass
class Item:
    """Arme résolue via le manifest."""

    id: int
    name: str
    description: str
    item_type: ItemType
    item_sub_type: ItemSubType


@dataclass
class WeaponStat:
    """Statistiques d'une arme pour un joueur."""

    weapon: Item
    kills: int
    precision_kills: int
    precision_kills_percent: float
    activity_count: int = 1


@dataclass
class Medal:
    """Médaille résolue via le manifest (clé = statId)."""

    id: str
    name: str
    description: str
    icon_image_path: str | None = None
    tier_hash: int | None = None


@dataclass
class MedalStat:
    """Nombre de médailles obtenues par un joueur."""

    medal: Medal
    count: int


# =============================================================================
# Activité
# =============================================================================


@dataclass
class ActivityDetail:
    """En-tête d'une activité."""

    index_id: int
    id: int
    period: datetime
    map_name: str
    mode: Mode
    platform: Platform
    director_activity_hash: int
    reference_id: int


@dataclass
class ExtendedStats:
    """Compteurs étendus d'un joueur."""

    precision_kills: int
    weapon_kills_ability: int
    weapon_kills_grenade: int
    weapon_kills_melee: int
    weapon_kills_super: int
    all_medals_earned: int
    weapons: list[WeaponStat] = field(default_factory=list)
    medals: list[MedalStat] = field(default_factory=list)


@dataclass
class PlayerStats:
    """Compteurs d'un joueur pour une activité."""

    assists: int
    score: int
    kills: int
    deaths: int
    average_score_per_kill: float
    average_score_per_life: float
    completed: bool
    opponents_defeated: int
    activity_duration_seconds: int
    standing: Standing
    team: int
    completion_reason: CompletionReason
    start_seconds: int
    time_played_seconds: int
    player_count: int
    team_score: int
    extended: ExtendedStats | None = None

    @property
    def efficiency(self) -> float:
        return calculate_efficiency(self.kills, self.deaths, self.assists)

    @property
    def kills_deaths_ratio(self) -> float:
        return calculate_kills_deaths_ratio(self.kills, self.deaths)

    @property
    def kills_deaths_assists(self) -> float:
        return calculate_kills_deaths_assists(self.kills, self.deaths, self.assists)


@dataclass
class Player:
    """Joueur (personnage) ayant participé à une activité."""

    member_id: str
    character_id: str
    platform: Platform
    display_name: str
    class_type: CharacterClass
    light_level: int


@dataclass
class PlayerPerformance:
    """Joueur et ses compteurs pour une activité."""

    player: Player
    stats: PlayerStats


@dataclass
class Team:
    """Équipe et performances de ses joueurs."""

    id: int
    standing: Standing
    score: int
    display_name: str
    player_performances: list[PlayerPerformance] = field(default_factory=list)


@dataclass
class CrucibleActivity:
    """Vue complète d'une activité : en-tête et équipes."""

    details: ActivityDetail
    teams: dict[int, Team] = field(default_factory=dict)

    def get_member_performance(self, member_id: str) -> PlayerPerformance | None:
        """Performance du joueur demandé, None s'il n'a pas participé."""
        for team in self.teams.values():
            for performance in team.player_performances:
                if performance.player.member_id == member_id:
                    return performance
        return None

    @property
    def player_count(self) -> int:
        return sum(len(t.player_performances) for t in self.teams.values())


@dataclass
class PlayerActivityPerformance:
    """Performance d'un joueur rattachée à son activité."""

    activity_detail: ActivityDetail
    performance: PlayerPerformance
