"""Transformateurs payload API → lignes DuckDB.

Ce module convertit un PostGameCarnageReport validé en lignes prêtes pour
l'insertion dans le store.

Architecture:
- transform_activity() : PGCR → ActivityRow
- transform_modes() : PGCR → tags de mode dédoublonnés
- transform_team_results() : PGCR → [TeamResultRow]
- transform_entry() : entrée joueur → EntryRows (stats, médailles, armes)
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from activity_store.data.domain.models.activity import PgcrEntry, PostGameCarnageReport
from activity_store.data.domain.refdata import Mode
from activity_store.data.sync.models import (
    ActivityRow,
    CharacterActivityStatsRow,
    EntryRows,
    MedalResultRow,
    TeamResultRow,
    WeaponResultRow,
)

logger = logging.getLogger(__name__)

# Clés des compteurs étendus recopiés dans character_activity_stats
EXTENDED_PRECISION_KILLS = "precisionKills"
EXTENDED_WEAPON_KILLS_ABILITY = "weaponKillsAbility"
EXTENDED_WEAPON_KILLS_GRENADE = "weaponKillsGrenade"
EXTENDED_WEAPON_KILLS_MELEE = "weaponKillsMelee"
EXTENDED_WEAPON_KILLS_SUPER = "weaponKillsSuper"
EXTENDED_ALL_MEDALS_EARNED = "allMedalsEarned"


# =============================================================================
# Helpers de parsing
# =============================================================================


def _safe_int(v: Any) -> int:
    """Convertit une valeur en int, 0 pour None, NaN ou invalide."""
    if v is None:
        return 0
    try:
        f = float(v)
        if math.isnan(f) or math.isinf(f):
            return 0
        return int(f)
    except (TypeError, ValueError):
        return 0


def _safe_float(v: Any) -> float:
    """Convertit une valeur en float, 0.0 pour None, NaN ou invalide."""
    if v is None:
        return 0.0
    try:
        f = float(v)
        if math.isnan(f) or math.isinf(f):
            return 0.0
        return f
    except (TypeError, ValueError):
        return 0.0


def to_utc_naive(value: datetime) -> datetime:
    """Convertit un datetime en UTC sans fuseau (stockage TIMESTAMP)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_utc_naive(value: datetime) -> datetime:
    """Opération inverse de to_utc_naive."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


# =============================================================================
# Transformations
# =============================================================================


def transform_activity(pgcr: PostGameCarnageReport) -> ActivityRow:
    """Extrait la ligne activity d'un PGCR.

    Args:
        pgcr: Payload validé.

    Returns:
        ActivityRow (period en UTC sans fuseau).
    """
    details = pgcr.activity_details
    return ActivityRow(
        activity_id=details.instance_id,
        period=to_utc_naive(pgcr.period),
        mode=details.mode,
        platform=details.membership_type,
        director_activity_hash=details.director_activity_hash,
        reference_id=details.reference_id,
    )


def transform_modes(pgcr: PostGameCarnageReport) -> list[int]:
    """Tags de mode de l'activité, dédoublonnés dans l'ordre d'apparition.

    Sans liste de modes, le mode principal sert de tag unique.
    """
    details = pgcr.activity_details
    modes: list[int] = []
    for mode in details.modes or [details.mode]:
        if mode not in modes and mode != Mode.NONE:
            modes.append(mode)
    return modes


def transform_team_results(pgcr: PostGameCarnageReport) -> list[TeamResultRow]:
    """Résultats d'équipe, dans l'ordre du payload."""
    return [
        TeamResultRow(
            team_id=team.team_id,
            score=_safe_int(team.score),
            standing=_safe_int(team.standing),
        )
        for team in pgcr.teams
    ]


def transform_medal_results(entry: PgcrEntry) -> list[MedalResultRow]:
    """Une ligne par compteur étendu (médailles et compteurs additionnels)."""
    if entry.extended is None:
        return []
    return [
        MedalResultRow(reference_id=key, count=_safe_int(value))
        for key, value in entry.extended.values.items()
    ]


def transform_weapon_results(entry: PgcrEntry) -> list[WeaponResultRow]:
    """Une ligne par arme utilisée."""
    if entry.extended is None:
        return []
    return [
        WeaponResultRow(
            reference_id=weapon.reference_id,
            kills=_safe_int(weapon.values.unique_weapon_kills),
            precision_kills=_safe_int(weapon.values.unique_weapon_precision_kills),
            kills_precision_kills_ratio=_safe_float(
                weapon.values.unique_weapon_kills_precision_kills
            ),
        )
        for weapon in entry.extended.weapons
    ]


def transform_character_stats(entry: PgcrEntry) -> CharacterActivityStatsRow:
    """Compteurs d'une entrée joueur."""
    values = entry.values
    extended = entry.extended

    def ext(key: str) -> int:
        return extended.get_value(key) if extended is not None else 0

    return CharacterActivityStatsRow(
        assists=_safe_int(values.assists),
        score=_safe_int(values.score),
        kills=_safe_int(values.kills),
        deaths=_safe_int(values.deaths),
        average_score_per_kill=_safe_float(values.average_score_per_kill),
        average_score_per_life=_safe_float(values.average_score_per_life),
        completed=_safe_int(values.completed) == 1,
        opponents_defeated=_safe_int(values.opponents_defeated),
        activity_duration_seconds=_safe_int(values.activity_duration_seconds),
        standing=_safe_int(values.standing),
        team=_safe_int(values.team),
        completion_reason=_safe_int(values.completion_reason),
        start_seconds=_safe_int(values.start_seconds),
        time_played_seconds=_safe_int(values.time_played_seconds),
        player_count=_safe_int(values.player_count),
        team_score=_safe_int(values.team_score),
        precision_kills=ext(EXTENDED_PRECISION_KILLS),
        weapon_kills_ability=ext(EXTENDED_WEAPON_KILLS_ABILITY),
        weapon_kills_grenade=ext(EXTENDED_WEAPON_KILLS_GRENADE),
        weapon_kills_melee=ext(EXTENDED_WEAPON_KILLS_MELEE),
        weapon_kills_super=ext(EXTENDED_WEAPON_KILLS_SUPER),
        all_medals_earned=ext(EXTENDED_ALL_MEDALS_EARNED),
        light_level=entry.player.light_level,
    )


def transform_entry(entry: PgcrEntry) -> EntryRows:
    """Transforme une entrée joueur en lignes (identité, stats, médailles, armes)."""
    user = entry.player.destiny_user_info
    return EntryRows(
        member_id=user.membership_id,
        platform=user.membership_type,
        display_name=user.name,
        character_id=entry.character_id,
        class_type=int(entry.player.class_type),
        stats=transform_character_stats(entry),
        medals=transform_medal_results(entry),
        weapons=transform_weapon_results(entry),
    )
