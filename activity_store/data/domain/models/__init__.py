"""Modèles du domaine.

- activity.py : payloads d'activité (historique, PGCR)
- player.py : roster (profil, personnages)
- report.py : vues jointes produites par la couche de récupération
"""

from activity_store.data.domain.models.activity import (
    ActivityDetails,
    ActivitySummary,
    ActivityValues,
    ExtendedData,
    PgcrEntry,
    PgcrPlayer,
    PostGameCarnageReport,
    TeamEntry,
    UserInfo,
    WeaponEntry,
    WeaponValues,
)
from activity_store.data.domain.models.player import CharacterInfo, CharacterSnapshot, PlayerInfo
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

__all__ = [
    "ActivityDetail",
    "ActivityDetails",
    "ActivitySummary",
    "ActivityValues",
    "CharacterInfo",
    "CharacterSnapshot",
    "CrucibleActivity",
    "ExtendedData",
    "ExtendedStats",
    "Item",
    "Medal",
    "MedalStat",
    "PgcrEntry",
    "PgcrPlayer",
    "Player",
    "PlayerActivityPerformance",
    "PlayerInfo",
    "PlayerPerformance",
    "PlayerStats",
    "PostGameCarnageReport",
    "Team",
    "TeamEntry",
    "UserInfo",
    "WeaponEntry",
    "WeaponStat",
    "WeaponValues",
]
