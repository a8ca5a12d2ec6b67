"""
Modèles de validation des payloads d'activité de l'API Bungie.
(Validation models for Bungie activity payloads)

HOW IT WORKS:
- ActivitySummary : une ligne de l'historique d'activités d'un personnage
- PostGameCarnageReport : le détail complet d'une activité (PGCR)
- ActivityValues : compteurs d'un joueur ({"basic": {"value": ...}} aplati)

Les payloads sont validés avec Pydantic v2 avant toute écriture dans le
store : un payload invalide n'atteint jamais DuckDB.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from activity_store.data.domain.refdata import CharacterClass, Standing


def unwrap_stat_value(value: Any) -> Any:
    """Aplatit une valeur de stat de l'API.

    L'API encode les compteurs sous la forme
    {"statId": "kills", "basic": {"value": 12.0, "displayValue": "12"}}.

    Args:
        value: Valeur brute (dict de stat ou nombre).

    Returns:
        La valeur numérique, ou la valeur d'origine si déjà aplatie.
    """
    if isinstance(value, dict):
        basic = value.get("basic")
        if isinstance(basic, dict):
            return basic.get("value")
        return value.get("value")
    return value


class _ApiModel(BaseModel):
    """Base commune : alias camelCase de l'API, champs inconnus ignorés."""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Compteurs
# =============================================================================


class ActivityValues(_ApiModel):
    """Compteurs d'un joueur pour une activité."""

    assists: float = 0.0
    score: float = 0.0
    kills: float = 0.0
    deaths: float = 0.0
    average_score_per_kill: float = 0.0
    average_score_per_life: float = 0.0
    completed: float = 0.0
    opponents_defeated: float = 0.0
    efficiency: float = 0.0
    kills_deaths_ratio: float = 0.0
    kills_deaths_assists: float = 0.0
    activity_duration_seconds: float = 0.0
    standing: float = float(Standing.UNKNOWN)
    team: float = 0.0
    completion_reason: float = 0.0
    start_seconds: float = 0.0
    time_played_seconds: float = 0.0
    player_count: float = 0.0
    team_score: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def _unwrap(cls, v: Any) -> Any:
        return unwrap_stat_value(v)


class WeaponValues(_ApiModel):
    """Compteurs d'une arme utilisée pendant l'activité."""

    unique_weapon_kills: float = 0.0
    unique_weapon_precision_kills: float = 0.0
    unique_weapon_kills_precision_kills: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def _unwrap(cls, v: Any) -> Any:
        return unwrap_stat_value(v)


class WeaponEntry(_ApiModel):
    """Arme d'un joueur (référence = hash de l'objet)."""

    reference_id: int
    values: WeaponValues = Field(default_factory=WeaponValues)


class ExtendedData(_ApiModel):
    """Données étendues : armes et compteurs additionnels (médailles incluses)."""

    weapons: list[WeaponEntry] = Field(default_factory=list)
    values: dict[str, float] = Field(default_factory=dict)

    @field_validator("weapons", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v or []

    @field_validator("values", mode="before")
    @classmethod
    def _unwrap_values(cls, v: Any) -> Any:
        if not v:
            return {}
        return {key: unwrap_stat_value(raw) for key, raw in v.items()}

    def get_value(self, key: str) -> int:
        """Compteur étendu arrondi à l'entier, 0 si absent."""
        return int(self.values.get(key, 0.0) or 0)


# =============================================================================
# Détails d'activité
# =============================================================================


class ActivityDetails(_ApiModel):
    """Bloc activityDetails commun à l'historique et au PGCR."""

    reference_id: int = 0
    director_activity_hash: int = 0
    instance_id: int = Field(..., description="ID de l'activité (chaîne côté API)")
    mode: int = 0
    modes: list[int] = Field(default_factory=list)
    is_private: bool = False
    membership_type: int = 0

    @field_validator("modes", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v or []


class ActivitySummary(_ApiModel):
    """Entrée de l'historique d'activités d'un personnage."""

    period: datetime
    activity_details: ActivityDetails
    values: ActivityValues = Field(default_factory=ActivityValues)


# =============================================================================
# Post Game Carnage Report
# =============================================================================


class UserInfo(_ApiModel):
    """Identité du joueur (destinyUserInfo)."""

    membership_id: str
    membership_type: int = 0
    display_name: str = ""
    bungie_global_display_name: str | None = None
    bungie_global_display_name_code: int | None = None

    @property
    def name(self) -> str:
        """Nom affiché : Bungie name complet si disponible."""
        if self.bungie_global_display_name:
            if self.bungie_global_display_name_code is not None:
                return f"{self.bungie_global_display_name}#{self.bungie_global_display_name_code:04d}"
            return self.bungie_global_display_name
        return self.display_name


class PgcrPlayer(_ApiModel):
    """Bloc player d'une entrée PGCR."""

    destiny_user_info: UserInfo
    class_hash: int = 0
    light_level: int = 0
    character_class: str | None = None

    @property
    def class_type(self) -> CharacterClass:
        """Classe du personnage déduite du classHash."""
        return CharacterClass.from_hash(self.class_hash)


class PgcrEntry(_ApiModel):
    """Entrée d'un joueur dans un PGCR."""

    standing: int = int(Standing.UNKNOWN)
    score: float = 0.0
    player: PgcrPlayer
    character_id: str
    values: ActivityValues = Field(default_factory=ActivityValues)
    extended: ExtendedData | None = None

    @field_validator("score", mode="before")
    @classmethod
    def _unwrap_score(cls, v: Any) -> Any:
        return unwrap_stat_value(v)


class TeamEntry(_ApiModel):
    """Résultat d'une équipe dans un PGCR."""

    team_id: int
    standing: float = float(Standing.UNKNOWN)
    score: float = 0.0
    team_name: str | None = None

    @field_validator("standing", "score", mode="before")
    @classmethod
    def _unwrap(cls, v: Any) -> Any:
        return unwrap_stat_value(v)


class PostGameCarnageReport(_ApiModel):
    """Détail complet d'une activité."""

    period: datetime
    activity_details: ActivityDetails
    entries: list[PgcrEntry] = Field(default_factory=list)
    teams: list[TeamEntry] = Field(default_factory=list)

    @field_validator("entries", "teams", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v or []

    @property
    def instance_id(self) -> int:
        """Identifiant de l'activité."""
        return self.activity_details.instance_id
