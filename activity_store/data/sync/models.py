"""Modèles de données pour le module de synchronisation.

Contient les dataclasses pour :
- Résultats de synchronisation (SyncResult)
- Lignes DuckDB (ActivityRow, TeamResultRow, CharacterActivityStatsRow,
  MedalResultRow, WeaponResultRow)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# =============================================================================
# Résultats de synchronisation
# =============================================================================


@dataclass
class SyncResult:
    """Résultat d'une synchronisation.

    Attributes:
        total_synced: Activités insérées (ou déjà présentes) pendant le sync.
        total_in_queue: Activités restant en file à la fin du sync.
        total_available: Identifiants lus depuis la file pendant les vidages.
        errors: Erreurs non fatales rencontrées (par périmètre ou activité).
    """

    total_synced: int = 0
    total_in_queue: int = 0
    total_available: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def __add__(self, other: SyncResult) -> SyncResult:
        return SyncResult(
            total_synced=self.total_synced + other.total_synced,
            total_in_queue=self.total_in_queue + other.total_in_queue,
            total_available=self.total_available + other.total_available,
            errors=[*self.errors, *other.errors],
            duration_seconds=self.duration_seconds + other.duration_seconds,
            started_at=self.started_at or other.started_at,
            finished_at=other.finished_at or self.finished_at,
        )

    @property
    def success(self) -> bool:
        """True si aucune erreur n'a été rencontrée."""
        return not self.errors

    def to_message(self) -> str:
        """Message de résumé pour la ligne de commande."""
        parts = []
        if self.total_synced > 0:
            parts.append(f"{self.total_synced} activités synchronisées")
        if self.total_in_queue > 0:
            parts.append(f"{self.total_in_queue} en attente")
        if not parts:
            parts.append("Déjà à jour")

        duration_str = ""
        if self.duration_seconds > 0:
            duration_str = f" ({self.duration_seconds:.1f}s)"

        errors_str = ""
        if self.errors:
            errors_str = f" ; {len(self.errors)} erreur(s): {', '.join(self.errors[:2])}"

        return f"{', '.join(parts)}{duration_str}{errors_str}"

    def to_dict(self) -> dict[str, Any]:
        """Convertit en dict pour sérialisation JSON."""
        return {
            "success": self.success,
            "total_synced": self.total_synced,
            "total_in_queue": self.total_in_queue,
            "total_available": self.total_available,
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


# =============================================================================
# Lignes DuckDB
# =============================================================================


@dataclass
class ActivityRow:
    """Ligne de la table activity."""

    activity_id: int
    period: datetime
    mode: int
    platform: int
    director_activity_hash: int
    reference_id: int


@dataclass
class TeamResultRow:
    """Ligne de la table team_result (hors clé d'activité)."""

    team_id: int
    score: int
    standing: int


@dataclass
class CharacterActivityStatsRow:
    """Ligne de la table character_activity_stats (hors clés)."""

    assists: int
    score: int
    kills: int
    deaths: int
    average_score_per_kill: float
    average_score_per_life: float
    completed: bool
    opponents_defeated: int
    activity_duration_seconds: int
    standing: int
    team: int
    completion_reason: int
    start_seconds: int
    time_played_seconds: int
    player_count: int
    team_score: int
    precision_kills: int
    weapon_kills_ability: int
    weapon_kills_grenade: int
    weapon_kills_melee: int
    weapon_kills_super: int
    all_medals_earned: int
    light_level: int


@dataclass
class MedalResultRow:
    """Ligne de la table medal_result (hors clé de stats)."""

    reference_id: str
    count: int


@dataclass
class WeaponResultRow:
    """Ligne de la table weapon_result (hors clé de stats)."""

    reference_id: int
    kills: int
    precision_kills: int
    kills_precision_kills_ratio: float


@dataclass
class EntryRows:
    """Lignes issues d'une entrée joueur du PGCR."""

    member_id: str
    platform: int
    display_name: str
    character_id: str
    class_type: int
    stats: CharacterActivityStatsRow
    medals: list[MedalResultRow] = field(default_factory=list)
    weapons: list[WeaponResultRow] = field(default_factory=list)
