"""Enums de référence Destiny 2 (API Bungie.net).

Ce module fournit les énumérations utilisées comme discriminants :
- Mode : DestinyActivityModeType
- Platform : BungieMembershipType
- CharacterClass : classe du personnage (et hashes associés)
- Standing, CompletionReason : résultats d'activité
- ItemType, ItemSubType : affichage des armes

Source : https://bungie-net.github.io/multi/schema_Destiny-HistoricalStats-Definitions-DestinyActivityModeType.html
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final

# Hashes de director activity ignorés lors de l'alimentation de la file
EXCLUDED_DIRECTOR_ACTIVITY_HASHES: Final[frozenset[int]] = frozenset({2526740498, 248695599})

# Identifiant de l'équipe synthétique quand l'activité n'a pas d'équipes
NO_TEAMS_INDEX: Final[int] = 253


class Mode(IntEnum):
    """Modes d'activité (DestinyActivityModeType)."""

    UNKNOWN = -1
    NONE = 0
    STORY = 2
    STRIKE = 3
    RAID = 4
    ALL_PVP = 5
    PATROL = 6
    ALL_PVE = 7
    CONTROL = 10
    CLASH = 12
    CRIMSON_DOUBLES = 15
    NIGHTFALL = 16
    HEROIC_NIGHTFALL = 17
    ALL_STRIKES = 18
    IRON_BANNER = 19
    ALL_MAYHEM = 25
    SUPREMACY = 31
    PRIVATE_MATCHES_ALL = 32
    SURVIVAL = 37
    COUNTDOWN = 38
    TRIALS_OF_THE_NINE = 39
    SOCIAL = 40
    TRIALS_COUNTDOWN = 41
    TRIALS_SURVIVAL = 42
    IRON_BANNER_CONTROL = 43
    IRON_BANNER_CLASH = 44
    IRON_BANNER_SUPREMACY = 45
    SCORED_NIGHTFALL = 46
    SCORED_HEROIC_NIGHTFALL = 47
    RUMBLE = 48
    ALL_DOUBLES = 49
    DOUBLES = 50
    PRIVATE_MATCHES_CLASH = 51
    PRIVATE_MATCHES_CONTROL = 52
    PRIVATE_MATCHES_SUPREMACY = 53
    PRIVATE_MATCHES_COUNTDOWN = 54
    PRIVATE_MATCHES_SURVIVAL = 55
    PRIVATE_MATCHES_MAYHEM = 56
    PRIVATE_MATCHES_RUMBLE = 57
    HEROIC_ADVENTURE = 58
    SHOWDOWN = 59
    LOCKDOWN = 60
    SCORCHED = 61
    SCORCHED_TEAM = 62
    GAMBIT = 63
    ALL_PVE_COMPETITIVE = 64
    BREAKTHROUGH = 65
    BLACK_ARMORY_RUN = 66
    SALVAGE = 67
    IRON_BANNER_SALVAGE = 68
    PVP_COMPETITIVE = 69
    PVP_QUICKPLAY = 70
    CLASH_QUICKPLAY = 71
    CLASH_COMPETITIVE = 72
    CONTROL_QUICKPLAY = 73
    CONTROL_COMPETITIVE = 74
    GAMBIT_PRIME = 75
    RECKONING = 76
    MENAGERIE = 77
    VEX_OFFENSIVE = 78
    NIGHTMARE_HUNT = 79
    ELIMINATION = 80
    MOMENTUM = 81
    DUNGEON = 82
    SUNDIAL = 83
    TRIALS_OF_OSIRIS = 84
    DARES = 85
    OFFENSIVE = 86
    LOST_SECTOR = 87
    RIFT = 88
    ZONE_CONTROL = 89
    IRON_BANNER_RIFT = 90
    IRON_BANNER_ZONE_CONTROL = 91

    @classmethod
    def from_id(cls, value: int | None) -> Mode:
        """Convertit un identifiant brut, UNKNOWN si non référencé."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_private(self) -> bool:
        """True pour les modes de parties privées."""
        return self in PRIVATE_MODES

    def display_name(self) -> str:
        """Nom lisible du mode (ex: 'Private Matches All')."""
        return self.name.replace("_", " ").title()


PRIVATE_MODES: Final[frozenset[Mode]] = frozenset(
    {
        Mode.PRIVATE_MATCHES_ALL,
        Mode.PRIVATE_MATCHES_CLASH,
        Mode.PRIVATE_MATCHES_CONTROL,
        Mode.PRIVATE_MATCHES_SUPREMACY,
        Mode.PRIVATE_MATCHES_COUNTDOWN,
        Mode.PRIVATE_MATCHES_SURVIVAL,
        Mode.PRIVATE_MATCHES_MAYHEM,
        Mode.PRIVATE_MATCHES_RUMBLE,
    }
)

# Périmètres de découverte, dans l'ordre de traitement
SYNC_SCOPES: Final[tuple[Mode, ...]] = (Mode.PRIVATE_MATCHES_ALL, Mode.ALL_PVP)

# Valeur sans correspondance dans activity_mode : aucune exclusion
NO_MODE_RESTRICTION: Final[int] = -1


def excluded_mode_for(mode: Mode) -> int:
    """Tag de mode à exclure pour une requête sur ce mode.

    Un mode public exclut les parties privées (PRIVATE_MATCHES_ALL) ; un mode
    privé n'exclut rien.
    """
    if Mode.from_id(mode).is_private:
        return NO_MODE_RESTRICTION
    return int(Mode.PRIVATE_MATCHES_ALL)


class Platform(IntEnum):
    """Plateformes de compte (BungieMembershipType)."""

    UNKNOWN = 0
    XBOX = 1
    PSN = 2
    STEAM = 3
    BLIZZARD = 4
    STADIA = 5
    EPIC = 6
    DEMON = 10
    BUNGIE_NEXT = 254

    @classmethod
    def from_id(cls, value: int | None) -> Platform:
        """Convertit un identifiant brut, UNKNOWN si non référencé."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_name(cls, name: str) -> Platform:
        """Parse un nom de plateforme (xbox, psn, steam, ...).

        Raises:
            ValueError: Si le nom n'est pas reconnu.
        """
        key = name.strip().upper().replace("-", "_")
        if key.isdigit():
            try:
                return cls(int(key))
            except ValueError:
                raise ValueError(f"Plateforme inconnue: {name!r}") from None
        aliases = {"PLAYSTATION": "PSN", "PC": "STEAM", "EGS": "EPIC"}
        key = aliases.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Plateforme inconnue: {name!r}") from None


class CharacterClass(IntEnum):
    """Classes de personnage (DestinyClass)."""

    TITAN = 0
    HUNTER = 1
    WARLOCK = 2
    UNKNOWN = 3

    @classmethod
    def from_id(cls, value: int | None) -> CharacterClass:
        """Convertit un identifiant brut, UNKNOWN si non référencé."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_hash(cls, class_hash: int | None) -> CharacterClass:
        """Convertit un classHash du manifest en classe."""
        return CLASS_HASHES.get(class_hash or 0, cls.UNKNOWN)


CLASS_HASHES: Final[dict[int, CharacterClass]] = {
    3655393761: CharacterClass.TITAN,
    671679327: CharacterClass.HUNTER,
    2271682572: CharacterClass.WARLOCK,
}


class CharacterClassSelection(str, Enum):
    """Sélection du personnage pour les requêtes de récupération."""

    TITAN = "titan"
    HUNTER = "hunter"
    WARLOCK = "warlock"
    LAST_ACTIVE = "last_active"
    ALL = "all"

    def to_character_class(self) -> CharacterClass | None:
        """Classe correspondante, None pour LAST_ACTIVE et ALL."""
        return {
            CharacterClassSelection.TITAN: CharacterClass.TITAN,
            CharacterClassSelection.HUNTER: CharacterClass.HUNTER,
            CharacterClassSelection.WARLOCK: CharacterClass.WARLOCK,
        }.get(self)


class Standing(IntEnum):
    """Résultat d'un joueur ou d'une équipe."""

    VICTORY = 0
    DEFEAT = 1
    UNKNOWN = 2

    @classmethod
    def from_value(cls, value: float | int | None) -> Standing:
        """Convertit la valeur de stat 'standing' de l'API."""
        if value is None:
            return cls.UNKNOWN
        v = int(value)
        if v == 0:
            return cls.VICTORY
        if v == 1:
            return cls.DEFEAT
        return cls.UNKNOWN


class CompletionReason(IntEnum):
    """Raison de fin d'activité."""

    OBJECTIVE_COMPLETED = 0
    TIMER_FINISHED = 1
    FAILED = 2
    NO_OPPONENTS = 3
    MERCY = 4
    UNKNOWN = 255

    @classmethod
    def from_value(cls, value: float | int | None) -> CompletionReason:
        """Convertit la valeur de stat 'completionReason' de l'API."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN


class ItemType(IntEnum):
    """Types d'objets (DestinyItemType), sous-ensemble utile aux armes."""

    NONE = 0
    CURRENCY = 1
    ARMOR = 2
    WEAPON = 3
    MESSAGE = 7
    ENGRAM = 8
    CONSUMABLE = 9
    EXCHANGE_MATERIAL = 10
    MISSION_REWARD = 11
    QUEST_STEP = 12
    QUEST_STEP_COMPLETE = 13
    EMBLEM = 14
    QUEST = 15
    SUBCLASS = 16
    CLAN_BANNER = 17
    AURA = 18
    MOD = 19
    DUMMY = 20
    SHIP = 21
    VEHICLE = 22
    EMOTE = 23
    GHOST = 24
    PACKAGE = 25
    BOUNTY = 26
    WRAPPER = 27
    SEASONAL_ARTIFACT = 28
    FINISHER = 29
    UNKNOWN = -1

    @classmethod
    def from_id(cls, value: int | None) -> ItemType:
        """Convertit un identifiant brut, UNKNOWN si non référencé."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN


class ItemSubType(IntEnum):
    """Sous-types d'objets (DestinyItemSubType), sous-ensemble armes."""

    NONE = 0
    AUTO_RIFLE = 6
    SHOTGUN = 7
    MACHINEGUN = 8
    HAND_CANNON = 9
    ROCKET_LAUNCHER = 10
    FUSION_RIFLE = 11
    SNIPER_RIFLE = 12
    PULSE_RIFLE = 13
    SCOUT_RIFLE = 14
    SIDEARM = 17
    SWORD = 18
    MASK = 19
    SHADER = 20
    ORNAMENT = 21
    FUSION_RIFLE_LINE = 22
    GRENADE_LAUNCHER = 23
    SUBMACHINE_GUN = 24
    TRACE_RIFLE = 25
    HELMET_ARMOR = 26
    GAUNTLETS_ARMOR = 27
    CHEST_ARMOR = 28
    LEG_ARMOR = 29
    CLASS_ARMOR = 30
    BOW = 31
    DUMMY_REPEATABLE_BOUNTY = 32
    GLAIVE = 33
    UNKNOWN = -1

    @classmethod
    def from_id(cls, value: int | None) -> ItemSubType:
        """Convertit un identifiant brut, UNKNOWN si non référencé."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(int(value))
        except ValueError:
            return cls.UNKNOWN

