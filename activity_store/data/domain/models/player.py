"""Modèles du roster d'un joueur (profil et personnages)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from activity_store.data.domain.refdata import CharacterClass, Platform


class CharacterInfo(BaseModel):
    """Personnage d'un joueur (composant Characters du profil)."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    character_id: str
    class_type: CharacterClass = CharacterClass.UNKNOWN
    date_last_played: datetime | None = None
    light: int = 0

    @field_validator("class_type", mode="before")
    @classmethod
    def _parse_class(cls, v: Any) -> CharacterClass:
        if isinstance(v, CharacterClass):
            return v
        return CharacterClass.from_id(v)


class CharacterSnapshot(BaseModel):
    """Ensemble des personnages d'un joueur à un instant donné."""

    characters: list[CharacterInfo] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.characters

    def get_by_class(self, class_type: CharacterClass) -> CharacterInfo | None:
        """Premier personnage de la classe demandée, None si absent."""
        for character in self.characters:
            if character.class_type == class_type:
                return character
        return None

    def get_last_active(self) -> CharacterInfo | None:
        """Personnage joué le plus récemment, None si aucun."""
        if not self.characters:
            return None
        dated = [c for c in self.characters if c.date_last_played is not None]
        if not dated:
            return self.characters[0]
        return max(dated, key=lambda c: c.date_last_played)


class PlayerInfo(BaseModel):
    """Identité d'un joueur et ses personnages."""

    member_id: str
    platform: Platform
    display_name: str = ""
    characters: list[CharacterInfo] = Field(default_factory=list)

    @property
    def snapshot(self) -> CharacterSnapshot:
        return CharacterSnapshot(characters=self.characters)
