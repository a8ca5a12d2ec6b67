"""Modèles des définitions du manifest Destiny.

Chaque table du manifest stocke une définition JSON par ligne. Seuls les
champs utiles aux rapports sont validés ; le reste est ignoré.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Préfixe des chemins d'images relatifs du manifest
BUNGIE_BASE_URL = "https://www.bungie.net"


class _DefinitionModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class DisplayProperties(_DefinitionModel):
    """Propriétés d'affichage communes à la plupart des définitions."""

    name: str = ""
    description: str = ""
    icon: str | None = None
    has_icon: bool = False


class ActivityDefinition(_DefinitionModel):
    """DestinyActivityDefinition (cartes, playlists)."""

    hash: int
    display_properties: DisplayProperties = Field(default_factory=DisplayProperties)
    pgcr_image: str | None = None
    destination_hash: int | None = None
    place_hash: int | None = None
    activity_type_hash: int | None = None

    @field_validator("pgcr_image")
    @classmethod
    def _absolute_image(cls, v: str | None) -> str | None:
        if v and v.startswith("/"):
            return f"{BUNGIE_BASE_URL}{v}"
        return v


class InventoryItemDefinition(_DefinitionModel):
    """DestinyInventoryItemDefinition (armes)."""

    hash: int
    display_properties: DisplayProperties = Field(default_factory=DisplayProperties)
    item_type_display_name: str | None = None
    item_type_and_tier_display_name: str | None = None
    item_type: int = -1
    item_sub_type: int = -1


class DestinationDefinition(_DefinitionModel):
    """DestinyDestinationDefinition."""

    hash: int
    display_properties: DisplayProperties = Field(default_factory=DisplayProperties)
    place_hash: int | None = None


class PlaceDefinition(_DefinitionModel):
    """DestinyPlaceDefinition."""

    hash: int
    display_properties: DisplayProperties = Field(default_factory=DisplayProperties)


class ActivityTypeDefinition(_DefinitionModel):
    """DestinyActivityTypeDefinition."""

    hash: int
    display_properties: DisplayProperties = Field(default_factory=DisplayProperties)


class HistoricalStatsDefinition(_DefinitionModel):
    """DestinyHistoricalStatsDefinition (médailles, clé = statId)."""

    stat_id: str
    stat_name: str = ""
    stat_description: str = ""
    icon_image: str | None = None
    weight: int = 0
    medal_tier_hash: int | None = None

    @field_validator("icon_image")
    @classmethod
    def _absolute_image(cls, v: str | None) -> str | None:
        if v and v.startswith("/"):
            return f"{BUNGIE_BASE_URL}{v}"
        return v


class DefinitionType(str, Enum):
    """Types de définitions (valeur = nom de table du manifest)."""

    ACTIVITY = "DestinyActivityDefinition"
    INVENTORY_ITEM = "DestinyInventoryItemDefinition"
    DESTINATION = "DestinyDestinationDefinition"
    PLACE = "DestinyPlaceDefinition"
    ACTIVITY_TYPE = "DestinyActivityTypeDefinition"
    HISTORICAL_STATS = "DestinyHistoricalStatsDefinition"

    @property
    def table_name(self) -> str:
        return self.value

    @property
    def model(self) -> type[BaseModel]:
        return DEFINITION_MODELS[self]


DEFINITION_MODELS: dict[DefinitionType, type[BaseModel]] = {
    DefinitionType.ACTIVITY: ActivityDefinition,
    DefinitionType.INVENTORY_ITEM: InventoryItemDefinition,
    DefinitionType.DESTINATION: DestinationDefinition,
    DefinitionType.PLACE: PlaceDefinition,
    DefinitionType.ACTIVITY_TYPE: ActivityTypeDefinition,
    DefinitionType.HISTORICAL_STATS: HistoricalStatsDefinition,
}


class FindResult(BaseModel):
    """Résultat d'une recherche par hash sur l'ensemble du manifest."""

    table_name: str
    display_properties: DisplayProperties | None = None
    raw_json: str

    @classmethod
    def from_raw(cls, table_name: str, raw_json: str, data: dict[str, Any]) -> FindResult:
        props = data.get("displayProperties")
        return cls(
            table_name=table_name,
            display_properties=DisplayProperties.model_validate(props) if props else None,
            raw_json=raw_json,
        )
