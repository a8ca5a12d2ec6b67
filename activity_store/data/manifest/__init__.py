"""Manifest Destiny : définitions et cache en lecture seule."""

from activity_store.data.manifest.definitions import (
    ActivityDefinition,
    ActivityTypeDefinition,
    DefinitionType,
    DestinationDefinition,
    DisplayProperties,
    FindResult,
    HistoricalStatsDefinition,
    InventoryItemDefinition,
    PlaceDefinition,
)
from activity_store.data.manifest.resolver import ManifestResolver

__all__ = [
    "ActivityDefinition",
    "ActivityTypeDefinition",
    "DefinitionType",
    "DestinationDefinition",
    "DisplayProperties",
    "FindResult",
    "HistoricalStatsDefinition",
    "InventoryItemDefinition",
    "ManifestResolver",
    "PlaceDefinition",
]
