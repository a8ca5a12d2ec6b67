"""Tests du cache de définitions (ManifestResolver)."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import HIGH_BIT_WEAPON_HASH, MAP_REFERENCE_ID, WEAPON_HASH, build_manifest

from activity_store.data.manifest import DefinitionType, ManifestResolver
from activity_store.data.manifest.definitions import BUNGIE_BASE_URL
from activity_store.errors import ManifestNotFoundError


@pytest.fixture
def resolver(manifest_path: Path):
    r = ManifestResolver(manifest_path)
    yield r
    r.close()


class TestOpening:
    """Ouverture du manifest."""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestNotFoundError):
            ManifestResolver(tmp_path / "absent.duckdb")

    def test_missing_file_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            ManifestResolver(tmp_path / "absent.sqlite3")

    def test_context_manager_closes(self, manifest_path: Path) -> None:
        with ManifestResolver(manifest_path) as r:
            assert r.get_activity_definition(MAP_REFERENCE_ID) is not None
        with pytest.raises(RuntimeError):
            _ = r.connection

    def test_lists_tables(self, resolver: ManifestResolver) -> None:
        tables = resolver.get_tables()
        assert "DestinyActivityDefinition" in tables
        assert "DestinyHistoricalStatsDefinition" in tables

        with_id = resolver.get_tables_with_id_column()
        assert "DestinyInventoryItemDefinition" in with_id
        assert "DestinyHistoricalStatsDefinition" not in with_id


class TestGet:
    """Lecture typée et mise en cache."""

    def test_activity_definition(self, resolver: ManifestResolver) -> None:
        definition = resolver.get_activity_definition(MAP_REFERENCE_ID)

        assert definition is not None
        assert definition.hash == MAP_REFERENCE_ID
        assert definition.display_properties.name == "Javelin-4"
        assert definition.pgcr_image == f"{BUNGIE_BASE_URL}/img/theme/destiny/bgs/pgcrs/javelin.jpg"

    def test_high_bit_hash_is_converted(self, resolver: ManifestResolver) -> None:
        definition = resolver.get_inventory_item_definition(HIGH_BIT_WEAPON_HASH)

        assert definition is not None
        assert definition.display_properties.name == "Max Hash"

    def test_missing_definition_returns_none(self, resolver: ManifestResolver) -> None:
        assert resolver.get_destination_definition(42) is None
        assert resolver.get_place_definition(42) is None
        assert resolver.get_activity_type_definition(42) is None

    def test_only_found_definitions_are_cached(self, resolver: ManifestResolver) -> None:
        resolver.get_inventory_item_definition(WEAPON_HASH)
        resolver.get_inventory_item_definition(12345)

        assert resolver.is_cached(DefinitionType.INVENTORY_ITEM, WEAPON_HASH)
        assert not resolver.is_cached(DefinitionType.INVENTORY_ITEM, 12345)

    def test_cached_definition_is_reused(self, resolver: ManifestResolver) -> None:
        first = resolver.get(DefinitionType.INVENTORY_ITEM, WEAPON_HASH)
        second = resolver.get(DefinitionType.INVENTORY_ITEM, WEAPON_HASH)

        assert first is second

    def test_cache_is_per_type(self, resolver: ManifestResolver) -> None:
        resolver.get_activity_definition(MAP_REFERENCE_ID)

        assert resolver.is_cached(DefinitionType.ACTIVITY, MAP_REFERENCE_ID)
        assert not resolver.is_cached(DefinitionType.DESTINATION, MAP_REFERENCE_ID)

    def test_invalid_hash_raises(self, resolver: ManifestResolver) -> None:
        with pytest.raises(ValueError):
            resolver.get_activity_definition(2**32)

    def test_historical_stats_by_stat_id(self, resolver: ManifestResolver) -> None:
        medal = resolver.get_historical_stats_definition("medalMatchMostDamage")

        assert medal is not None
        assert medal.stat_name == "Most Damage"
        assert medal.icon_image == f"{BUNGIE_BASE_URL}/common/destiny2_content/icons/medal.png"
        assert resolver.get_historical_stats_definition("medalUnknown") is None


class TestFind:
    """Recherche d'un hash dans toutes les tables."""

    def test_find_across_tables(self, tmp_path: Path) -> None:
        shared_hash = 2166136261
        path = build_manifest(
            tmp_path / "manifest.duckdb",
            definitions={
                "DestinyActivityDefinition": [
                    {"hash": shared_hash, "displayProperties": {"name": "Activité"}}
                ],
                "DestinyPlaceDefinition": [{"hash": shared_hash, "displayProperties": {"name": "Lieu"}}],
                "DestinyDestinationDefinition": [{"hash": 1, "displayProperties": {"name": "Autre"}}],
            },
        )
        with ManifestResolver(path) as r:
            results = r.find(shared_hash)

        assert sorted(result.table_name for result in results) == [
            "DestinyActivityDefinition",
            "DestinyPlaceDefinition",
        ]
        names = {result.display_properties.name for result in results}
        assert names == {"Activité", "Lieu"}
        assert all(str(shared_hash) in result.raw_json for result in results)

    def test_find_without_match(self, resolver: ManifestResolver) -> None:
        assert resolver.find(7) == []

    def test_find_without_display_properties(self, tmp_path: Path) -> None:
        path = build_manifest(
            tmp_path / "manifest.duckdb",
            definitions={"DestinyActivityTypeDefinition": [{"hash": 99}]},
        )
        with ManifestResolver(path) as r:
            results = r.find(99)

        assert len(results) == 1
        assert results[0].display_properties is None
