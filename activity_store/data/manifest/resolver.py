"""Résolveur de définitions du manifest Destiny.

Ce module fournit ManifestResolver, un cache en lecture seule au-dessus du
manifest (reference dataset). Le manifest peut être :
- une base DuckDB (.duckdb) contenant les tables de définitions
- la base SQLite officielle (manifest.sqlite3), lue via le scanner DuckDB

Chaque table expose un identifiant signé 32 bits (id) et un JSON (json) ;
les hashes de l'API sont convertis via convert_hash_to_id avant lecture.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import duckdb
from pydantic import BaseModel

from activity_store.data.infrastructure.database.duckdb_config import (
    MANIFEST_CONFIG,
    DuckDBConfig,
    get_attach_sql,
)
from activity_store.data.manifest.definitions import (
    ActivityDefinition,
    ActivityTypeDefinition,
    DefinitionType,
    DestinationDefinition,
    FindResult,
    HistoricalStatsDefinition,
    InventoryItemDefinition,
    PlaceDefinition,
)
from activity_store.errors import ManifestNotFoundError
from activity_store.utils.hashes import convert_hash_to_id

logger = logging.getLogger(__name__)

# Alias du catalogue attaché
MANIFEST_ALIAS = "manifest"


def _quote_identifier(name: str) -> str:
    """Échappe un identifiant SQL (nom de table)."""
    return '"' + name.replace('"', '""') + '"'


def _decode_json(raw: Any) -> str:
    """Le manifest SQLite stocke le JSON en BLOB."""
    if isinstance(raw, bytes | bytearray):
        return bytes(raw).decode("utf-8")
    return str(raw)


class ManifestResolver:
    """Cache de définitions en lecture seule (read-through).

    Seules les définitions trouvées sont mises en cache : un échec de
    recherche est retenté à chaque appel. Le cache n'est jamais invalidé
    pendant la durée de vie de la session.

    Usage:
        with ManifestResolver("manifest.duckdb") as resolver:
            definition = resolver.get_activity_definition(2693136600)
            name = definition.display_properties.name if definition else "Unknown"
    """

    def __init__(
        self,
        manifest_path: Path | str,
        *,
        config: DuckDBConfig | None = None,
    ) -> None:
        """Ouvre le manifest en lecture seule.

        Args:
            manifest_path: Chemin vers le manifest (.duckdb ou SQLite).
            config: Configuration DuckDB (MANIFEST_CONFIG par défaut).

        Raises:
            ManifestNotFoundError: Si le fichier n'existe pas.
        """
        self.manifest_path = Path(manifest_path)
        if not self.manifest_path.exists():
            raise ManifestNotFoundError(str(self.manifest_path))

        self._conn: duckdb.DuckDBPyConnection | None = duckdb.connect(":memory:")
        (config or MANIFEST_CONFIG).apply(self._conn)

        db_type = None if self.manifest_path.suffix == ".duckdb" else "SQLITE"
        if db_type == "SQLITE":
            self._conn.execute("INSTALL sqlite")
            self._conn.execute("LOAD sqlite")
        self._conn.execute(
            get_attach_sql(str(self.manifest_path), MANIFEST_ALIAS, read_only=True, db_type=db_type)
        )
        logger.debug(f"Manifest ouvert: {self.manifest_path}")

        self._cache: dict[DefinitionType, dict[int | str, BaseModel]] = {
            definition_type: {} for definition_type in DefinitionType
        }

    # =========================================================================
    # Connexion
    # =========================================================================

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise RuntimeError("Manifest fermé.")
        return self._conn

    def _table_ref(self, table_name: str) -> str:
        return f"{MANIFEST_ALIAS}.main.{_quote_identifier(table_name)}"

    # =========================================================================
    # Lecture générique
    # =========================================================================

    def get(self, definition_type: DefinitionType, hash_value: int) -> BaseModel | None:
        """Retourne la définition d'un hash, via le cache.

        Args:
            definition_type: Type (table) de définition.
            hash_value: Hash non signé de l'API.

        Returns:
            Définition validée, ou None si absente du manifest.
        """
        row_id = convert_hash_to_id(hash_value)
        return self._get_cached(definition_type, "id", row_id)

    def _get_cached(
        self,
        definition_type: DefinitionType,
        key_column: str,
        key: int | str,
    ) -> BaseModel | None:
        cache = self._cache[definition_type]
        if key in cache:
            return cache[key]

        row = self.connection.execute(
            f'SELECT "json" FROM {self._table_ref(definition_type.table_name)} '
            f"WHERE {_quote_identifier(key_column)} = ? LIMIT 1",
            [key],
        ).fetchone()
        if row is None:
            logger.debug(f"Définition absente: {definition_type.table_name} {key_column}={key}")
            return None

        definition = definition_type.model.model_validate_json(_decode_json(row[0]))
        cache[key] = definition
        return definition

    def is_cached(self, definition_type: DefinitionType, hash_value: int) -> bool:
        """True si la définition du hash est déjà en cache."""
        return convert_hash_to_id(hash_value) in self._cache[definition_type]

    # =========================================================================
    # Accesseurs typés
    # =========================================================================

    def get_activity_definition(self, hash_value: int) -> ActivityDefinition | None:
        return self.get(DefinitionType.ACTIVITY, hash_value)  # type: ignore[return-value]

    def get_inventory_item_definition(self, hash_value: int) -> InventoryItemDefinition | None:
        return self.get(DefinitionType.INVENTORY_ITEM, hash_value)  # type: ignore[return-value]

    def get_destination_definition(self, hash_value: int) -> DestinationDefinition | None:
        return self.get(DefinitionType.DESTINATION, hash_value)  # type: ignore[return-value]

    def get_place_definition(self, hash_value: int) -> PlaceDefinition | None:
        return self.get(DefinitionType.PLACE, hash_value)  # type: ignore[return-value]

    def get_activity_type_definition(self, hash_value: int) -> ActivityTypeDefinition | None:
        return self.get(DefinitionType.ACTIVITY_TYPE, hash_value)  # type: ignore[return-value]

    def get_historical_stats_definition(self, stat_id: str) -> HistoricalStatsDefinition | None:
        """Définition d'une stat historique (médaille).

        Ces définitions sont indexées par leur statId (colonne key) et non
        par un hash : aucune conversion n'est appliquée.
        """
        return self._get_cached(DefinitionType.HISTORICAL_STATS, "key", stat_id)  # type: ignore[return-value]

    # =========================================================================
    # Recherche
    # =========================================================================

    def get_tables(self) -> list[str]:
        """Liste les tables du manifest."""
        rows = self.connection.execute(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_catalog = ? ORDER BY table_name",
            [MANIFEST_ALIAS],
        ).fetchall()
        return [r[0] for r in rows]

    def get_tables_with_id_column(self) -> list[str]:
        """Liste les tables exposant une colonne id (recherche par hash)."""
        rows = self.connection.execute(
            "SELECT DISTINCT table_name FROM information_schema.columns "
            "WHERE table_catalog = ? AND column_name = 'id' ORDER BY table_name",
            [MANIFEST_ALIAS],
        ).fetchall()
        return [r[0] for r in rows]

    def find(self, hash_value: int) -> list[FindResult]:
        """Recherche un hash dans toutes les tables du manifest.

        Args:
            hash_value: Hash non signé.

        Returns:
            Une entrée par ligne trouvée (table, propriétés d'affichage, JSON brut).
        """
        row_id = convert_hash_to_id(hash_value)
        results: list[FindResult] = []

        for table_name in self.get_tables_with_id_column():
            rows = self.connection.execute(
                f'SELECT "json" FROM {self._table_ref(table_name)} WHERE id = ?',
                [row_id],
            ).fetchall()
            for (raw,) in rows:
                raw_json = _decode_json(raw)
                data = json.loads(raw_json)
                results.append(FindResult.from_raw(table_name, raw_json, data))

        logger.debug(f"find({hash_value}): {len(results)} résultat(s)")
        return results

    # =========================================================================
    # Cycle de vie
    # =========================================================================

    def close(self) -> None:
        """Ferme la connexion DuckDB."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> ManifestResolver:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
