"""Configuration du store d'activités.

Valeurs par défaut surchargeables via l'environnement :
- ACTIVITY_STORE_DATA_DIR : dossier de données
- ACTIVITY_STORE_MANIFEST : chemin explicite du manifest
- ACTIVITY_STORE_BATCH_SIZE : taille des lots de récupération des PGCR
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from activity_store.data.infrastructure.database.duckdb_config import DuckDBConfig
from activity_store.utils.paths import MANIFEST_FILENAME, STORE_FILENAME, get_default_data_dir

logger = logging.getLogger(__name__)

# Nombre de PGCR récupérés en parallèle par lot
DEFAULT_PGCR_BATCH_SIZE = 24


@dataclass
class StoreConfig:
    """Configuration d'une session du store.

    Attributes:
        data_dir: Dossier contenant le store et le manifest.
        store_file_name: Nom du fichier DuckDB du store.
        manifest_file_name: Nom du fichier du manifest.
        manifest_path: Chemin explicite du manifest (prioritaire sur data_dir).
        pgcr_batch_size: Nombre de récupérations concurrentes par lot.
        optimize_on_commit: Émettre un CHECKPOINT après chaque activité insérée.
        duckdb: Paramètres DuckDB appliqués à la connexion du store.
    """

    data_dir: Path | None = None
    store_file_name: str = STORE_FILENAME
    manifest_file_name: str = MANIFEST_FILENAME
    manifest_path: Path | None = None
    pgcr_batch_size: int = DEFAULT_PGCR_BATCH_SIZE
    optimize_on_commit: bool = True
    duckdb: DuckDBConfig = field(default_factory=DuckDBConfig)

    def __post_init__(self) -> None:
        """Applique les overrides depuis l'environnement."""
        if self.data_dir is None:
            self.data_dir = get_default_data_dir()
        self.data_dir = Path(self.data_dir)

        if self.manifest_path is None and (env_manifest := os.environ.get("ACTIVITY_STORE_MANIFEST")):
            self.manifest_path = Path(env_manifest)
        if self.manifest_path is not None:
            self.manifest_path = Path(self.manifest_path)

        if env_batch := os.environ.get("ACTIVITY_STORE_BATCH_SIZE"):
            try:
                self.pgcr_batch_size = int(env_batch)
            except ValueError:
                logger.warning(f"ACTIVITY_STORE_BATCH_SIZE invalide ignoré: {env_batch!r}")

        if self.pgcr_batch_size < 1:
            raise ValueError(f"pgcr_batch_size doit être >= 1 (reçu {self.pgcr_batch_size})")

    @property
    def store_path(self) -> Path:
        """Chemin du fichier DuckDB du store."""
        return self.data_dir / self.store_file_name

    @property
    def resolved_manifest_path(self) -> Path:
        """Chemin du manifest (explicite ou dans data_dir)."""
        if self.manifest_path is not None:
            return self.manifest_path
        return self.data_dir / self.manifest_file_name
