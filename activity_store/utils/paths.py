"""Gestion centralisée des chemins pour Destiny Activity Store.

Emplacements utilisés :
- <data_dir>/activity_store.duckdb : store des activités synchronisées
- <data_dir>/manifest.duckdb : manifest Destiny (lecture seule)

Le dossier de données suit les conventions de la plateforme
(XDG_DATA_HOME, LOCALAPPDATA, ~/Library/Application Support) et peut être
forcé via ACTIVITY_STORE_DATA_DIR.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Nom du dossier applicatif dans le dossier de données utilisateur
APP_DIR_NAME = "activity_store"


# =============================================================================
# Constantes de noms de fichiers
# =============================================================================

# Nom du fichier DuckDB du store
STORE_FILENAME = "activity_store.duckdb"

# Nom du fichier du manifest
MANIFEST_FILENAME = "manifest.duckdb"


# =============================================================================
# Fonctions utilitaires
# =============================================================================


def get_default_data_dir() -> Path:
    """Retourne le dossier de données par défaut.

    Ordre de résolution :
    1. ACTIVITY_STORE_DATA_DIR
    2. Dossier de données de la plateforme

    Returns:
        Chemin du dossier de données (non créé).
    """
    if env_dir := os.environ.get("ACTIVITY_STORE_DATA_DIR"):
        return Path(env_dir).expanduser()

    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / APP_DIR_NAME

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / APP_DIR_NAME

