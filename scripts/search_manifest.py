#!/usr/bin/env python3
"""Recherche d'un hash dans toutes les tables du manifest.

Usage:
    python scripts/search_manifest.py --hash 2693136600
    python scripts/search_manifest.py --hash 2693136600 --manifest data/manifest.sqlite3 --raw
    python scripts/search_manifest.py --tables
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ajouter le répertoire parent au path pour les imports
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from activity_store.config import StoreConfig  # noqa: E402
from activity_store.data.manifest.resolver import ManifestResolver  # noqa: E402
from activity_store.errors import ManifestNotFoundError  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Point d'entrée principal."""
    parser = argparse.ArgumentParser(description="Recherche d'un hash dans le manifest Destiny 2")
    parser.add_argument("--hash", type=int, default=None, help="Hash non signé à rechercher")
    parser.add_argument(
        "--manifest",
        type=str,
        default=None,
        help="Chemin du manifest (défaut: <data-dir>/manifest.duckdb)",
    )
    parser.add_argument("--data-dir", type=str, default=None, help="Dossier de données")
    parser.add_argument("--raw", action="store_true", help="Affiche le JSON brut des définitions")
    parser.add_argument("--tables", action="store_true", help="Liste les tables indexées par id")
    parser.add_argument("-v", "--verbose", action="store_true", help="Mode verbeux")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = StoreConfig(
        data_dir=Path(args.data_dir) if args.data_dir else None,
        manifest_path=Path(args.manifest) if args.manifest else None,
    )

    try:
        resolver = ManifestResolver(config.resolved_manifest_path)
    except ManifestNotFoundError as e:
        logger.error(str(e))
        return 1

    with resolver:
        if args.tables:
            for table_name in resolver.get_tables_with_id_column():
                print(table_name)
            return 0

        if args.hash is None:
            parser.error("--hash ou --tables est requis")

        try:
            results = resolver.find(args.hash)
        except ValueError as e:
            logger.error(str(e))
            return 1

        if not results:
            logger.info(f"Aucune définition pour le hash {args.hash}")
            return 1

        for result in results:
            name = result.display_properties.name if result.display_properties else ""
            print(f"{result.table_name}\t{name}")
            if args.raw:
                print(result.raw_json)

    return 0


if __name__ == "__main__":
    sys.exit(main())
