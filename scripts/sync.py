#!/usr/bin/env python3
"""Script de synchronisation d'un joueur.

Récupère l'historique Crucible d'un joueur (parties privées et PvP public)
et l'insère dans le store DuckDB local.

Usage:
    python scripts/sync.py --member-id 4611686018467260757 --platform steam
    python scripts/sync.py --member-id 4611686018467260757 --platform steam --format tsv
    python scripts/sync.py --member-id 4611686018467260757 --platform steam --last
    python scripts/sync.py --stats
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ajouter le répertoire parent au path pour les imports
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from activity_store.config import StoreConfig  # noqa: E402
from activity_store.data.domain.models.report import CrucibleActivity  # noqa: E402
from activity_store.data.domain.refdata import (  # noqa: E402
    CharacterClassSelection,
    Mode,
    Platform,
)
from activity_store.data.sync.api_client import BungieAPIClient  # noqa: E402
from activity_store.data.sync.models import SyncResult  # noqa: E402
from activity_store.errors import ActivityStoreError  # noqa: E402
from activity_store.session import ActivityStoreSession  # noqa: E402

# Configuration du logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Affichage
# =============================================================================


def format_result(result: SyncResult, output_format: str) -> str:
    """Résumé du sync au format demandé (default ou tsv)."""
    if output_format == "tsv":
        return f"{result.total_synced}\t{result.total_in_queue}\t{len(result.errors)}"
    return result.to_message()


def format_activity(activity: CrucibleActivity, member_id: str) -> str:
    """Résumé lisible d'une activité (équipes et performance du joueur)."""
    details = activity.details
    lines = [
        f"{details.period:%Y-%m-%d %H:%M} UTC - {details.map_name} ({details.mode.display_name()})",
    ]
    for team in activity.teams.values():
        name = team.display_name or f"Équipe {team.id}"
        lines.append(f"  {name}: {team.score} ({team.standing.name})")

    performance = activity.get_member_performance(member_id)
    if performance is not None:
        stats = performance.stats
        lines.append(
            f"  {performance.player.display_name}: {stats.kills}/{stats.deaths}/{stats.assists} "
            f"(efficacité {stats.efficiency:.2f})"
        )
    return "\n".join(lines)


def print_stats(session: ActivityStoreSession) -> None:
    """Affiche les compteurs du store."""
    store = session.store
    print(f"Store: {store.db_path}")
    print(f"  Activités: {store.count_activities()}")
    print(f"  En file: {store.count_queued()}")


# =============================================================================
# Sync
# =============================================================================


async def run_sync(args: argparse.Namespace, config: StoreConfig) -> int:
    platform = Platform.from_name(args.platform)

    async with BungieAPIClient(max_activities=args.max_activities) as client:
        with ActivityStoreSession(config, api=client) as session:
            result = await session.engine.sync(args.member_id, platform)
            print(format_result(result, args.format))

            if args.last:
                activity = await session.repository.retrieve_last_activity(
                    args.member_id, platform, CharacterClassSelection.ALL, Mode.ALL_PVP
                )
                print(format_activity(activity, args.member_id))

    return 0 if result.success else 1


def main() -> int:
    """Point d'entrée principal."""
    parser = argparse.ArgumentParser(
        description="Synchronisation de l'historique Crucible d'un joueur Destiny 2",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples:
  python scripts/sync.py --member-id 4611686018467260757 --platform steam
  python scripts/sync.py --member-id 4611686018467260757 --platform xbox --format tsv
  python scripts/sync.py --stats --data-dir ./data
        """,
    )

    parser.add_argument("--member-id", type=str, default=None, help="Identifiant du compte Destiny")
    parser.add_argument(
        "--platform",
        type=str,
        default="steam",
        help="Plateforme du compte (xbox, psn, steam, stadia, epic ou identifiant numérique)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Dossier de données (défaut: ACTIVITY_STORE_DATA_DIR ou dossier utilisateur)",
    )
    parser.add_argument(
        "--manifest",
        type=str,
        default=None,
        help="Chemin du manifest (défaut: <data-dir>/manifest.duckdb)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Nombre de PGCR récupérés en parallèle",
    )
    parser.add_argument(
        "--max-activities",
        type=int,
        default=1000,
        help="Nombre maximum d'activités découvertes par périmètre",
    )
    parser.add_argument(
        "--format",
        type=str,
        default="default",
        choices=["default", "tsv"],
        help="Format du résumé (tsv: synchronisées, en file, erreurs)",
    )
    parser.add_argument(
        "--last",
        action="store_true",
        help="Affiche la dernière activité PvP après le sync (nécessite le manifest)",
    )
    parser.add_argument("--stats", action="store_true", help="Affiche les statistiques du store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Mode verbeux")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = StoreConfig(
            data_dir=Path(args.data_dir) if args.data_dir else None,
            manifest_path=Path(args.manifest) if args.manifest else None,
        )
        if args.batch_size is not None:
            if args.batch_size < 1:
                raise ValueError(f"--batch-size doit être >= 1 (reçu {args.batch_size})")
            config.pgcr_batch_size = args.batch_size
    except ValueError as e:
        logger.error(str(e))
        return 1

    if args.stats:
        with ActivityStoreSession(config) as session:
            print_stats(session)
        return 0

    if not args.member_id:
        parser.error("--member-id est requis pour synchroniser")

    try:
        return asyncio.run(run_sync(args, config))
    except (ActivityStoreError, ValueError) as e:
        logger.error(f"Sync échoué: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
