"""Exceptions du store d'activités.

Trois familles sont distinguées :
- introuvable (activité, personnage, manifest) : l'appelant peut réagir
- échec transitoire du client API : on réessaiera au prochain sync
- échec de transaction du store : la transaction est annulée
"""

from __future__ import annotations


class ActivityStoreError(Exception):
    """Classe de base des erreurs du store."""


# =============================================================================
# Introuvable
# =============================================================================


class ActivityNotFoundError(ActivityStoreError, LookupError):
    """Levée lorsqu'aucune activité ne correspond à la recherche."""

    def __init__(self, detail: str = "") -> None:
        message = "Activité introuvable dans le store"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CharacterNotFoundError(ActivityStoreError, LookupError):
    """Levée lorsque le personnage demandé n'existe pas pour ce joueur."""

    def __init__(self, selection: str) -> None:
        self.selection = selection
        super().__init__(f"Aucun personnage ne correspond à la sélection '{selection}'")


class NoCharactersError(ActivityStoreError, LookupError):
    """Levée lorsque le joueur n'a aucun personnage."""

    def __init__(self, member_id: str) -> None:
        self.member_id = member_id
        super().__init__(f"Aucun personnage trouvé pour le joueur {member_id}")


class ManifestNotFoundError(ActivityStoreError, FileNotFoundError):
    """Levée lorsque le fichier du manifest est absent.

    Télécharger le manifest (base SQLite ou DuckDB) dans le dossier de données.
    """

    def __init__(self, manifest_path: str) -> None:
        self.manifest_path = manifest_path
        super().__init__(f"Manifest introuvable: {manifest_path}")


# =============================================================================
# Client API
# =============================================================================


class ApiError(ActivityStoreError):
    """Échec d'un appel à l'API distante (transport, statut ou payload)."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        error_code: int | None = None,
    ) -> None:
        self.status = status
        self.error_code = error_code
        super().__init__(message)


# =============================================================================
# Transactions du store
# =============================================================================


class QueueUpdateError(ActivityStoreError):
    """Échec de l'alimentation de la file : la page entière est annulée."""


class ActivityInsertError(ActivityStoreError):
    """Échec de l'insertion d'une activité : aucune ligne partielle n'est conservée."""

    def __init__(self, activity_id: int, cause: BaseException) -> None:
        self.activity_id = activity_id
        super().__init__(f"Insertion de l'activité {activity_id} annulée: {cause}")
