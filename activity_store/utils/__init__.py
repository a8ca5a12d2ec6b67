"""Utilitaires partagés pour Destiny Activity Store."""

from activity_store.utils.hashes import (
    HASH_SIGN_BIT,
    HASH_SPACE,
    convert_hash_to_id,
    convert_id_to_hash,
)
from activity_store.utils.paths import (
    MANIFEST_FILENAME,
    STORE_FILENAME,
    get_default_data_dir,
)

__all__ = [
    "HASH_SIGN_BIT",
    "HASH_SPACE",
    "MANIFEST_FILENAME",
    "STORE_FILENAME",
    "convert_hash_to_id",
    "convert_id_to_hash",
    "get_default_data_dir",
]
