"""Conversion des hashes de définitions Destiny.

Le manifest indexe ses définitions par un entier signé 32 bits alors que
l'API expose des hashes non signés. Ce module fait la conversion entre
les deux représentations.
"""

from __future__ import annotations

__all__ = [
    "HASH_SIGN_BIT",
    "HASH_SPACE",
    "convert_hash_to_id",
    "convert_id_to_hash",
]

# Bit de signe d'un entier 32 bits
HASH_SIGN_BIT = 1 << 31

# Nombre de valeurs représentables sur 32 bits
HASH_SPACE = 1 << 32


def convert_hash_to_id(hash_value: int) -> int:
    """Convertit un hash non signé en identifiant signé du manifest.

    Args:
        hash_value: Hash non signé (0 <= hash < 2**32).

    Returns:
        Identifiant signé : hash - 2**32 si le bit 31 est positionné, sinon hash.

    Raises:
        ValueError: Si le hash sort de l'intervalle 32 bits non signé.
    """
    if hash_value < 0 or hash_value >= HASH_SPACE:
        raise ValueError(f"Hash hors de l'intervalle 32 bits non signé: {hash_value}")

    if hash_value & HASH_SIGN_BIT:
        return hash_value - HASH_SPACE
    return hash_value


def convert_id_to_hash(row_id: int) -> int:
    """Opération inverse de convert_hash_to_id."""
    if row_id < -HASH_SIGN_BIT or row_id >= HASH_SIGN_BIT:
        raise ValueError(f"Identifiant hors de l'intervalle 32 bits signé: {row_id}")
    return row_id % HASH_SPACE
