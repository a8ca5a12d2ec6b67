"""Tests de conversion hash ↔ identifiant du manifest."""

from __future__ import annotations

import pytest

from activity_store.utils.hashes import convert_hash_to_id, convert_id_to_hash


class TestConvertHashToId:
    """Tests pour convert_hash_to_id."""

    def test_low_hash_unchanged(self) -> None:
        assert convert_hash_to_id(0) == 0
        assert convert_hash_to_id(1234) == 1234
        assert convert_hash_to_id(2**31 - 1) == 2**31 - 1

    def test_high_bit_hash_becomes_negative(self) -> None:
        assert convert_hash_to_id(2**31) == -(2**31)
        assert convert_hash_to_id(4294967295) == -1
        assert convert_hash_to_id(3655393761) == 3655393761 - 2**32

    @pytest.mark.parametrize("value", [-1, 2**32, 2**40])
    def test_out_of_range_raises(self, value: int) -> None:
        with pytest.raises(ValueError):
            convert_hash_to_id(value)


class TestConvertIdToHash:
    """Tests pour l'opération inverse."""

    @pytest.mark.parametrize("value", [0, 1, 2**31 - 1, 2**31, 2693136600, 2**32 - 1])
    def test_inverse(self, value: int) -> None:
        assert convert_id_to_hash(convert_hash_to_id(value)) == value

    def test_out_of_range_raises(self) -> None:
        with pytest.raises(ValueError):
            convert_id_to_hash(2**31)
