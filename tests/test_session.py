"""Tests de la session (assemblage store, manifest, moteur, repository)."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import MEMBER_ID, make_pgcr

from activity_store.config import StoreConfig
from activity_store.data.domain.refdata import CharacterClassSelection, Mode, Platform
from activity_store.errors import ManifestNotFoundError
from activity_store.session import ActivityStoreSession


def _config(tmp_path: Path, manifest_path: Path | None = None) -> StoreConfig:
    return StoreConfig(data_dir=tmp_path, manifest_path=manifest_path, optimize_on_commit=False)


class TestActivityStoreSession:
    """Construction paresseuse des composants."""

    def test_store_is_created_lazily(self, tmp_path: Path) -> None:
        config = _config(tmp_path)
        with ActivityStoreSession(config) as session:
            assert not config.store_path.exists()
            assert session.store.count_activities() == 0
            assert session.store is session.store
        assert config.store_path.exists()

    def test_engine_requires_api(self, tmp_path: Path) -> None:
        with ActivityStoreSession(_config(tmp_path)) as session, pytest.raises(RuntimeError):
            _ = session.engine

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with ActivityStoreSession(_config(tmp_path)) as session, pytest.raises(ManifestNotFoundError):
            _ = session.repository

    @pytest.mark.asyncio
    async def test_sync_then_retrieve(self, tmp_path: Path, manifest_path: Path, fake_api) -> None:
        fake_api.histories[(fake_api.characters[0].character_id, Mode.ALL_PVP)] = [100]
        fake_api.details[100] = make_pgcr(100)

        with ActivityStoreSession(_config(tmp_path, manifest_path), api=fake_api) as session:
            result = await session.engine.sync(MEMBER_ID, Platform.STEAM)
            activity = await session.repository.retrieve_last_activity(
                MEMBER_ID, Platform.STEAM, CharacterClassSelection.ALL, Mode.ALL_PVP
            )

        assert result.total_synced == 1
        assert activity is not None
        assert activity.details.id == 100
